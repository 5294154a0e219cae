"""公共测试工具: 录制调用的命令执行器"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

import pytest

from modinstall.utils.cli_args import parse_args
from modinstall.utils.logger import reset_logging
from modinstall.utils.shell import CommandResult


@dataclass
class Call:
    argv: list[str]
    thread: str
    start: float
    end: float
    cwd: str | None = None
    env: dict[str, str] | None = None


class FakeExecutor:
    """按规则返回结果并记录每次调用

    规则: argv 同时包含给定的所有词即命中，后注册的规则优先。
    """

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self._rules: list[tuple[tuple[str, ...], CommandResult, Callable | None]] = []
        self._lock = threading.Lock()

    def on(
        self,
        *words: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        handler: Callable[[list[str]], None] | None = None,
    ) -> FakeExecutor:
        self._rules.append((words, CommandResult(returncode, stdout, stderr), handler))
        return self

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        argv = parse_args(cmd)
        start = time.monotonic()
        result = CommandResult(0, "", "")
        for words, res, handler in reversed(self._rules):
            if all(w in argv for w in words):
                if handler is not None:
                    handler(argv)
                result = res
                break
        end = time.monotonic()
        with self._lock:
            self.calls.append(Call(
                argv, threading.current_thread().name, start, end, cwd, env,
            ))
        return result

    def module_calls(self, module: str) -> list[list[str]]:
        """只保留 `python -m <module>` 之后的参数"""
        return [c.argv[3:] for c in self.calls if c.argv[1:3] == ["-m", module]]

    def pip_calls(self) -> list[list[str]]:
        return self.module_calls("pip")


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def python_home(tmp_path):
    """非虚拟环境的解释器目录"""
    home = tmp_path / "sys" / "bin"
    home.mkdir(parents=True)
    return home


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()
