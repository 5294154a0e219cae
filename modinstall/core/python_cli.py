"""python 解释器调用

负责定位解释器、以 `python -m <module>` 方式执行命令并读取输出。
实际进程执行通过 CommandExecutor 完成。
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Iterable

from modinstall.utils.cli_args import hide_credentials, merge_args
from modinstall.utils.shell import CommandExecutor, CommandResult, run_checked

logger = logging.getLogger(__name__)


def default_binary() -> str:
    return "python" if sys.platform == "win32" else "python3"


class PythonCli:
    """单个 python 环境的命令行封装"""

    def __init__(
        self,
        executor: CommandExecutor,
        python_path: str = "",
        binary: str = "",
        work_dir: str = "",
        environment: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> None:
        self.executor = executor
        self.python_path = python_path
        self.binary_name = binary or default_binary()
        self.work_dir = work_dir or None
        self.environment = dict(environment or {})
        self.timeout = timeout
        self._binary_dir: str | None = None
        self._virtualenv: bool | None = None

    @property
    def executable(self) -> str:
        if self.python_path:
            return str(Path(self.python_path) / self.binary_name)
        return self.binary_name

    @property
    def binary_dir(self) -> str:
        """解释器所在目录的绝对路径，用作环境锁的键"""
        if self._binary_dir is None:
            if self.python_path:
                path = Path(self.python_path)
            else:
                found = shutil.which(self.binary_name)
                path = Path(found).parent if found else Path(self.binary_name)
            self._binary_dir = str(path.resolve())
        return self._binary_dir

    @property
    def virtualenv(self) -> bool:
        """解释器是否属于虚拟环境（bin/ 的上级目录有 pyvenv.cfg）"""
        if self._virtualenv is None:
            root = Path(self.binary_dir)
            self._virtualenv = (
                (root / "pyvenv.cfg").exists()
                or (root.parent / "pyvenv.cfg").exists()
            )
        return self._virtualenv

    def call_module(self, module: str, args: str | Iterable[str]) -> CommandResult:
        """执行 `python -m module args`，输出写入日志"""
        r = self._run(merge_args(["-m", module], args), quiet=False)
        if r.stdout.strip():
            logger.info("%s", r.stdout.rstrip())
        return r

    def read_output(self, args: str | Iterable[str]) -> str:
        """执行命令并返回去掉首尾空白的标准输出（命令本身只记 DEBUG 日志）"""
        return self._run(merge_args(args), quiet=True).stdout.strip()

    def _run(self, args: list[str], quiet: bool) -> CommandResult:
        argv = [self.executable, *args]
        shown = hide_credentials(" ".join(argv))
        if quiet:
            logger.debug("[python] %s", shown)
        else:
            logger.info("[python] %s", shown)
        env = {**os.environ, **self.environment} if self.environment else None
        return run_checked(
            self.executor, argv,
            cwd=self.work_dir, env=env, timeout=self.timeout,
        )
