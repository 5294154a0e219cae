"""子进程执行工具

通过 CommandExecutor 协议抽象子进程执行，方便测试替换（录制调用、模拟输出）。
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from modinstall.core.exceptions import ExecutionFailed
from modinstall.utils.cli_args import hide_credentials, parse_args

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        if self.stderr and self.stdout:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议

    实现此协议即可替换底层执行方式（本地进程、容器等）。
    测试时注入录制实现，无需 patch subprocess。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """执行命令并返回结果"""
        ...


# =========================================================================
# 默认实现: 本地进程执行器
# =========================================================================

class LocalExecutor:
    """本地进程执行器（默认实现）

    字符串命令按 parse_command_line 规则切分，不经过 shell。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        r = subprocess.run(
            parse_args(cmd), capture_output=True, text=True,
            cwd=cwd, env=env, check=False, timeout=timeout,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


def run_checked(
    executor: CommandExecutor,
    argv: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """执行命令，非零返回 / 无法启动 / 超时统一抛 ExecutionFailed"""
    shown = hide_credentials(" ".join(argv))
    try:
        r = executor.execute(argv, cwd=cwd, env=env, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        raise ExecutionFailed(shown, -1, f"超时 ({e.timeout}s)") from e
    except OSError as e:
        raise ExecutionFailed(shown, -1, str(e)) from e
    if not r.success:
        raise ExecutionFailed(shown, r.returncode, r.output)
    return r
