"""pip 命令封装

在 PythonCli 之上按命令类型自动追加参数:
  --user              install / list / freeze（虚拟环境中不加）
  --no-cache-dir      install（关闭缓存时）
  --extra-index-url   install / list / download / wheel
  --trusted-host      install
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterable, Iterator

from modinstall.core.exceptions import ExecutionFailed, UninstallVerificationFailed
from modinstall.core.python_cli import PythonCli
from modinstall.utils.cli_args import merge_args

logger = logging.getLogger(__name__)

USER = "--user"
NO_CACHE = "--no-cache-dir"
INSTALL = "install"
USER_AWARE_COMMANDS = ("install", "list", "freeze")
EXTRA_INDEX_AWARE_COMMANDS = ("install", "list", "download", "wheel")

_VERSION_NUMBER = re.compile(r"\d+(?:\.\d+)*")


class Pip:
    """pip 命令执行工具"""

    MODULE = "pip"
    VERSION_PATTERN = re.compile(r"pip ([\d.]+)")

    def __init__(
        self,
        python: PythonCli,
        user_scope: bool = True,
        use_cache: bool = True,
        extra_index_urls: list[str] | None = None,
        trusted_hosts: list[str] | None = None,
    ) -> None:
        self.python = python
        self.user_scope = user_scope
        self.use_cache = use_cache
        self.extra_index_urls = list(extra_index_urls or [])
        self.trusted_hosts = list(trusted_hosts or [])
        self._version: str | None = None

    def install(
        self,
        module: str | Iterable[str],
        options: Iterable[str] | None = None,
    ) -> None:
        """安装模块，module 形如 'some==1.2' 或 VCS 地址"""
        self.exec(merge_args(INSTALL, module, options))

    def uninstall(self, module: str) -> None:
        """卸载模块并确认已删除

        异常:
            UninstallVerificationFailed: pip 返回成功但模块仍存在
        """
        self.exec(merge_args("uninstall", module, "-y"))
        if self.is_installed(module):
            raise UninstallVerificationFailed(module, self.MODULE)

    def is_installed(self, module: str) -> bool:
        try:
            self.read_output(merge_args("show", module))
        except ExecutionFailed:
            return False
        return True

    def exec(self, cmd: str | Iterable[str]) -> None:
        """执行 pip 命令，例如 'install some==1.2'"""
        self.python.call_module(self.MODULE, self.apply_flags(merge_args(cmd)))

    def read_output(self, cmd: str | Iterable[str]) -> str:
        return self.python.read_output(["-m", self.MODULE, *self.apply_flags(merge_args(cmd))])

    def freeze(self) -> list[str]:
        """全局范围的 freeze 输出（小写、按行）

        即使配置了 user 范围也要看全局，否则全局已装的包会被重复安装。
        """
        with self.in_global_scope():
            return self.read_output("freeze").lower().splitlines()

    def list_installed(self) -> str:
        """`pip list --format=columns` 输出（遵循当前 user 范围）"""
        return self.read_output("list --format=columns")

    def outdated(self) -> list[str]:
        """可更新模块列表（小写、按行，前两行为表头）"""
        return self.read_output("list -o -l --format=columns").lower().splitlines()

    @property
    def version(self) -> str:
        """版本 major.minor.micro（beta 后缀会被丢掉，无法识别时为空串）"""
        if self._version is None:
            line = self.read_output("--version")
            matcher = self.VERSION_PATTERN.search(line)
            if matcher:
                self._version = matcher.group(1)
            else:
                out = self.python.read_output(
                    ["-c", f"import {self.MODULE}; print({self.MODULE}.__version__)"],
                )
                number = _VERSION_NUMBER.match(out)
                self._version = number.group(0) if number else ""
        return self._version

    @contextmanager
    def in_global_scope(self) -> Iterator[Pip]:
        """临时关闭 user 范围"""
        saved = self.user_scope
        self.user_scope = False
        try:
            yield self
        finally:
            self.user_scope = saved

    def apply_flags(self, args: list[str]) -> list[str]:
        res = list(args)
        command = res[0].lower() if res else ""
        # 虚拟环境中 --user 会直接报错
        if (
            USER not in res and self.user_scope
            and command in USER_AWARE_COMMANDS
            and not self.python.virtualenv
        ):
            res.append(USER)
        if not self.use_cache and NO_CACHE not in res and command == INSTALL:
            res.append(NO_CACHE)
        if command in EXTRA_INDEX_AWARE_COMMANDS:
            for url in self.extra_index_urls:
                res.extend(["--extra-index-url", url])
        if command == INSTALL:
            for host in self.trusted_hosts:
                res.extend(["--trusted-host", host])
        return res
