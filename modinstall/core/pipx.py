"""pipx 命令封装

pipx 为每个应用创建独立虚拟环境，所以没有 user 范围；索引地址和缓存开关
通过 `--pip-args` 转交给 pipx 内部的 pip，并放在子命令之后、包名之前
（`pipx run` 会把包名之后的参数全部交给应用）。
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from modinstall.core.exceptions import UninstallVerificationFailed
from modinstall.core.pip import NO_CACHE, Pip
from modinstall.utils.cli_args import merge_args

logger = logging.getLogger(__name__)

PIP_ARGS_COMMANDS = ("install", "inject", "upgrade", "run")


class Pipx(Pip):
    """pipx 命令执行工具（install / uninstall / run / inject）"""

    MODULE = "pipx"
    # pipx --version 只输出版本号
    VERSION_PATTERN = re.compile(r"^(\d+(?:\.\d+)*)")

    def uninstall(self, module: str) -> None:
        self.exec(merge_args("uninstall", module))
        if self.is_installed(module):
            raise UninstallVerificationFailed(module, self.MODULE)

    def is_installed(self, module: str) -> bool:
        """`pipx list --short` 中是否有该应用（每行 'name version'）"""
        name = module.lower()
        for line in self.read_output("list --short").lower().splitlines():
            if line.split(" ", 1)[0] == name:
                return True
        return False

    def run(self, app: str, params: str | Iterable[str] | None = None) -> None:
        """在临时环境中运行应用: pipx run app params..."""
        self.exec(merge_args("run", app, params))

    def inject(
        self,
        package: str,
        dependencies: str | Iterable[str],
        params: str | Iterable[str] | None = None,
    ) -> None:
        """把依赖装进已有应用的虚拟环境；应用未安装时先安装"""
        if not self.is_installed(package):
            logger.info("应用 %s 未安装，先执行安装", package)
            self.install(package)
        self.exec(merge_args("inject", package, dependencies, params))

    def apply_flags(self, args: list[str]) -> list[str]:
        res = list(args)
        command = res[0].lower() if res else ""
        if command not in PIP_ARGS_COMMANDS:
            return res
        pip_args: list[str] = []
        if not self.use_cache:
            pip_args.append(NO_CACHE)
        for url in self.extra_index_urls:
            pip_args.extend(["--extra-index-url", url])
        for host in self.trusted_hosts:
            pip_args.extend(["--trusted-host", host])
        if pip_args:
            res.insert(1, "--pip-args=" + " ".join(pip_args))
        return res
