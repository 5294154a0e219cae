"""模块安装服务

把配置、模块集合、安装计划和环境锁串起来:

  1. 解析声明（requirements 文件 + 直接配置，后者覆盖前者）
  2. 获取目标环境的锁
  3. 非严格模式: pip install -r requirements
  4. 读取全局 freeze，按计划逐个安装缺失的模块

用法:
    svc = InstallService(config, LocalExecutor(), LockRegistry())
    report = svc.install(modules=["requests:2.31.0"])
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, TypeVar

from modinstall.core.config import Config
from modinstall.core.env_lock import LockRegistry
from modinstall.core.module import (
    ModuleKind,
    ModuleSet,
    ModuleSpec,
    find_module_declaration,
    plan_installs,
)
from modinstall.core.pip import Pip
from modinstall.core.pipx import Pipx
from modinstall.core.python_cli import PythonCli
from modinstall.core.requirements import relative_path
from modinstall.utils.cli_args import prefix_output
from modinstall.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Pip)


@dataclass
class InstallReport:
    """一次安装的结果"""

    environment: str
    installed: list[str] = field(default_factory=list)
    requirements_installed: bool = False
    skipped: bool = False
    listing: str = ""

    @property
    def changed(self) -> bool:
        return bool(self.installed) or self.requirements_installed


class InstallService:
    """模块安装 / 卸载 / 列表 / 更新检查，以及 pipx run / inject"""

    def __init__(
        self,
        config: Config,
        executor: CommandExecutor,
        locks: LockRegistry,
    ) -> None:
        self.config = config
        self.executor = executor
        self.locks = locks

    def pip(self) -> Pip:
        return self._tool(Pip)

    def pipx(self) -> Pipx:
        return self._tool(Pipx)

    def _tool(self, cls: type[P]) -> P:
        cfg = self.config
        python = PythonCli(
            self.executor,
            python_path=cfg.python_path,
            binary=cfg.python_binary,
            work_dir=cfg.work_dir,
            environment=cfg.environment,
            timeout=cfg.timeout,
        )
        return cls(
            python,
            user_scope=cfg.user_scope,
            use_cache=cfg.use_cache,
            extra_index_urls=cfg.extra_index_urls,
            trusted_hosts=cfg.trusted_hosts,
        )

    def module_set(
        self,
        modules: list[str] | None = None,
        requirements: str | None = None,
        strict: bool | None = None,
    ) -> ModuleSet:
        """未显式指定的参数取配置中的值"""
        return ModuleSet(
            modules=self.config.modules if modules is None else modules,
            requirements=self.config.requirements if requirements is None else requirements,
            strict=self.config.strict_requirements if strict is None else strict,
        )

    def modules_to_install(
        self,
        module_set: ModuleSet,
        pip: Pip | None = None,
        force: bool | None = None,
    ) -> list[ModuleSpec]:
        force_all = self.config.always_install if force is None else force
        modules = module_set.modules
        if not modules:
            return []
        if force_all:
            return plan_installs(modules, [], force_all=True)
        pip = pip or self.pip()
        installed = pip.freeze()
        # VCS 模块的 freeze 写法取决于 pip 版本
        has_vcs = any(m.kind is ModuleKind.VCS for m in modules)
        return plan_installs(
            modules, installed, pip_version=pip.version if has_vcs else "",
        )

    def install(
        self,
        modules: list[str] | None = None,
        requirements: str | None = None,
        strict: bool | None = None,
        force: bool | None = None,
    ) -> InstallReport:
        mods = self.module_set(modules, requirements, strict)
        pip = self.pip()
        report = InstallReport(environment=pip.python.binary_dir)
        if not mods.installation_required:
            logger.info("没有声明任何模块，跳过安装")
            report.skipped = True
            return report
        # 声明错误必须在改动环境（包括 pip install -r）之前抛出
        _ = mods.modules

        # 同一环境可能被多个并行任务共用，pip 调用必须串行
        with self.locks.acquire(report.environment):
            if mods.delegates_requirements:
                pip.install(
                    ["-r", relative_path(mods.requirements, self.config.work_dir or ".")],
                    self.config.install_options,
                )
                report.requirements_installed = True
            for mod in self.modules_to_install(mods, pip, force):
                pip.install(mod.install_string(), self.config.install_options)
                report.installed.append(mod.install_string())

        if not report.changed:
            logger.info("所有模块均已安装且版本正确")
        if self.config.show_installed_versions:
            report.listing = self.list_modules()
            logger.info("已安装模块:\n%s", prefix_output(report.listing, "\t"))
        return report

    def uninstall(self, name: str) -> None:
        pip = self.pip()
        with self.locks.acquire(pip.python.binary_dir):
            pip.uninstall(name)
        logger.info("已卸载: %s", name)
        decl = find_module_declaration(name, self.config.modules)
        if decl:
            logger.warning("模块仍在配置中声明 (%s)，下次 install 会重新安装", decl)

    def run_app(self, app: str, params: list[str] | None = None) -> None:
        """pipx run: 在临时环境中运行应用，不改动目标环境"""
        self.pipx().run(app, params)

    def inject(
        self,
        package: str,
        dependencies: Iterable[str],
        params: list[str] | None = None,
    ) -> None:
        """pipx inject: 把依赖装进应用的虚拟环境（应用不存在时先安装）"""
        deps = list(dependencies)
        pipx = self.pipx()
        with self.locks.acquire(pipx.python.binary_dir):
            pipx.inject(package, deps, params)
        logger.info("已注入 %s: %s", package, " ".join(deps))

    def list_modules(self, all_scopes: bool = False) -> str:
        """pip list 输出；all_scopes 为 True 时查看全局范围"""
        pip = self.pip()
        if all_scopes:
            with pip.in_global_scope():
                return pip.list_installed()
        return pip.list_installed()

    def check_updates(
        self,
        modules: list[str] | None = None,
        show_all: bool = False,
    ) -> list[str]:
        """可更新的模块行（含两行表头）；没有可更新模块时返回空列表"""
        declared = self.module_set(modules).modules
        if not show_all and not declared:
            logger.info("没有声明任何模块")
            return []

        updates = self.pip().outdated()
        if show_all or not updates:
            res = updates
        else:
            res = updates[:2]
            rows = updates[2:]
            for mod in declared:
                pattern = re.compile(rf"{re.escape(mod.name.lower())}\s+")
                line = next((r for r in rows if pattern.match(r)), None)
                if line:
                    res.append(line)
        return res if len(res) > 2 else []
