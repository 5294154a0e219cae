"""模块列表解析（去重）

同名模块可以重复声明: 保留第一次出现的位置，取最后一次声明的值。
requirements 文件（严格模式）中的声明排在直接配置之前，所以直接配置总是胜出。
"""

from __future__ import annotations

import logging
from pathlib import Path

from modinstall.core.module.models import ModuleSpec
from modinstall.core.module.parser import parse_declaration
from modinstall.core.requirements import read_requirements, relative_path

logger = logging.getLogger(__name__)


def resolve_modules(declarations: list[str]) -> list[ModuleSpec]:
    """按顺序解析声明并去重（后声明覆盖，位置不变）"""
    mods: dict[str, ModuleSpec] = {}
    for decl in declarations:
        mod = parse_declaration(decl)
        mods[mod.key] = mod
    return list(mods.values())


class ModuleSet:
    """一次操作中要处理的模块集合

    requirements 文件只读一次，解析结果在实例生命周期内缓存。
    """

    def __init__(
        self,
        modules: list[str] | None = None,
        requirements: str | Path | None = None,
        strict: bool = False,
    ) -> None:
        self.declared = list(modules or [])
        self.requirements = Path(requirements) if requirements else None
        self.strict = strict
        self._file_declarations: list[str] | None = None
        self._resolved: list[ModuleSpec] | None = None

    @property
    def requirements_exists(self) -> bool:
        return self.requirements is not None and self.requirements.exists()

    @property
    def file_declarations(self) -> list[str]:
        """严格模式下从 requirements 文件读到的声明"""
        if self._file_declarations is None:
            res: list[str] = []
            if self.strict and self.requirements_exists:
                res = read_requirements(self.requirements)
                if res:
                    logger.warning(
                        "从 requirements 文件读取 %d 个待安装模块: %s（严格模式）",
                        len(res), relative_path(self.requirements),
                    )
            self._file_declarations = res
        return self._file_declarations

    @property
    def all_declarations(self) -> list[str]:
        return [*self.file_declarations, *self.declared]

    @property
    def modules(self) -> list[ModuleSpec]:
        if self._resolved is None:
            self._resolved = resolve_modules(self.all_declarations)
        return self._resolved

    @property
    def delegates_requirements(self) -> bool:
        """非严格模式: requirements 文件直接交给 pip -r 处理"""
        return not self.strict and self.requirements_exists

    @property
    def installation_required(self) -> bool:
        return bool(self.all_declarations) or self.delegates_requirements
