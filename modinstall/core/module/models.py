"""模块声明数据模型

数据类:
- ModuleKind: 声明类型（普通 / 带 extras / VCS）
- ModuleSpec: 解析后的模块声明（不可变）
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from modinstall.core.exceptions import DeclarationErrorReason, InvalidDeclaration
from modinstall.utils.cli_args import is_version_match

EGG_MARKER = "#egg="
# 从该版本起 freeze 对 VCS 安装输出 PEP 610 direct url 写法
DIRECT_URL_PIP_VERSION = "21.0"


class ModuleKind(str, Enum):
    SIMPLE = "simple"
    FEATURE = "feature"
    VCS = "vcs"


@dataclass(frozen=True)
class ModuleSpec:
    """单个模块的精确版本声明

    相等性只比较 name + version；去重时只看 name（见 key）。
    """

    name: str
    version: str
    kind: ModuleKind = field(default=ModuleKind.SIMPLE, compare=False)
    # FEATURE: 拆分后的 extras
    features: tuple[str, ...] = field(default=(), compare=False)
    # VCS: 去掉版本后缀的源地址
    vcs_url: str = field(default="", compare=False)
    editable: bool = field(default=False, compare=False)
    declaration: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidDeclaration(
                f"模块名不能为空: '{self.declaration or self.version}'",
                DeclarationErrorReason.EMPTY_PART, self.declaration,
            )
        if not self.version:
            raise InvalidDeclaration(
                f"模块版本不能为空: '{self.declaration or self.name}'",
                DeclarationErrorReason.EMPTY_PART, self.declaration,
            )

    @property
    def key(self) -> str:
        """去重用的身份键"""
        return self.name

    def freeze_strings(self, pip_version: str = "") -> list[str]:
        """`pip freeze` 中可能出现的全部写法

        必须精确匹配版本: pip 会把较新的已安装版本"降级"到声明版本。
        VCS 模块的 freeze 格式随 pip 版本变化: pip 21 起非 editable 安装输出
        `name @ url`，更早的版本只输出 `name==version`；editable 安装输出
        `-e url`。pip_version 为空时接受所有写法。
        """
        exact = f"{self.name}=={self.version}"
        if self.kind is not ModuleKind.VCS:
            return [exact]
        url = self.vcs_url.split(EGG_MARKER, 1)[0]
        if not pip_version:
            return [exact, f"{self.name} @ {url}", f"-e {self.vcs_url}"]
        res = [exact]
        if is_version_match(pip_version, DIRECT_URL_PIP_VERSION):
            res.append(f"{self.name} @ {url}")
        if self.editable:
            res.append(f"-e {self.vcs_url}")
        return res

    def install_string(self) -> str:
        """传给 `pip install` 的声明"""
        if self.kind is ModuleKind.FEATURE:
            return f"{self.name}[{','.join(self.features)}]=={self.version}"
        if self.kind is ModuleKind.VCS:
            return f"--editable {self.vcs_url}" if self.editable else self.vcs_url
        return f"{self.name}=={self.version}"

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "name": self.name,
            "version": self.version,
            "kind": self.kind.value,
        }
        if self.features:
            data["features"] = list(self.features)
        if self.vcs_url:
            data["vcs_url"] = self.vcs_url
            data["editable"] = self.editable
        data["install"] = self.install_string()
        return data

    def __str__(self) -> str:
        if self.kind is ModuleKind.VCS:
            return f"{self.name} {self.version} ({self.vcs_url})"
        return f"{self.name} {self.version}"
