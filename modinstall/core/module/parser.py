"""模块声明解析

支持三种写法（按顺序判断，先命中先用）:

  1. VCS:    git+https://host/repo/@ref#egg=name-version [--editable]
  2. extras: name[feature1,feature2]:version
  3. 普通:   name:version

只接受精确版本；VCS 声明必须在 egg 片段中带版本，否则无法在不启动
python 的情况下判断是否已安装。
"""

from __future__ import annotations

import re

from modinstall.core.exceptions import DeclarationErrorReason, InvalidDeclaration
from modinstall.core.module.models import EGG_MARKER, ModuleKind, ModuleSpec
from modinstall.utils.cli_args import parse_command_line

VERSION_SEPARATOR = ":"
VCS_VERSION_SEPARATOR = "-"
QUALIFIER_START = "["
QUALIFIER_END = "]"
FEATURE_SEPARATOR = ","

EDITABLE_FLAGS = ("--editable", "-e")
VCS_PREFIXES = ("git+", "svn+", "hg+", "bzr+", "git://", "svn://")

_VCS_FORMAT = re.compile(r"@[^#]+#egg=([^&\s]+)")
_FEATURE_FORMAT = re.compile(r"(.+)\[(.*)]\s*:\s*(.+)")
_RANGE_CHARS = re.compile(r"[<>=!~,*\s]")

_VCS_FORMAT_HINT = "vcs+protocol://repo_url/@vcsVersion#egg=name-pkgVersion"


def parse_declaration(declaration: str) -> ModuleSpec:
    """解析单条模块声明

    异常:
        InvalidDeclaration: 声明格式不符合任何一种写法
    """
    desc = declaration.strip()
    if _is_vcs(desc):
        return _parse_vcs(desc)
    if QUALIFIER_START in desc and QUALIFIER_END in desc:
        return _parse_feature(desc)
    return _parse_simple(desc)


def find_module_declaration(name: str, declarations: list[str]) -> str | None:
    """按模块名查找声明（忽略大小写），支持普通、extras 和 VCS 写法"""
    nm = name.lower() + VERSION_SEPARATOR
    qualified = name.lower() + QUALIFIER_START
    vcs = f"{EGG_MARKER}{name.lower()}{VCS_VERSION_SEPARATOR}"
    for decl in declarations:
        mod = decl.lower()
        if QUALIFIER_START in mod:
            if mod.startswith(qualified):
                return decl
        elif mod.startswith(nm) or vcs in mod:
            return decl
    return None


def _is_vcs(desc: str) -> bool:
    if EGG_MARKER not in desc and "/" not in desc:
        return False
    tokens = parse_command_line(desc)
    return any(
        t in EDITABLE_FLAGS or t.startswith(VCS_PREFIXES) for t in tokens
    )


def _wrong_vcs(desc: str) -> str:
    return f"VCS 模块声明格式错误: '{desc}'（期望格式: '{_VCS_FORMAT_HINT}'）。"


def _parse_vcs(desc: str) -> ModuleSpec:
    has_ref = "@" in desc
    has_egg = EGG_MARKER in desc
    if not has_ref or not has_egg:
        missing = []
        if not has_ref:
            missing.append("缺少 '@version' 部分")
        if not has_egg:
            missing.append("缺少 '#egg=name-version' 部分")
        reason = (
            DeclarationErrorReason.MISSING_REF_MARKER if not has_ref
            else DeclarationErrorReason.MISSING_VERSION_MARKER
        )
        raise InvalidDeclaration(
            _wrong_vcs(desc) + "，".join(missing), reason, desc,
        )

    matcher = _VCS_FORMAT.search(desc)
    if matcher is None:
        raise InvalidDeclaration(
            _wrong_vcs(desc) + "未找到模块名",
            DeclarationErrorReason.MISSING_VERSION_MARKER, desc,
        )
    egg = matcher.group(1).strip()
    if VCS_VERSION_SEPARATOR not in egg:
        raise InvalidDeclaration(
            _wrong_vcs(desc)
            + f"egg 片段必须带版本 (#egg=name-version): '{egg}'，"
            "否则无法在不运行 python 的情况下检查是否已安装",
            DeclarationErrorReason.UNVERSIONED_VCS_NAME, desc,
        )

    idx = egg.rindex(VCS_VERSION_SEPARATOR)
    name = egg[:idx].strip()
    version = egg[idx + 1:].strip()
    _check_exact(version, desc)

    # 带版本后缀的 egg 片段在重新安装时会被 pip 拒绝
    short = desc.replace(EGG_MARKER + egg, EGG_MARKER + name)
    tokens = parse_command_line(short)
    editable = any(t in EDITABLE_FLAGS for t in tokens)
    urls = [t for t in tokens if t not in EDITABLE_FLAGS]
    if len(urls) != 1:
        raise InvalidDeclaration(
            _wrong_vcs(desc) + "只能包含一个源地址",
            DeclarationErrorReason.WRONG_PART_COUNT, desc,
        )
    return ModuleSpec(
        name=name, version=version, kind=ModuleKind.VCS,
        vcs_url=urls[0], editable=editable, declaration=short,
    )


def _parse_feature(desc: str) -> ModuleSpec:
    matcher = _FEATURE_FORMAT.fullmatch(desc)
    if matcher is None:
        raise InvalidDeclaration(
            "模块声明格式错误（期望 'module[qualifier,qualifier2]:version'）: "
            f"'{desc}'",
            DeclarationErrorReason.MALFORMED_FEATURE_SYNTAX, desc,
        )
    name = matcher.group(1).strip()
    qualifier = matcher.group(2).strip()
    version = matcher.group(3).strip()
    _check_exact(version, desc)
    if not qualifier:
        # name[]:version 按普通模块处理
        return ModuleSpec(name=name, version=version, declaration=desc)

    features: list[str] = []
    for item in qualifier.split(FEATURE_SEPARATOR):
        item = item.strip()
        if item and item not in features:
            features.append(item)
    return ModuleSpec(
        name=name, version=version, kind=ModuleKind.FEATURE,
        features=tuple(features), declaration=desc,
    )


def _parse_simple(desc: str) -> ModuleSpec:
    parts = desc.split(VERSION_SEPARATOR)
    if len(parts) != 2:
        raise InvalidDeclaration(
            f"模块声明格式错误（必须是 'module:version'）: '{desc}'",
            DeclarationErrorReason.WRONG_PART_COUNT, desc,
        )
    name, version = parts[0].strip(), parts[1].strip()
    _check_exact(version, desc)
    return ModuleSpec(name=name, version=version, declaration=desc)


def _check_exact(version: str, desc: str) -> None:
    if _RANGE_CHARS.search(version):
        raise InvalidDeclaration(
            f"只支持精确版本，不支持版本范围: '{desc}'",
            DeclarationErrorReason.VERSION_RANGE, desc,
        )
