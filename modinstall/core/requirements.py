"""requirements 文件读取

把标准 requirements.txt 转换为本工具的声明格式（name:version），
这样文件中的声明与直接配置的声明走同一套解析和去重逻辑。

支持:
  - 注释 (#) 和空行
  - -r / --requirement 嵌套引用（相对当前文件）
  - -e / --editable VCS 声明
  - name==version、name[extras]==version，忽略 ';' 之后的环境标记

只支持精确版本，其他运算符直接报错。
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from modinstall.core.exceptions import DeclarationErrorReason, InvalidDeclaration

logger = logging.getLogger(__name__)

_INCLUDE_FLAGS = ("-r", "--requirement")
_EDITABLE_FLAGS = ("-e", "--editable")
_EXACT = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*(?:\[[^\]]*])?)\s*==\s*([^\s=]+)$")


def read_requirements(path: str | Path | None) -> list[str]:
    """读取 requirements 文件，返回声明列表（文件不存在返回空列表）"""
    if not path:
        return []
    p = Path(path)
    if not p.exists():
        return []
    return _read(p, set())


def relative_path(path: str | Path, base: str | Path = ".") -> str:
    """日志和命令里使用的相对路径（无法相对化时返回原路径）"""
    try:
        return os.path.relpath(str(path), str(base))
    except ValueError:
        return str(path)


def to_declaration(line: str) -> str:
    """把单行 requirement 转为 name:version 格式"""
    req = line.split(";", 1)[0].strip()
    matcher = _EXACT.match(req)
    if matcher is None:
        raise InvalidDeclaration(
            f"requirements 中只支持精确版本 (name==version): '{line}'",
            DeclarationErrorReason.VERSION_RANGE, line,
        )
    return f"{matcher.group(1)}:{matcher.group(2)}"


def _read(path: Path, seen: set[Path]) -> list[str]:
    resolved = path.resolve()
    if resolved in seen:
        logger.warning("requirements 循环引用，已跳过: %s", path)
        return []
    seen.add(resolved)

    res: list[str] = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = _strip_comment(raw)
        if not line:
            continue
        flag, _, rest = line.partition(" ")
        rest = rest.strip()
        if flag in _INCLUDE_FLAGS and rest:
            res.extend(_read(path.parent / rest, seen))
        elif flag in _EDITABLE_FLAGS and rest:
            res.append(f"--editable {rest}")
        elif line.startswith("-"):
            logger.debug("忽略 requirements 选项: %s", line)
        elif "#egg=" in line and "@" in line:
            res.append(line)
        else:
            res.append(to_declaration(line))
    return res


def _strip_comment(line: str) -> str:
    # '#egg=' 是 VCS 片段而不是注释
    text = line.strip()
    if text.startswith("#"):
        return ""
    idx = text.find(" #")
    if idx >= 0:
        text = text[:idx]
    return text.strip()
