"""安装计划

把期望的模块列表与 `pip freeze` 输出比对，得到真正需要安装的子集。
"""

from __future__ import annotations

import logging
from typing import Iterable

from modinstall.core.module.models import ModuleSpec

logger = logging.getLogger(__name__)


def plan_installs(
    desired: list[ModuleSpec],
    installed_lines: Iterable[str],
    force_all: bool = False,
    pip_version: str = "",
) -> list[ModuleSpec]:
    """返回未安装（或版本不一致）的模块，保持输入顺序

    参数:
        desired: 去重后的模块列表
        installed_lines: freeze 输出的行，必须是全局范围的结果
            （user 范围会漏掉全局已装的包，导致重复安装）
        force_all: True 时不做比对，全部重新安装
        pip_version: 当前 pip 版本，决定 VCS 模块接受哪些 freeze 写法（空则全部接受）

    匹配规则: 整行精确比较（忽略大小写），任一可接受写法命中即视为已安装。
    """
    if force_all:
        return list(desired)

    installed = {line.strip().lower() for line in installed_lines if line.strip()}
    res: list[ModuleSpec] = []
    for mod in desired:
        if any(s.lower() in installed for s in mod.freeze_strings(pip_version)):
            continue
        logger.info("模块未安装或版本不一致: %s", mod)
        res.append(mod)
    return res
