"""模块声明处理

- models.py: ModuleSpec 数据模型
- parser.py: 声明解析（普通 / extras / VCS）
- resolver.py: 去重（后声明覆盖）
- planner.py: 与 freeze 结果比对，得到安装计划
"""

from modinstall.core.module.models import ModuleKind, ModuleSpec
from modinstall.core.module.parser import find_module_declaration, parse_declaration
from modinstall.core.module.planner import plan_installs
from modinstall.core.module.resolver import ModuleSet, resolve_modules

__all__ = [
    "ModuleKind",
    "ModuleSpec",
    "ModuleSet",
    "find_module_declaration",
    "parse_declaration",
    "plan_installs",
    "resolve_modules",
]
