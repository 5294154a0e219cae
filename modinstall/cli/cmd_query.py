"""CLI — 查询命令（列表、更新检查、声明解析）"""

from __future__ import annotations

import click
import yaml

from modinstall.cli import _svc
from modinstall.core.module import parse_declaration, resolve_modules


def register(group: click.Group) -> None:
    group.add_command(list_modules)
    group.add_command(updates)
    group.add_command(parse)


@click.command(name="list")
@click.option("--all", "all_scopes", is_flag=True,
              help="使用 user 范围时也显示全局范围的模块")
def list_modules(all_scopes: bool) -> None:
    """列出环境中已安装的模块"""
    click.echo(_svc().installer.list_modules(all_scopes=all_scopes))


@click.command()
@click.option("--module", "-m", "modules", multiple=True, help="模块声明（可多次指定）")
@click.option("--all", "show_all", is_flag=True, help="显示全部可更新模块，而不只是声明的模块")
def updates(modules: tuple[str, ...], show_all: bool) -> None:
    """检查声明的模块是否有新版本"""
    lines = _svc().installer.check_updates(
        modules=list(modules) if modules else None, show_all=show_all,
    )
    if not lines:
        click.echo("所有模块均为最新版本。")
        return
    click.echo("以下模块可以更新:\n")
    for line in lines:
        click.echo(f"\t{line}")


@click.command()
@click.argument("declarations", nargs=-1, required=True)
@click.option("--resolve", is_flag=True, help="按名称去重（后声明覆盖）")
def parse(declarations: tuple[str, ...], resolve: bool) -> None:
    """解析模块声明并输出规范化结果"""
    if resolve:
        mods = resolve_modules(list(declarations))
    else:
        mods = [parse_declaration(d) for d in declarations]
    click.echo(yaml.safe_dump(
        [m.to_dict() for m in mods], allow_unicode=True, sort_keys=False,
    ).rstrip())
