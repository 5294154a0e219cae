"""CLI — 安装相关命令"""

from __future__ import annotations

from pathlib import Path

import click

from modinstall.cli import _svc
from modinstall.utils.yaml_io import save_yaml


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(uninstall)
    group.add_command(plan)


@click.command()
@click.option("--module", "-m", "modules", multiple=True,
              help="模块声明，如 requests:2.31.0（可多次指定，覆盖配置中的 modules）")
@click.option("--requirements", "-r", default=None, help="requirements 文件路径")
@click.option("--strict/--no-strict", default=None,
              help="严格模式: 由本工具解析 requirements，否则交给 pip -r")
@click.option("--force", is_flag=True, help="忽略已安装状态，全部重新安装")
def install(
    modules: tuple[str, ...], requirements: str | None,
    strict: bool | None, force: bool,
) -> None:
    """安装声明的模块（已安装且版本一致的模块会跳过）"""
    report = _svc().installer.install(
        modules=list(modules) if modules else None,
        requirements=requirements, strict=strict, force=force or None,
    )
    if report.skipped:
        click.echo("没有声明任何模块。")
        return
    if not report.changed:
        click.echo("所有模块均已安装且版本正确。")
        return
    if report.requirements_installed:
        click.echo("已安装 requirements 文件中的模块")
    for item in report.installed:
        click.echo(f"  已安装: {item}")


@click.command()
@click.argument("name")
def uninstall(name: str) -> None:
    """卸载模块并确认已删除"""
    _svc().installer.uninstall(name)
    click.echo(f"已卸载: {name}")


@click.command()
@click.option("--module", "-m", "modules", multiple=True, help="模块声明（可多次指定）")
@click.option("--requirements", "-r", default=None, help="requirements 文件路径")
@click.option("--freeze", "freeze_file", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="使用 freeze 输出文件代替实时查询")
@click.option("--force", is_flag=True, help="忽略已安装状态")
@click.option("--output", "-o", default=None, help="把安装计划写入 YAML 文件")
def plan(
    modules: tuple[str, ...], requirements: str | None,
    freeze_file: str | None, force: bool, output: str | None,
) -> None:
    """只计算安装计划，不执行安装"""
    from modinstall.core.module import plan_installs

    svc = _svc().installer
    mods = svc.module_set(
        modules=list(modules) if modules else None,
        requirements=requirements, strict=True,
    )
    if freeze_file:
        installed = Path(freeze_file).read_text(encoding="utf-8").splitlines()
        todo = plan_installs(mods.modules, installed, force_all=force)
    else:
        todo = svc.modules_to_install(mods, force=force or None)

    if output:
        save_yaml(output, [m.to_dict() for m in todo])
        click.echo(f"安装计划已写入: {output}")
    if not todo:
        click.echo("所有模块均已安装且版本正确。")
        return
    for mod in todo:
        click.echo(f"  {mod.install_string()}")
