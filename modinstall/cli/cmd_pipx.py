"""CLI — pipx 命令（run / inject）"""

from __future__ import annotations

import click

from modinstall.cli import _svc


def register(group: click.Group) -> None:
    group.add_command(run)
    group.add_command(inject)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("app")
@click.argument("params", nargs=-1, type=click.UNPROCESSED)
def run(app: str, params: tuple[str, ...]) -> None:
    """通过 pipx 在临时环境中运行应用，APP 之后的参数原样传给应用"""
    _svc().installer.run_app(app, list(params))


@click.command()
@click.argument("package")
@click.argument("dependencies", nargs=-1, required=True)
@click.option("--pipx-arg", "params", multiple=True,
              help="追加给 pipx inject 的参数（可多次指定），如 --include-apps")
def inject(package: str, dependencies: tuple[str, ...], params: tuple[str, ...]) -> None:
    """把依赖注入 pipx 管理的应用环境（应用未安装时先安装）"""
    _svc().installer.inject(package, dependencies, list(params))
    click.echo(f"已注入 {package}: {' '.join(dependencies)}")
