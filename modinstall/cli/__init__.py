"""modinstall 命令行接口

命令按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os
from typing import Any

import click

from modinstall import __version__
from modinstall.core.config import DEFAULT_CONFIG, init_config
from modinstall.core.exceptions import ModInstallError
from modinstall.services.container import get_container, reset_container
from modinstall.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


class _Group(click.Group):
    """业务异常统一转成 ClickException，原样输出消息"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except ModInstallError as e:
            raise click.ClickException(str(e)) from e


@click.group(cls=_Group)
@click.version_option(version=__version__)
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="配置文件路径")
def main(config: str) -> None:
    """modinstall - 声明式 pip 模块安装"""
    setup_logging(
        level=os.getenv("MODINSTALL_LOG_LEVEL", "INFO"),
        json_output=os.getenv("MODINSTALL_LOG_JSON", "") == "1",
    )
    init_config(config)
    reset_container()


from modinstall.cli.cmd_install import register as _reg_install  # noqa: E402
from modinstall.cli.cmd_pipx import register as _reg_pipx  # noqa: E402
from modinstall.cli.cmd_query import register as _reg_query  # noqa: E402

_reg_install(main)
_reg_pipx(main)
_reg_query(main)
