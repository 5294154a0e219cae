"""服务容器

持有配置、命令执行器和环境锁注册表；同一容器内的服务共享同一个
LockRegistry，保证指向同一 python 环境的并行安装互斥。

用法:
    container = ServiceContainer()
    report = container.installer.install()

    # 测试中注入录制执行器
    container = ServiceContainer(config=cfg, executor=FakeExecutor())
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from modinstall.core.env_lock import LockRegistry
from modinstall.utils.shell import CommandExecutor, LocalExecutor

if TYPE_CHECKING:
    from modinstall.core.config import Config
    from modinstall.services.install_service import InstallService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        config: Config | None = None,
        executor: CommandExecutor | None = None,
        locks: LockRegistry | None = None,
    ) -> None:
        if config is None:
            from modinstall.core.config import get_config
            config = get_config()
        self._config = config
        self._executor = executor or LocalExecutor()
        self._locks = locks or LockRegistry()
        self._instances: dict[str, object] = {}

    @property
    def config(self) -> Config:
        return self._config

    @property
    def locks(self) -> LockRegistry:
        return self._locks

    @property
    def executor(self) -> CommandExecutor:
        return self._executor

    @property
    def installer(self) -> InstallService:
        if "installer" not in self._instances:
            from modinstall.services.install_service import InstallService
            self._instances["installer"] = InstallService(
                self._config, self._executor, self._locks,
            )
        return self._instances["installer"]  # type: ignore[return-value]


_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（配置重新加载后或测试中使用）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
