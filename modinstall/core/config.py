"""集中配置管理

从 YAML 文件加载 + 编程式覆盖，CLI 入口显式初始化。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields

from modinstall.core.exceptions import ConfigError
from modinstall.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "modinstall.yml"

_LIST_FIELDS = ("modules", "trusted_hosts", "extra_index_urls", "install_options")


@dataclass
class Config:
    """安装配置"""

    # python 环境
    python_path: str = ""          # 二进制所在目录（如虚拟环境的 bin/），空则用 PATH
    python_binary: str = ""        # 空则 Windows 用 python，其他平台用 python3
    work_dir: str = ""
    environment: dict[str, str] = field(default_factory=dict)
    timeout: int | None = None

    # 模块声明
    modules: list[str] = field(default_factory=list)
    requirements: str = "requirements.txt"
    strict_requirements: bool = True

    # pip 参数
    user_scope: bool = True
    use_cache: bool = True
    trusted_hosts: list[str] = field(default_factory=list)
    extra_index_urls: list[str] = field(default_factory=list)
    install_options: list[str] = field(default_factory=list)

    # 安装行为
    always_install: bool = False
    show_installed_versions: bool = False

    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            value = getattr(self, name)
            if value is None:
                setattr(self, name, [])
            elif isinstance(value, str) or not isinstance(value, list):
                raise ConfigError(
                    f"配置项 '{name}' 必须是列表，实际为: {type(value).__name__}"
                )
        if not isinstance(self.environment, dict):
            raise ConfigError("配置项 'environment' 必须是映射")

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in fields(cls)} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        if extra:
            logger.warning("未知配置项已忽略: %s", ", ".join(extra))
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局配置，由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
