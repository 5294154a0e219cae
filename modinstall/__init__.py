"""modinstall - 声明式 pip 模块安装工具"""

__version__ = "0.1.0"
