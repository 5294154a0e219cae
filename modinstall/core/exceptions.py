"""统一异常体系

所有业务异常继承 ModInstallError，CLI 层据此输出友好提示。
"""

from __future__ import annotations

from enum import Enum


class ModInstallError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ModInstallError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class DeclarationErrorReason(str, Enum):
    """模块声明解析失败的具体原因"""

    MISSING_VERSION_MARKER = "missing_version_marker"
    MISSING_REF_MARKER = "missing_ref_marker"
    UNVERSIONED_VCS_NAME = "unversioned_vcs_name"
    MALFORMED_FEATURE_SYNTAX = "malformed_feature_syntax"
    WRONG_PART_COUNT = "wrong_part_count"
    EMPTY_PART = "empty_part"
    VERSION_RANGE = "version_range"


class InvalidDeclaration(ModInstallError):
    """模块声明格式错误（消息中包含原始声明与期望格式）"""

    code = "INVALID_DECLARATION"

    def __init__(
        self,
        message: str,
        reason: DeclarationErrorReason = DeclarationErrorReason.EMPTY_PART,
        declaration: str = "",
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.declaration = declaration


class ExecutionFailed(ModInstallError):
    """包管理器命令返回非零或无法启动"""

    code = "EXECUTION_FAILED"

    def __init__(self, command: str, returncode: int, output: str = "") -> None:
        super().__init__(
            f"命令执行失败 (rc={returncode}): {command}"
            + (f"\n{output[:2000]}" if output else "")
        )
        self.command = command
        self.returncode = returncode
        self.output = output


class UninstallVerificationFailed(ModInstallError):
    """卸载命令成功返回但模块仍然存在"""

    code = "UNINSTALL_VERIFICATION_FAILED"

    def __init__(self, module: str, tool: str = "pip") -> None:
        super().__init__(
            f"卸载模块失败: {module}。请尝试升级 {tool}: 'pip install -U {tool}'，"
            "或手动删除该包（可能是权限不足）"
        )
        self.module = module
