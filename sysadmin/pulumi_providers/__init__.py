"""Pulumi dynamic providers for sysadmin resources."""

from .directory import Directory, DirectoryProvider
from .file import File, FileProvider
from .sshd_config import SshdConfig, SshdConfigProvider
from .user_account import UserAccount, UserAccountProvider

__all__ = [
    "Directory",
    "DirectoryProvider",
    "File",
    "FileProvider",
    "SshdConfig",
    "SshdConfigProvider",
    "UserAccount",
    "UserAccountProvider",
]
