"""
sysadmin - Provision a shared system administrator account.

A single local account is shared by several real administrators. Each of
them logs in with their own SSH key, and the key tags the session with
SYSADMIN_USER so that actions taken under the shared account can be
attributed to the person who performed them.

Declare the account and its members in a main.py, then plan and deploy it
with Pulumi through the ``sysadmin`` command.
"""

from .account import SysadminAccount
from .core import SysadminCore
from .member import SSHKey, SysadminUser
from .settings import SysadminSettings, get_settings, reload_settings

__version__ = "0.1.0"
__all__ = [
    "SSHKey",
    "SysadminAccount",
    "SysadminCore",
    "SysadminSettings",
    "SysadminUser",
    "get_settings",
    "reload_settings",
]
