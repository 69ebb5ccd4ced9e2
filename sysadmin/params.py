"""Resolved parameters for one provisioning run."""

import re
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from .settings import SysadminSettings, get_settings

ENSURE_VALUES = ("present", "absent")

# useradd(8) NAME_REGEX default
LOGIN_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*[$]?$")


class SysadminParams(BaseModel):
    """Immutable parameter set for the shared account.

    Built once at the start of a run from ``SysadminSettings`` plus explicit
    overrides, then passed to the provisioning code. ``ensure`` is kept as a
    plain string so that the account policy can report an invalid value
    itself.

    Attributes:
        login: Login name of the shared account
        groups: Supplementary groups of the account
        members: Logins of the people allowed to use the account
        ensure: ``present`` or ``absent``
        homebasedir: Directory holding the account home
        configfilename: Name of the assembled config file
        dirmode: Octal permissions of managed directories
        filemode: Octal permissions of managed files
    """

    model_config = ConfigDict(frozen=True)

    login: str
    groups: tuple[str, ...] = ()
    members: tuple[str, ...] = ()
    ensure: str = "present"
    homebasedir: str = "/var/lib"
    configfilename: str = ".sysadminrc"
    dirmode: str = "0750"
    filemode: str = "0640"
    shell: str = "/bin/bash"
    sshd_config_path: str = "/etc/ssh/sshd_config"

    @field_validator("dirmode", "filemode")
    @classmethod
    def validate_mode(cls, value: str) -> str:
        """Modes are octal strings such as ``0750``."""
        try:
            int(value, 8)
        except ValueError:
            raise ValueError(f"'{value}' is not an octal file mode") from None
        return value

    @field_validator("groups", "members")
    @classmethod
    def dedupe(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Keep first occurrence order, drop duplicates."""
        return tuple(dict.fromkeys(value))

    @classmethod
    def from_settings(
        cls, settings: SysadminSettings | None = None, **overrides: Any
    ) -> "SysadminParams":
        """Build parameters from settings, letting non-None overrides win.

        Args:
            settings: Settings to read defaults from (global settings if None)
            **overrides: Explicit parameter values; None means "use default"

        Returns:
            Frozen SysadminParams
        """
        settings = settings or get_settings()
        values = {
            "login": settings.login,
            "members": tuple(settings.members),
            "ensure": settings.ensure,
            "homebasedir": settings.homebasedir,
            "configfilename": settings.configfilename,
            "dirmode": settings.dirmode,
            "filemode": settings.filemode,
            "sshd_config_path": settings.sshd_config_path,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def homedir(self) -> str:
        """Home directory of the shared account."""
        return str(PurePosixPath(self.homebasedir) / self.login)

    @property
    def configfile(self) -> str:
        """Path of the assembled config file."""
        return str(PurePosixPath(self.homedir) / self.configfilename)

    def home_path(self, *parts: str) -> str:
        """Path below the home directory."""
        return str(PurePosixPath(self.homedir, *parts))
