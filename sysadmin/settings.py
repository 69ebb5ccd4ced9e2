"""
Sysadmin Settings - Configuration management using Pydantic Settings.

Loads module parameter defaults and runtime configuration from environment
variables and .env files.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SysadminSettings(BaseSettings):
    """
    Sysadmin configuration settings.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file in current directory
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="SYSADMIN_",  # All sysadmin env vars must start with SYSADMIN_
    )

    # Account parameter defaults
    login: str = Field(
        default="localuser",
        description="Login name of the shared account (env: SYSADMIN_LOGIN)",
    )

    members: list[str] = Field(
        default_factory=lambda: ["svarrette", "hcartiaux"],
        description="Members allowed to use the shared account (env: SYSADMIN_MEMBERS, JSON list)",
    )

    ensure: str = Field(
        default="present",
        description="Whether the account should exist: present or absent (env: SYSADMIN_ENSURE)",
    )

    homebasedir: str = Field(
        default="/var/lib",
        description="Directory holding the account home (env: SYSADMIN_HOMEBASEDIR)",
    )

    configfilename: str = Field(
        default=".sysadminrc",
        description="Name of the assembled config file in the home directory (env: SYSADMIN_CONFIGFILENAME)",
    )

    dirmode: str = Field(
        default="0750",
        description="Permissions of managed directories (env: SYSADMIN_DIRMODE)",
    )

    filemode: str = Field(
        default="0640",
        description="Permissions of managed files (env: SYSADMIN_FILEMODE)",
    )

    # Platform
    os_name: str | None = Field(
        default=None,
        description="Override the detected operating system name (env: SYSADMIN_OS_NAME)",
    )

    sshd_config_path: str = Field(
        default="/etc/ssh/sshd_config",
        description="SSH daemon configuration file (env: SYSADMIN_SSHD_CONFIG_PATH)",
    )

    # Pulumi Configuration
    pulumi_state_dir: Path = Field(
        default=Path(".sysadmin/state"),
        description="Local Pulumi state backend directory (env: SYSADMIN_PULUMI_STATE_DIR)",
    )

    pulumi_config_passphrase: str = Field(
        default="sysadmin",
        description="Pulumi passphrase for state encryption (env: PULUMI_CONFIG_PASSPHRASE)",
        validation_alias="PULUMI_CONFIG_PASSPHRASE",  # Also accept standard Pulumi env var
    )

    stack_name: str = Field(
        default="dev",
        description="Pulumi stack name (env: SYSADMIN_STACK_NAME)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR) (env: SYSADMIN_LOG_LEVEL)",
    )


# Global settings instance
_settings: SysadminSettings | None = None


def get_settings() -> SysadminSettings:
    """
    Get the global settings instance.

    Creates the settings instance on first call, then returns cached instance.

    Returns:
        SysadminSettings instance
    """
    global _settings
    if _settings is None:
        _settings = SysadminSettings()
    return _settings


def reload_settings() -> SysadminSettings:
    """
    Reload settings from environment/files.

    Useful for testing or when .env file changes.

    Returns:
        Fresh SysadminSettings instance
    """
    global _settings
    _settings = SysadminSettings()
    return _settings
