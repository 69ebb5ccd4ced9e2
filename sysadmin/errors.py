"""
Sysadmin errors.
"""

class SysadminError(Exception):
    """Base exception for all sysadmin errors."""
    pass

class DeploymentError(SysadminError):
    """Errors while reconciling a declared resource."""
    pass

class ConfigurationError(SysadminError):
    """Errors in configuration."""
    pass

class ParameterError(ConfigurationError):
    """A module parameter holds a value outside its allowed set."""
    pass

class UnsupportedPlatformError(ConfigurationError):
    """The target operating system has no provisioning profile."""

    def __init__(self, module: str, os_name: str):
        self.module = module
        self.os_name = os_name
        super().__init__(f"The {module} module is not supported on {os_name}")
