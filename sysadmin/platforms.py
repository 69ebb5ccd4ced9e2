"""Operating system classification and per-family provisioning profiles."""

import logging
import platform

from .errors import UnsupportedPlatformError
from .params import SysadminParams
from .provisioning import provision_account
from .resources.base import Resource

logger = logging.getLogger(__name__)

MODULE_NAME = "sysadmin"

OS_FAMILIES = {
    "debian": ("debian", "ubuntu"),
    "redhat": ("redhat", "fedora", "centos"),
}


def detect_os_name() -> str:
    """Name of the running operating system, lowercase.

    Reads ``ID`` from os-release; falls back to the kernel name on systems
    without one (which then fails classification).
    """
    try:
        return platform.freedesktop_os_release()["ID"].lower()
    except (OSError, KeyError):
        return platform.system().lower()


def classify_os(os_name: str) -> str:
    """Map an operating system name to its family.

    Raises:
        UnsupportedPlatformError: If the OS belongs to no known family
    """
    normalized = os_name.strip().lower()
    for family, names in OS_FAMILIES.items():
        if normalized in names:
            return family
    raise UnsupportedPlatformError(MODULE_NAME, os_name)


class OSProfile:
    """Provisioning strategy for one OS family.

    Subclasses override only what differs on their family; everything else is
    the common plan.
    """

    family: str = ""

    def provision(self, params: SysadminParams) -> list[Resource]:
        return provision_account(params)


class DebianProfile(OSProfile):
    family = "debian"


class RedHatProfile(OSProfile):
    family = "redhat"


PROFILES: dict[str, type[OSProfile]] = {
    DebianProfile.family: DebianProfile,
    RedHatProfile.family: RedHatProfile,
}


def get_profile(os_name: str) -> OSProfile:
    """Profile for the given operating system.

    Raises:
        UnsupportedPlatformError: If the OS belongs to no known family
    """
    family = classify_os(os_name)
    logger.debug(f"Operating system {os_name} classified as {family}")
    return PROFILES[family]()
