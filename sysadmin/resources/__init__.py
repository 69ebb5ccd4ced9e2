"""
Sysadmin Resources - Pydantic models describing the desired state of a host.
"""

from .base import Resource
from .concat import ConcatFragment, ConcatResource
from .directory import DirectoryResource
from .file import FileResource
from .sshd import SshdConfigResource
from .template_file import TemplateFileResource
from .user import UserResource

__all__ = [
    "ConcatFragment",
    "ConcatResource",
    "DirectoryResource",
    "FileResource",
    "Resource",
    "SshdConfigResource",
    "TemplateFileResource",
    "UserResource",
]
