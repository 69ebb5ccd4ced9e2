"""Directory resource for creating and managing directories."""

from pydantic import field_validator

from .base import Resource


class DirectoryResource(Resource):
    """Directory resource - creates a directory with owner, group and mode.

    Usage:
        DirectoryResource(
            name="localadmin-ssh",
            path="/var/lib/localadmin/.ssh",
            mode="0750",
            user="localadmin",
            group="localadmin",
            recurse=True,
            force=True,
        )

    Attributes:
        name: Resource identifier (required)
        path: Absolute path to the directory (required)
        mode: Directory permissions as octal string
        user: Owner username (optional)
        group: Group name (optional)
        recurse: Enforce owner/group below the directory and the mode on
            its subdirectories, file modes and symlinks are left alone
        force: Replace whatever occupies the path when it is not a directory
    """

    name: str
    path: str
    mode: str | None = None
    user: str | None = None
    group: str | None = None
    recurse: bool = False
    force: bool = False

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"Directory path must be absolute, got '{value}'")
        return value

    def to_pulumi(self):
        """Create the Directory dynamic resource."""
        from sysadmin.pulumi_providers import Directory

        directory = Directory(
            self.name,
            path=self.path,
            mode=self.mode,
            user=self.user,
            group=self.group,
            recurse=self.recurse,
            force=self.force,
            opts=self._resource_options(),
        )
        self._pulumi_resource = directory
        return directory
