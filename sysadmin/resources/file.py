"""File resource for creating files with explicit content."""

from pydantic import Field, field_validator

from .base import Resource


class FileResource(Resource):
    """File resource - creates a file with the given content.

    Usage:
        FileResource(
            name="localadmin-motd",
            path="/var/lib/localadmin/motd",
            content="Shared account, log in with your own key\\n",
            mode="0640",
        )
    """

    name: str
    path: str = Field(..., description="Absolute path of the file")
    content: str = Field("", description="File content")
    mode: str = Field(
        "0644",
        description="Unix file permissions in octal",
        examples=["0644", "0640", "0600"],
    )
    user: str | None = Field(None, description="File owner username")
    group: str | None = Field(None, description="File group name")

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"File path must be absolute, got '{value}'")
        return value

    def rendered(self) -> str:
        """Content written to disk."""
        return self.content

    def to_pulumi(self):
        """Create Pulumi File resource using custom dynamic provider.

        Returns:
            Pulumi File resource
        """
        from sysadmin.pulumi_providers import File

        file_resource = File(
            self.name,
            path=self.path,
            content=self.rendered(),
            mode=self.mode,
            user=self.user,
            group=self.group,
            opts=self._resource_options(),
        )

        # Store for dependency tracking
        self._pulumi_resource = file_resource

        return file_resource
