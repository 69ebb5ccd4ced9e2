"""User resource for creating and managing system users."""

from typing import Any

from pydantic import Field

from .base import Resource


class UserResource(Resource):
    """User resource - creates, updates and removes a local account.

    Declaratively define an account with its home directory path, shell and
    supplementary groups. The account's primary group is a group of the same
    name, so files can be owned ``login:login``.

    Attributes:
        name: Login of the account (required)
        description: Optional human-readable description of the user
        home: Home directory path (the directory itself is a separate resource)
        shell: Login shell (default: /bin/bash)
        groups: Supplementary groups
        present: Whether the account should exist (default: True)
        system: Whether this is a system account (default: False)

    Examples:
        >>> UserResource(name="localadmin", home="/var/lib/localadmin")

        Account removal:
        >>> UserResource(name="localadmin", present=False)
    """

    name: str
    home: str | None = None
    shell: str | None = "/bin/bash"
    groups: list[str] = Field(default_factory=list)
    present: bool = True
    system: bool = False

    def to_pulumi(self):
        """Create the UserAccount dynamic resource."""
        from sysadmin.pulumi_providers import UserAccount

        account = UserAccount(
            self.name,
            login=self.name,
            present=self.present,
            home=self.home,
            shell=self.shell,
            groups=list(self.groups),
            system=self.system,
            opts=self._resource_options(),
        )
        self._pulumi_resource = account
        return account

    def describe(self) -> dict[str, Any]:
        if not self.present:
            return {"type": self.__class__.__name__, "name": self.name, "present": False}
        return super().describe()
