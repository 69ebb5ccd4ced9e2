"""Members of the shared account and their SSH keys."""

import logging
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .params import LOGIN_PATTERN, SysadminParams
from .provisioning import SYSADMIN_USER_ENV
from .resources import (
    ConcatFragment,
    ConcatResource,
    Resource,
    TemplateFileResource,
    UserResource,
)

logger = logging.getLogger(__name__)

MEMBER_FRAGMENT_ORDER = 50

SSHKeyType = Literal[
    "ssh-rsa",
    "ssh-dss",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
    "sk-ssh-ed25519@openssh.com",
    "sk-ecdsa-sha2-nistp256@openssh.com",
]

_BASE64 = re.compile(r"^[A-Za-z0-9+/]+={0,3}$")
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


def _printable(value: str | None) -> str | None:
    if value is not None and _CONTROL_CHARACTERS.search(value):
        raise ValueError("must not contain control characters such as newlines")
    return value


class SSHKey(BaseModel):
    """Public key of a member, as found in an OpenSSH ``.pub`` file.

    Only the shape of the key is checked.
    """

    model_config = ConfigDict(frozen=True)

    type: SSHKeyType = "ssh-ed25519"
    key: str
    comment: str = ""

    @field_validator("key")
    @classmethod
    def validate_key(cls, value: str) -> str:
        if not _BASE64.match(value):
            raise ValueError("SSH public key must be base64 encoded")
        return value

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, value: str) -> str:
        return _printable(value)

    @classmethod
    def parse(cls, line: str) -> "SSHKey":
        """Build a key from a ``<type> <key> [comment]`` line."""
        parts = line.strip().split(None, 2)
        if len(parts) < 2:
            raise ValueError(f"Not an SSH public key line: {line!r}")
        return cls(type=parts[0], key=parts[1], comment=parts[2] if len(parts) > 2 else "")

    def authorized_keys_line(self, login: str) -> str:
        """authorized_keys entry tagging sessions with the member's login."""
        line = f'environment="{SYSADMIN_USER_ENV}={login}" {self.type} {self.key}'
        if self.comment:
            line += f" {self.comment}"
        return line + "\n"


class SysadminUser(Resource):
    """A real person allowed to use the shared account.

    Register members on the account they belong to:

        >>> account = SysadminAccount(login="localadmin")
        >>> account.add(SysadminUser(
        ...     name="svarrette",
        ...     firstname="Sebastien",
        ...     lastname="Varrette",
        ...     email="sebastien.varrette@uni.lu",
        ...     sshkeys=[SSHKey.parse("ssh-ed25519 AAAAC3Nza... svarrette@laptop")],
        ... ))

    Each member contributes a fragment to the account's config file, a record
    file under ``.sysadmins/`` and one authorized_keys entry per key.
    """

    name: str
    firstname: str | None = None
    lastname: str | None = None
    email: str | None = None
    sshkeys: list[SSHKey] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not LOGIN_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid login name")
        return value

    @field_validator("firstname", "lastname", "email")
    @classmethod
    def validate_text(cls, value: str | None) -> str | None:
        return _printable(value)

    @property
    def fullname(self) -> str:
        return " ".join(part for part in (self.firstname, self.lastname) if part)

    def fragment(self) -> ConcatFragment:
        """Config file fragment exporting the member's identity."""
        return ConcatFragment(
            name=f"member-{self.name}",
            order=MEMBER_FRAGMENT_ORDER,
            template="member.j2",
            variables={
                "login": self.name,
                "fullname": self.fullname,
                "email": self.email or "",
            },
        )

    def key_fragments(self) -> list[ConcatFragment]:
        """authorized_keys fragments, one per key."""
        return [
            ConcatFragment(
                name=f"{self.name}-{index:02d}",
                order=MEMBER_FRAGMENT_ORDER,
                content=key.authorized_keys_line(self.name),
            )
            for index, key in enumerate(self.sshkeys)
        ]

    def provision(
        self,
        params: SysadminParams,
        account: UserResource,
        records_dir: Resource,
        configfile: ConcatResource,
        authorized_keys: ConcatResource | None,
    ) -> list[Resource]:
        """Register this member on the account's resources.

        Returns:
            Resources declared for the member itself (its record file)
        """
        logger.debug(f"Registering member {self.name} on {params.login}")
        configfile.add_fragment(self.fragment())
        if authorized_keys is not None:
            for fragment in self.key_fragments():
                authorized_keys.add_fragment(fragment)

        record = TemplateFileResource(
            name=f"{params.login}-member-{self.name}",
            description=f"Record of member {self.name}",
            path=params.home_path(".sysadmins", self.name),
            template="record.j2",
            variables={
                "account": params.login,
                "login": self.name,
                "firstname": self.firstname,
                "lastname": self.lastname,
                "email": self.email,
                "sshkeys": [key.model_dump() for key in self.sshkeys],
            },
            mode=params.filemode,
            user=params.login,
            group=params.login,
            retain_on_delete=True,
        ).connect(account, records_dir)
        return [record]
