"""Pulumi dynamic provider for local user accounts.

Accounts are managed with the shadow-utils commands (useradd, usermod,
userdel), which behave the same on Debian and Red Hat families.
"""

import grp
import logging
import pwd
import subprocess
from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider, UpdateResult

from sysadmin.errors import DeploymentError

logger = logging.getLogger(__name__)


class UserAccountProvider(ResourceProvider):
    """Dynamic provider for a local account.

    ``present=False`` is a managed state of its own: converging it removes
    the account if it exists. The home directory is never removed.
    """

    def _run_command(self, cmd: list[str]) -> str:
        """Run an account management command.

        Raises:
            DeploymentError: If the command exits non-zero
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd, check=True, capture_output=True, text=True
            )
        except subprocess.CalledProcessError as e:
            raise DeploymentError(
                f"Command {' '.join(cmd)} failed: {e.stderr.strip() or e.returncode}"
            ) from e
        except FileNotFoundError as e:
            raise DeploymentError(f"Command {cmd[0]} not found") from e
        return result.stdout

    def _lookup(self, login: str) -> pwd.struct_passwd | None:
        try:
            return pwd.getpwnam(login)
        except KeyError:
            return None

    def _supplementary_groups(self, login: str) -> list[str]:
        return sorted(g.gr_name for g in grp.getgrall() if login in g.gr_mem)

    def _build_useradd(self, props: dict[str, Any]) -> list[str]:
        cmd = ["useradd", "--user-group", "--no-create-home"]
        if props.get("system"):
            cmd.append("--system")
        if props.get("home"):
            cmd.extend(["--home-dir", props["home"]])
        if props.get("shell"):
            cmd.extend(["--shell", props["shell"]])
        if props.get("groups"):
            cmd.extend(["--groups", ",".join(props["groups"])])
        cmd.append(props["login"])
        return cmd

    def _build_usermod(
        self, props: dict[str, Any], entry: pwd.struct_passwd
    ) -> list[str] | None:
        """usermod command reconciling an existing account, None if in sync."""
        login = props["login"]
        options = []
        if props.get("home") and entry.pw_dir != props["home"]:
            options.extend(["--home", props["home"]])
        if props.get("shell") and entry.pw_shell != props["shell"]:
            options.extend(["--shell", props["shell"]])
        wanted_groups = sorted(props.get("groups") or [])
        if self._supplementary_groups(login) != wanted_groups:
            options.extend(["--groups", ",".join(wanted_groups)])
        if not options:
            return None
        return ["usermod", *options, login]

    def _converge(self, props: dict[str, Any]) -> dict[str, Any]:
        login = props["login"]
        entry = self._lookup(login)

        if props.get("present", True):
            if entry is None:
                logger.info(f"Creating account {login}")
                self._run_command(self._build_useradd(props))
            else:
                cmd = self._build_usermod(props, entry)
                if cmd is not None:
                    logger.info(f"Updating account {login}")
                    self._run_command(cmd)
        elif entry is not None:
            logger.info(f"Removing account {login} (home directory kept)")
            self._run_command(["userdel", login])

        return {
            "login": login,
            "present": bool(props.get("present", True)),
            "home": props.get("home"),
            "shell": props.get("shell"),
            "groups": sorted(props.get("groups") or []),
            "system": bool(props.get("system")),
        }

    def create(self, props: dict[str, Any]) -> CreateResult:
        """Bring the account to its declared state."""
        return CreateResult(id_=props["login"], outs=self._converge(props))

    def update(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> UpdateResult:
        """Reconcile the account after a declared change."""
        return UpdateResult(outs=self._converge(new_props))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """Remove the account when it is no longer declared."""
        if props.get("present", True) and self._lookup(props["login"]) is not None:
            self._run_command(["userdel", props["login"]])

    def diff(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> DiffResult:
        """A new login replaces the account, other fields update it in place."""
        replaces = []
        if old_props.get("login") != new_props.get("login"):
            replaces.append("login")

        changes = [
            key
            for key in ("present", "home", "shell", "system")
            if old_props.get(key) != new_props.get(key)
        ]
        if sorted(old_props.get("groups") or []) != sorted(
            new_props.get("groups") or []
        ):
            changes.append("groups")

        return DiffResult(
            changes=bool(changes or replaces),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class UserAccount(pulumi.dynamic.Resource):
    """
    A Pulumi dynamic resource for managing a local account.

    Args:
        name: Resource name
        login: Account name
        present: Whether the account should exist
        home: Home directory
        shell: Login shell
        groups: Supplementary groups
        system: Create a system account
        opts: Standard Pulumi resource options
    """

    login: Output[str]
    home: Output[str]

    def __init__(
        self,
        name: str,
        login: Input[str],
        present: Input[bool] = True,
        home: Input[str] | None = None,
        shell: Input[str] | None = None,
        groups: Input[list[str]] | None = None,
        system: Input[bool] = False,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            UserAccountProvider(),
            name,
            {
                "login": login,
                "present": present,
                "home": home,
                "shell": shell,
                "groups": groups or [],
                "system": system,
            },
            opts,
        )
