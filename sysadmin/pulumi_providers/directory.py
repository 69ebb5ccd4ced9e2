"""Pulumi dynamic provider for Directory resources."""

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider, UpdateResult

from sysadmin.errors import DeploymentError

from .file import apply_mode, apply_ownership

logger = logging.getLogger(__name__)


class DirectoryProvider(ResourceProvider):
    """Dynamic provider for directories.

    With ``recurse`` the owner and group are enforced on everything below the
    directory and the directory mode on every subdirectory. File modes below
    the directory are left as they are, and symlinks are skipped. With
    ``force`` a non-directory entry occupying the path is removed first.
    """

    def _converge(self, props: dict[str, Any]) -> dict[str, Any]:
        path = Path(props["path"])
        mode = props.get("mode")
        user = props.get("user")
        group = props.get("group")

        try:
            if path.is_symlink() or (path.exists() and not path.is_dir()):
                if not props.get("force"):
                    raise DeploymentError(
                        f"{path} exists and is not a directory (force is off)"
                    )
                path.unlink()

            path.mkdir(parents=True, exist_ok=True)
            apply_mode(path, mode)
            apply_ownership(path, user, group)

            if props.get("recurse"):
                for root, dirs, files in os.walk(path):
                    for entry in dirs + files:
                        child = Path(root, entry)
                        if child.is_symlink():
                            logger.debug(f"Skipping symlink {child}")
                            continue
                        if child.is_dir():
                            apply_mode(child, mode)
                        apply_ownership(child, user, group)
        except DeploymentError:
            raise
        except Exception as e:
            raise DeploymentError(f"Failed to manage directory {path}: {e}") from e

        return {
            "path": str(path),
            "mode": mode,
            "user": user,
            "group": group,
            "recurse": bool(props.get("recurse")),
            "force": bool(props.get("force")),
        }

    def create(self, props: dict[str, Any]) -> CreateResult:
        """Create the directory."""
        return CreateResult(id_=props["path"], outs=self._converge(props))

    def update(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> UpdateResult:
        """Bring an existing directory back to the desired state."""
        return UpdateResult(outs=self._converge(new_props))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """Remove the directory, with its contents when force is set."""
        path = Path(props["path"])
        try:
            if not path.exists():
                return
            if props.get("force"):
                shutil.rmtree(path)
            else:
                path.rmdir()
        except OSError as e:
            raise DeploymentError(f"Failed to remove directory {path}: {e}") from e

    def diff(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> DiffResult:
        """Path changes replace the directory, everything else updates it."""
        replaces = []
        if old_props.get("path") != new_props.get("path"):
            replaces.append("path")

        changes = [
            key
            for key in ("mode", "user", "group", "recurse", "force")
            if old_props.get(key) != new_props.get(key)
        ]

        return DiffResult(
            changes=bool(changes or replaces),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class Directory(pulumi.dynamic.Resource):
    """
    A Pulumi dynamic resource for managing directories.

    Args:
        name: Resource name
        path: Absolute path to the directory
        mode: Directory permissions
        user: Owner of the directory
        group: Group of the directory
        recurse: Enforce owner/group on the contents, mode on subdirectories
        force: Replace a non-directory entry at path, remove contents on delete
        opts: Standard Pulumi resource options
    """

    path: Output[str]
    mode: Output[str]

    def __init__(
        self,
        name: str,
        path: Input[str],
        mode: Input[str] | None = None,
        user: Input[str] | None = None,
        group: Input[str] | None = None,
        recurse: Input[bool] = False,
        force: Input[bool] = False,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            DirectoryProvider(),
            name,
            {
                "path": path,
                "mode": mode,
                "user": user,
                "group": group,
                "recurse": recurse,
                "force": force,
            },
            opts,
        )
