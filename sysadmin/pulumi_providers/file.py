"""Pulumi dynamic provider for File resources."""

import grp
import logging
import os
import pwd
import stat
from pathlib import Path
from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider, UpdateResult

from sysadmin.errors import DeploymentError

logger = logging.getLogger(__name__)


def apply_ownership(path: Path, user: str | None, group: str | None) -> bool:
    """Set owner and group of path when they differ.

    A symlink gets its own ownership changed, never its target's.

    Returns:
        True if ownership was changed
    """
    if user is None and group is None:
        return False

    uid = pwd.getpwnam(user).pw_uid if user is not None else -1
    gid = grp.getgrnam(group).gr_gid if group is not None else -1
    current = path.lstat()
    if uid in (-1, current.st_uid) and gid in (-1, current.st_gid):
        return False
    os.chown(path, uid, gid, follow_symlinks=False)
    return True


def apply_mode(path: Path, mode: str | None) -> bool:
    """Set permission bits of path when they differ.

    Symlinks are left alone, chmod would change their target.

    Returns:
        True if the mode was changed
    """
    if mode is None or path.is_symlink():
        return False

    wanted = int(mode, 8)
    if stat.S_IMODE(path.stat().st_mode) == wanted:
        return False
    os.chmod(path, wanted)
    return True


class FileProvider(ResourceProvider):
    """Dynamic provider for File resources using pure Python file I/O.

    The file is only rewritten when its content differs from the desired
    content, so re-applying an unchanged resource leaves it untouched.
    """

    def _converge(self, props: dict[str, Any]) -> dict[str, Any]:
        path = props["path"]
        content = props["content"]
        mode = props.get("mode", "0644")

        try:
            file_path = Path(path)
            file_path.parent.mkdir(parents=True, exist_ok=True)

            if file_path.is_symlink():
                logger.warning(f"Replacing symlink {path} with a regular file")
                file_path.unlink()
            elif file_path.is_dir():
                raise DeploymentError(f"{path} exists and is a directory")

            current = (
                file_path.read_text(encoding="utf-8")
                if file_path.exists()
                else None
            )
            if current != content:
                file_path.write_text(content, encoding="utf-8")

            apply_mode(file_path, mode)
            apply_ownership(file_path, props.get("user"), props.get("group"))
        except DeploymentError:
            raise
        except Exception as e:
            raise DeploymentError(f"Failed to write file {path}: {e}") from e

        return {
            "path": path,
            "content": content,
            "mode": mode,
            "user": props.get("user"),
            "group": props.get("group"),
            "size": len(content),
        }

    def create(self, props: dict[str, Any]) -> CreateResult:
        """
        Create a file.

        Args:
            props: Resource properties

        Returns:
            CreateResult with the file path as ID
        """
        outs = self._converge(props)
        return CreateResult(id_=props["path"], outs=outs)

    def update(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> UpdateResult:
        """
        Update a file.

        Args:
            id: Resource ID (file path)
            old_props: Old resource properties
            new_props: New resource properties

        Returns:
            UpdateResult with outputs
        """
        return UpdateResult(outs=self._converge(new_props))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """
        Delete a file.

        Args:
            id: Resource ID (file path)
            props: Resource properties
        """
        path = props["path"]

        try:
            file_path = Path(path)
            if file_path.exists():
                file_path.unlink()
        except Exception as e:
            raise DeploymentError(f"Failed to delete file {path}: {e}") from e

    def diff(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> DiffResult:
        """
        Check if file needs update.

        Args:
            id: Resource ID (file path)
            old_props: Old resource properties
            new_props: New resource properties

        Returns:
            DiffResult indicating if changes are needed
        """
        changes = []
        replaces = []

        # Path change requires replacement
        if old_props.get("path") != new_props.get("path"):
            replaces.append("path")

        for key in ("content", "mode", "user", "group"):
            if old_props.get(key) != new_props.get(key):
                changes.append(key)

        return DiffResult(
            changes=bool(changes or replaces),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class File(pulumi.dynamic.Resource):
    """
    A Pulumi dynamic resource for managing files.

    Args:
        name: Resource name
        path: Absolute path to the file
        content: File content
        mode: File permissions (default: "0644")
        user: Owner of the file
        group: Group of the file
        opts: Standard Pulumi resource options
    """

    path: Output[str]
    content: Output[str]
    mode: Output[str]
    size: Output[int]

    def __init__(
        self,
        name: str,
        path: Input[str],
        content: Input[str],
        mode: Input[str] = "0644",
        user: Input[str] | None = None,
        group: Input[str] | None = None,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            FileProvider(),
            name,
            {
                "path": path,
                "content": content,
                "mode": mode,
                "user": user,
                "group": group,
                "size": None,
            },
            opts,
        )
