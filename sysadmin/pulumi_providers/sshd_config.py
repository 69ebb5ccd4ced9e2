"""Pulumi dynamic provider for sshd_config directives."""

import re
from pathlib import Path
from typing import Any, Optional

import pulumi
from pulumi import Input, Output
from pulumi.dynamic import CreateResult, DiffResult, ResourceProvider, UpdateResult

from sysadmin.errors import DeploymentError

# sshd_config accepts whitespace or a single "=" between keyword and arguments
_KEYWORD_SEPARATOR = re.compile(r"\s*=\s*|\s+")


def _split(line: str) -> tuple[str, str] | None:
    """(keyword, arguments) of a directive line, None for blanks/comments."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    parts = _KEYWORD_SEPARATOR.split(stripped, maxsplit=1)
    return parts[0], parts[1].strip() if len(parts) > 1 else ""


def _global_section_end(lines: list[str]) -> int:
    """Index of the first Match block; global directives must precede it."""
    for index, line in enumerate(lines):
        parsed = _split(line)
        if parsed and parsed[0].lower() == "match":
            return index
    return len(lines)


def set_directive(text: str, directive: str, value: str, multiple: bool = False) -> str:
    """Return sshd_config text with ``directive value`` in its global section.

    Single-valued directives replace the first uncommented occurrence and
    drop later duplicates. Multi-valued directives (AcceptEnv, ...) are
    appended unless one occurrence already lists the value.
    """
    lines = text.splitlines()
    end = _global_section_end(lines)
    wanted = f"{directive} {value}"
    matches = [
        index
        for index, line in enumerate(lines[:end])
        if (parsed := _split(line)) and parsed[0].lower() == directive.lower()
    ]

    if multiple:
        for index in matches:
            if value in _split(lines[index])[1].split():
                return text
        lines.insert(end, wanted)
    elif matches:
        lines[matches[0]] = wanted
        for index in reversed(matches[1:]):
            del lines[index]
    else:
        lines.insert(end, wanted)

    return "\n".join(lines) + "\n"


def remove_directive(text: str, directive: str, value: str) -> str:
    """Return sshd_config text without the exact ``directive value`` line."""
    lines = [
        line
        for line in text.splitlines()
        if _split(line) != (directive, value)
    ]
    return "\n".join(lines) + "\n"


class SshdConfigProvider(ResourceProvider):
    """Keeps one directive in the SSH daemon configuration file.

    The file itself belongs to the SSH server installation; a missing file is
    an error rather than something this provider creates.
    """

    def _converge(self, props: dict[str, Any]) -> dict[str, Any]:
        path = Path(props["path"])
        if not path.exists():
            raise DeploymentError(
                f"{path} not found, is the SSH server installed?"
            )

        try:
            current = path.read_text(encoding="utf-8")
            updated = set_directive(
                current,
                props["directive"],
                props["value"],
                multiple=bool(props.get("multiple")),
            )
            if updated != current:
                path.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise DeploymentError(f"Failed to update {path}: {e}") from e

        return {
            "path": str(path),
            "directive": props["directive"],
            "value": props["value"],
            "multiple": bool(props.get("multiple")),
        }

    def create(self, props: dict[str, Any]) -> CreateResult:
        """Add the directive."""
        outs = self._converge(props)
        return CreateResult(
            id_=f"{props['path']}:{props['directive']}:{props['value']}",
            outs=outs,
        )

    def update(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> UpdateResult:
        """Set the directive to its new value."""
        return UpdateResult(outs=self._converge(new_props))

    def delete(self, id: str, props: dict[str, Any]) -> None:
        """Drop the managed line."""
        path = Path(props["path"])
        if not path.exists():
            return
        try:
            current = path.read_text(encoding="utf-8")
            updated = remove_directive(current, props["directive"], props["value"])
            if updated != current:
                path.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise DeploymentError(f"Failed to update {path}: {e}") from e

    def diff(
        self, id: str, old_props: dict[str, Any], new_props: dict[str, Any]
    ) -> DiffResult:
        """Any change to the directive replaces the managed line."""
        replaces = [
            key
            for key in ("path", "directive", "value", "multiple")
            if old_props.get(key) != new_props.get(key)
        ]
        return DiffResult(
            changes=bool(replaces),
            replaces=replaces,
            stables=[],
            delete_before_replace=True,
        )


class SshdConfig(pulumi.dynamic.Resource):
    """
    A Pulumi dynamic resource for one sshd_config directive.

    Args:
        name: Resource name
        path: sshd_config path
        directive: Directive keyword, e.g. "PermitUserEnvironment"
        value: Directive arguments
        multiple: Whether the directive may appear several times
        opts: Standard Pulumi resource options
    """

    directive: Output[str]
    value: Output[str]

    def __init__(
        self,
        name: str,
        path: Input[str],
        directive: Input[str],
        value: Input[str],
        multiple: Input[bool] = False,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__(
            SshdConfigProvider(),
            name,
            {
                "path": path,
                "directive": directive,
                "value": value,
                "multiple": multiple,
            },
            opts,
        )
