"""
Pulumi Compiler - deploys planned resources through the Automation API.

Pulumi's engine is the convergence engine: it compares the declared
resources with the recorded state and only calls the dynamic providers of
resources whose inputs changed. State lives in a local ``file://`` backend.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pulumi import automation as auto

from .resources.base import Resource
from .settings import SysadminSettings, get_settings

logger = logging.getLogger(__name__)


def _log_output(message: str) -> None:
    logger.debug(message.rstrip())


class PulumiCompiler:
    """Runs up, preview and destroy for the declared roots on one stack."""

    def __init__(self, settings: SysadminSettings | None = None):
        """
        Args:
            settings: Settings providing the state directory, stack name and
                passphrase (default: global settings)
        """
        settings = settings or get_settings()
        self.state_dir = Path(settings.pulumi_state_dir).absolute()
        self.stack_name = settings.stack_name

        # The local backend encrypts secrets; an exported passphrase wins
        os.environ.setdefault(
            "PULUMI_CONFIG_PASSPHRASE", settings.pulumi_config_passphrase
        )

        logger.info(
            f"Pulumi stack {self.stack_name}, state in {self.state_dir}"
        )

    def create_program(self, roots: list[Resource]) -> Callable[[], None]:
        """Pulumi program registering every root, accounts compile their plan."""

        def program() -> None:
            logger.info(f"Registering {len(roots)} root resources")
            for root in roots:
                try:
                    root.to_pulumi()
                except Exception as e:
                    logger.error(f"Cannot register {root.name}: {e}")
                    raise
                logger.debug(f"Registered {type(root).__name__} {root.name}")

        return program

    def _workspace_options(self, project_name: str) -> auto.LocalWorkspaceOptions:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        return auto.LocalWorkspaceOptions(
            project_settings=auto.ProjectSettings(
                name=project_name,
                runtime="python",
                backend=auto.ProjectBackend(url=self.state_dir.as_uri()),
            ),
        )

    def _stack(self, project_name: str, program: Callable, create: bool = True) -> auto.Stack:
        """Stack of the project, created on first use unless ``create`` is off."""
        select = auto.create_or_select_stack if create else auto.select_stack
        return select(
            stack_name=self.stack_name,
            project_name=project_name,
            program=program,
            opts=self._workspace_options(project_name),
        )

    def _run(
        self,
        operation: str,
        project_name: str,
        program: Callable,
        summarize: Callable[[Any], dict[str, Any]],
        create: bool = True,
    ) -> dict[str, Any]:
        """Run one stack operation and summarize its result.

        Failures are reported in the returned dict rather than raised, so the
        CLI can print them next to the rest of the run.
        """
        logger.info(f"Pulumi {operation} on {project_name}/{self.stack_name}")
        try:
            stack = self._stack(project_name, program, create=create)
            result = getattr(stack, operation)(on_output=_log_output)
        except Exception as e:
            logger.error(f"Pulumi {operation} failed: {e}")
            return {"success": False, "error": str(e), "summary": None}

        summary = summarize(result)
        logger.info(f"Pulumi {operation} finished: {summary}")
        return {"success": True, "summary": summary}

    async def apply(
        self, roots: list[Resource], project_name: str = "sysadmin"
    ) -> dict[str, Any]:
        """Deploy the roots (``pulumi up``).

        Returns:
            ``success``, ``summary`` (result and resource changes) and the
            stack ``outputs``
        """
        outputs: dict[str, Any] = {}

        def summarize(up_result) -> dict[str, Any]:
            outputs.update({k: v.value for k, v in up_result.outputs.items()})
            return {
                "result": up_result.summary.result,
                "resource_changes": up_result.summary.resource_changes or {},
            }

        result = self._run("up", project_name, self.create_program(roots), summarize)
        result["outputs"] = outputs
        return result

    async def preview(
        self, roots: list[Resource], project_name: str = "sysadmin"
    ) -> dict[str, Any]:
        """Compute the changes ``apply`` would make.

        Returns:
            ``success`` and a ``summary`` with the per-operation counts and
            their total
        """

        def summarize(preview_result) -> dict[str, Any]:
            changes = preview_result.change_summary
            return {
                "change_summary": changes,
                "total_changes": sum(
                    changes.get(op, 0) for op in ("create", "update", "delete", "replace")
                ),
            }

        return self._run("preview", project_name, self.create_program(roots), summarize)

    async def destroy(self, project_name: str = "sysadmin") -> dict[str, Any]:
        """Remove everything recorded in the stack.

        Works from the recorded state only; the declarations are not loaded.
        """

        def summarize(destroy_result) -> dict[str, Any]:
            return {
                "result": destroy_result.summary.result,
                "resource_changes": destroy_result.summary.resource_changes or {},
            }

        return self._run(
            "destroy", project_name, lambda: None, summarize, create=False
        )
