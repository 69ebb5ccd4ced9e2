"""
Sysadmin Core - declarative provisioning of the shared administrator account.

Apply Pipeline: Load declarations → Plan resources → Deploy with Pulumi
Plan Pipeline: Load declarations → Plan resources → Preview with Pulumi
Destroy Pipeline: Destroy the stack using Pulumi
Show Pipeline: Load declarations → Plan resources (offline)
"""

import importlib.util
import logging
from pathlib import Path
from typing import Any

from .account import SysadminAccount
from .errors import ConfigurationError
from .member import SysadminUser
from .pulumi_compiler import PulumiCompiler
from .resources.base import Resource
from .settings import SysadminSettings, get_settings

logger = logging.getLogger(__name__)


class SysadminCore:
    """Main coordinator for the sysadmin pipeline."""

    def __init__(
        self,
        settings: SysadminSettings | None = None,
        os_name: str | None = None,
    ):
        """
        Initialize SysadminCore.

        Args:
            settings: Settings to use (defaults to the global settings)
            os_name: Operating system name overriding detection
        """
        self.settings = settings or get_settings()
        self.os_name = os_name
        self._pulumi_compiler: PulumiCompiler | None = None

        logger.info("SysadminCore initialized")

    @property
    def pulumi_compiler(self) -> PulumiCompiler:
        if self._pulumi_compiler is None:
            self._pulumi_compiler = PulumiCompiler(settings=self.settings)
        return self._pulumi_compiler

    async def apply(self, main_file: Path, dry_run: bool = False) -> dict[str, Any]:
        """
        Full pipeline: load → plan → deploy with Pulumi.

        Args:
            main_file: Path to main.py file with the account declarations
            dry_run: If True, only preview without executing

        Returns:
            Dict with execution results
        """
        logger.info(f"Starting sysadmin pipeline for: {main_file}")

        roots = self.build(self.load_resources(main_file))
        project_name = main_file.parent.name

        if dry_run:
            logger.info("Dry run - running preview only")
            result = await self.pulumi_compiler.preview(roots, project_name)
            return {
                "dry_run": True,
                "resources": self.count_resources(roots),
                "preview": result,
            }

        result = await self.pulumi_compiler.apply(roots, project_name)
        logger.info("sysadmin pipeline complete")

        return result

    async def plan(self, main_file: Path) -> dict[str, Any]:
        """
        Plan mode: preview Pulumi changes without deploying.

        Args:
            main_file: Path to main.py file

        Returns:
            Dict with planning information
        """
        return await self.apply(main_file, dry_run=True)

    async def destroy(self, main_file: Path) -> dict[str, Any]:
        """
        Destroy every resource of the stack.

        Accounts are removed without their home directories.

        Args:
            main_file: Path to main.py file (used to determine project name)

        Returns:
            Dict with execution results
        """
        logger.info(f"Starting sysadmin destroy pipeline for: {main_file}")
        result = await self.pulumi_compiler.destroy(main_file.parent.name)
        logger.info("sysadmin destroy pipeline complete")
        return result

    def show(self, main_file: Path) -> list[Resource]:
        """Plan the declarations offline and return every declared resource."""
        roots = self.build(self.load_resources(main_file))
        return self.flatten(roots)

    def render(self, main_file: Path, login: str | None = None) -> str:
        """Rendered config file of one account.

        Raises:
            ConfigurationError: If the account is unknown or ambiguous
        """
        roots = self.build(self.load_resources(main_file))
        accounts = [
            root
            for root in roots
            if isinstance(root, SysadminAccount)
            and (login is None or root.name == login)
        ]
        if len(accounts) != 1:
            raise ConfigurationError(
                f"Expected exactly one account{f' named {login}' if login else ''}, "
                f"found {len(accounts)}"
            )
        return accounts[0].configfile_content()

    def load_resources(self, main_file: Path) -> list[Resource]:
        """Execute the declarations file and collect its module-level resources.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If it declares no resource
        """
        if not main_file.exists():
            raise FileNotFoundError(f"Declarations file not found: {main_file}")

        module_spec = importlib.util.spec_from_file_location("sysadmin_declarations", main_file)
        if module_spec is None or module_spec.loader is None:
            raise ImportError(f"Cannot import {main_file}")
        module = importlib.util.module_from_spec(module_spec)
        module_spec.loader.exec_module(module)

        declared = {
            name: value for name, value in vars(module).items() if isinstance(value, Resource)
        }
        if not declared:
            raise ValueError(f"No resources found in {main_file}")

        logger.debug(f"Loaded {', '.join(declared)} from {main_file}")
        return list(declared.values())

    def build(self, resources: list[Resource]) -> list[Resource]:
        """Plan every account and check the run as a whole.

        Members are only valid as children of an account; other resources
        declared at top level are deployed as they are.

        Args:
            resources: Resources loaded from main.py

        Returns:
            Root resources (accounts and standalone resources), each account
            holding its plan in dependency order

        Raises:
            ConfigurationError: On duplicate logins, duplicate resource names
                or members not registered on an account
            ValueError: If a dependency cycle is detected
        """
        roots: list[Resource] = []
        logins: set[str] = set()

        for resource in resources:
            if isinstance(resource, SysadminUser):
                if not isinstance(resource.parent, SysadminAccount):
                    raise ConfigurationError(
                        f"Member '{resource.name}' is not registered on an account"
                    )
                continue
            if resource.parent is not None:
                continue

            if isinstance(resource, SysadminAccount):
                resource.plan(os_name=self.os_name, settings=self.settings)
                if resource.name in logins:
                    raise ConfigurationError(
                        f"Account '{resource.name}' is declared twice"
                    )
                logins.add(resource.name)
                resource.set_plan(self._resolve_dependency_order(resource.planned))

            roots.append(resource)

        self._check_unique_names(self.flatten(roots))
        return roots

    def flatten(self, roots: list[Resource]) -> list[Resource]:
        """Planned resources of accounts plus standalone resources."""
        flattened = []
        for root in roots:
            if isinstance(root, SysadminAccount):
                flattened.extend(root.planned)
            else:
                flattened.append(root)
        return flattened

    def count_resources(self, roots: list[Resource]) -> int:
        return len(self.flatten(roots))

    def _check_unique_names(self, resources: list[Resource]) -> None:
        seen: set[tuple[str, str | None]] = set()
        for resource in resources:
            key = (type(resource).__name__, resource.name)
            if key in seen:
                raise ConfigurationError(
                    f"{key[0]} '{resource.name}' is declared twice"
                )
            seen.add(key)

    def _resolve_dependency_order(self, resources: list[Resource]) -> list[Resource]:
        """Return resources with every dependency ahead of its dependents.

        Depth-first over connections; among independent resources the
        declaration order is kept.

        Raises:
            ValueError: If a dependency cycle is detected

        Example:
            # Given: profile depends on home, home depends on account
            # Returns: [account, home, profile]
        """
        ordered: list[Resource] = []
        done: set[int] = set()
        path: list[Resource] = []

        def visit(resource: Resource) -> None:
            if id(resource) in done:
                return
            if any(resource is entry for entry in path):
                start = next(i for i, entry in enumerate(path) if entry is resource)
                cycle = [r.name or type(r).__name__ for r in path[start:]] + [resource.name]
                raise ValueError(f"Dependency cycle detected: {' → '.join(cycle)}")

            path.append(resource)
            for dependency in resource.connections:
                visit(dependency)
            path.pop()

            done.add(id(resource))
            ordered.append(resource)

        for resource in resources:
            visit(resource)

        logger.debug(f"Deployment order: {[r.name for r in ordered]}")
        return ordered
