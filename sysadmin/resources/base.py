"""Base resource class for sysadmin."""

import logging
from typing import Any, Optional, Self

import pulumi
from pydantic import BaseModel, PrivateAttr

from sysadmin.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Resource(BaseModel):
    """Desired-state descriptor of one thing on the host.

    Planning an account produces a list of resources; deploying calls
    ``to_pulumi()`` on each of them, which registers a Pulumi dynamic
    resource whose provider does the actual reconciliation.

    Dependencies:
        ``profile.connect(account, home)`` makes the profile wait for the
        account and the home directory. Connections drive the plan order
        and become Pulumi ``depends_on`` options.

    Registration:
        ``account.add(member)`` attaches a resource to an owner. Members are
        registered on their account this way and are only deployed through
        it.

    Attributes:
        name: Identifier, unique per resource type within a run
        description: Free text, not part of the desired state
        retain_on_delete: Leave the managed object on the host when the
            resource disappears from the plan or the stack is destroyed;
            only Pulumi's record of it is dropped
    """

    name: str | None = None
    description: str | None = None
    retain_on_delete: bool = False

    _connection_resources: list["Resource"] = PrivateAttr(default_factory=list)
    _children: list["Resource"] = PrivateAttr(default_factory=list)
    _parent: Optional["Resource"] = PrivateAttr(default=None)
    _pulumi_resource: Any = PrivateAttr(default=None)
    _temp_compile_opts: Any = PrivateAttr(default=None)

    def add(self, *resources: "Resource") -> Self:
        """Register resources on this one.

        Raises:
            TypeError: If an argument is not a Resource
            ConfigurationError: If a resource already belongs to another owner
        """
        for resource in resources:
            if not isinstance(resource, Resource):
                raise TypeError(
                    f"Can only add Resource objects, got {type(resource).__name__}"
                )
            if resource._parent is self:
                logger.warning(
                    f"'{resource.name}' is already registered on '{self.name}', skipping"
                )
                continue
            if resource._parent is not None:
                raise ConfigurationError(
                    f"'{resource.name}' is already registered on '{resource._parent.name}'"
                )

            resource._parent = self
            self._children.append(resource)

        return self

    @property
    def parent(self) -> Optional["Resource"]:
        """The resource this one is registered on, if any."""
        return self._parent

    @property
    def connections(self) -> list["Resource"]:
        """Resources this resource depends on."""
        return list(self._connection_resources)

    def connect(self, *targets: "Resource") -> Self:
        """Declare that this resource depends on other resources.

        Examples:
            home.connect(account)
            profile.connect(account).connect(home)
        """
        for target in targets:
            if not isinstance(target, Resource):
                raise TypeError(
                    f"Can only connect Resource objects, got {type(target).__name__}"
                )
            if any(target is existing for existing in self._connection_resources):
                continue
            self._connection_resources.append(target)
            logger.debug(f"{self.name} connected to {target.name}")

        return self

    def describe(self) -> dict[str, Any]:
        """Desired state of this resource as a plain dict.

        Two plans built from the same parameters describe identically.
        """
        return {
            "type": self.__class__.__name__,
            **self.model_dump(exclude={"description"}),
        }

    def _build_dependency_options(self) -> pulumi.ResourceOptions | None:
        """``depends_on`` options for the connections compiled so far."""
        compiled = [
            target._pulumi_resource
            for target in self._connection_resources
            if target._pulumi_resource is not None
        ]
        if not compiled:
            return None
        return pulumi.ResourceOptions(depends_on=compiled)

    def _compile_with_opts(
        self, opts: pulumi.ResourceOptions | None
    ) -> pulumi.Resource:
        """Compile this resource under extra options, typically a parent.

        The merged options are held on the instance while ``to_pulumi()``
        runs, where ``_resource_options()`` picks them up.
        """
        self._temp_compile_opts = self._merge_resource_options(
            opts, self._build_dependency_options()
        )
        try:
            return self.to_pulumi()
        finally:
            self._temp_compile_opts = None

    def _resource_options(self) -> pulumi.ResourceOptions | None:
        """Options for the Pulumi resource created by to_pulumi()."""
        opts = self._temp_compile_opts
        if opts is None:
            opts = self._build_dependency_options()
        if self.retain_on_delete:
            opts = pulumi.ResourceOptions.merge(
                opts, pulumi.ResourceOptions(retain_on_delete=True)
            )
        return opts

    def _merge_resource_options(
        self,
        parent_opts: pulumi.ResourceOptions | None,
        dep_opts: pulumi.ResourceOptions | None,
    ) -> pulumi.ResourceOptions | None:
        """Parent from ``parent_opts``, ``depends_on`` from both."""
        if parent_opts is None or dep_opts is None:
            return parent_opts if dep_opts is None else dep_opts

        depends_on = []
        for opts in (parent_opts, dep_opts):
            if isinstance(opts.depends_on, list):
                depends_on.extend(opts.depends_on)
            elif opts.depends_on:
                depends_on.append(opts.depends_on)

        return pulumi.ResourceOptions(
            parent=parent_opts.parent,
            depends_on=depends_on or None,
        )

    def to_pulumi(self):
        """Register the Pulumi resource reconciling this one."""
        raise NotImplementedError(
            f"{self.__class__.__name__} has no provider"
        )
