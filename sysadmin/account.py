"""The shared system administrator account."""

import logging

import pulumi
from pydantic import Field, model_validator

from .errors import ConfigurationError, ParameterError
from .member import SysadminUser
from .params import ENSURE_VALUES, LOGIN_PATTERN, SysadminParams
from .platforms import detect_os_name, get_profile
from .provisioning import provision_members
from .resources.base import Resource
from .settings import SysadminSettings, get_settings

logger = logging.getLogger(__name__)

MAX_LOGIN_LENGTH = 32


class SysadminAccount(Resource):
    """Shared local account used by several real administrators.

    Unset fields take their value from ``SysadminSettings``. Members are
    registered as children:

        >>> account = SysadminAccount(login="localadmin", groups=["adm"])
        >>> account.add(SysadminUser(name="hcartiaux", email="hyacinthe.cartiaux@uni.lu"))
        >>> resources = account.plan(os_name="ubuntu")

    Attributes:
        login: Login name of the shared account
        groups: Supplementary groups of the account
        members: Logins allowed to use the account, in addition to the
            registered SysadminUser children
        ensure: ``present`` or ``absent``
    """

    login: str | None = None
    groups: list[str] | None = None
    members: list[str] | None = None
    ensure: str | None = None
    name: str | None = Field(None, exclude=True)

    _planned: list[Resource] | None = None
    _params: SysadminParams | None = None

    @model_validator(mode="after")
    def default_name(self):
        if self.name is None:
            self.name = self.login
        return self

    def resolve_params(self, settings: SysadminSettings | None = None) -> SysadminParams:
        """Validated parameters for this account.

        Raises:
            ParameterError: If ensure is neither present nor absent
            ConfigurationError: If login is not a valid account name
        """
        settings = settings or get_settings()
        login = self.login or settings.login
        ensure = self.ensure if self.ensure is not None else settings.ensure

        logger.info(f"sysadmin: login={login} ensure={ensure}")

        if ensure not in ENSURE_VALUES:
            raise ParameterError(
                f"Invalid ensure value '{ensure}', must be one of: {', '.join(ENSURE_VALUES)}"
            )
        if not LOGIN_PATTERN.match(login) or len(login) > MAX_LOGIN_LENGTH:
            raise ConfigurationError(f"'{login}' is not a valid account name")

        return SysadminParams.from_settings(
            settings,
            login=login,
            ensure=ensure,
            groups=self.groups,
            members=self.members,
        )

    def effective_members(self, params: SysadminParams) -> list[SysadminUser]:
        """Registered members plus bare members for names only listed.

        Raises:
            ConfigurationError: If the same member is registered twice
        """
        registered: dict[str, SysadminUser] = {}
        for child in self._children:
            if not isinstance(child, SysadminUser):
                continue
            if child.name in registered:
                raise ConfigurationError(
                    f"Member '{child.name}' is registered twice on {params.login}"
                )
            registered[child.name] = child

        for name in params.members:
            if name not in registered:
                registered[name] = SysadminUser(name=name)

        return [registered[name] for name in sorted(registered)]

    def plan(
        self,
        os_name: str | None = None,
        settings: SysadminSettings | None = None,
    ) -> list[Resource]:
        """Declare every resource of this account.

        Validation happens before anything is declared: an invalid ``ensure``
        or an unsupported OS leaves the plan empty and raises.

        Args:
            os_name: Operating system name (default: settings, then os-release)
            settings: Settings providing defaults (default: global settings)

        Returns:
            Resources in declaration order

        Raises:
            ParameterError: If ensure is invalid
            UnsupportedPlatformError: If the OS is not supported
        """
        settings = settings or get_settings()
        self._planned = None
        params = self.resolve_params(settings)
        profile = get_profile(os_name or settings.os_name or detect_os_name())

        resources = profile.provision(params)
        if params.ensure == "present":
            resources.extend(
                provision_members(params, self.effective_members(params), resources)
            )

        self._params = params
        self._planned = resources
        self.name = params.login
        logger.info(f"Planned {len(resources)} resources for account {params.login}")
        return resources

    @property
    def planned(self) -> list[Resource]:
        """Resources of the last plan() call."""
        if self._planned is None:
            raise RuntimeError(f"Account {self.login} has not been planned")
        return self._planned

    def set_plan(self, resources: list[Resource]) -> None:
        """Replace the planned resources, e.g. with a reordered list."""
        self._planned = resources

    def configfile_content(self) -> str:
        """Rendered config file of a present account."""
        for resource in self.planned:
            if resource.name == f"{self._params.login}-sysadminrc":
                return resource.rendered()
        raise ConfigurationError(
            f"Account {self._params.login} is absent and has no config file"
        )

    def describe(self):
        return [resource.describe() for resource in self.planned]

    def to_pulumi(self) -> pulumi.Resource:
        """Compile the planned resources under one ComponentResource."""
        if self._planned is None:
            self.plan()

        component = pulumi.ComponentResource(
            "sysadmin:account:SysadminAccount", self.name
        )
        child_opts = pulumi.ResourceOptions(parent=component)
        for resource in self.planned:
            resource._compile_with_opts(child_opts)

        component.register_outputs({"login": self.name})
        self._pulumi_resource = component
        return component
