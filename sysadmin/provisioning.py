"""Resource plan shared by every OS family.

The plan is a list of resource descriptors in declaration order; each
resource is connected to the resources it needs, giving the chain
account -> directories -> files -> config file -> SSH daemon directives.
"""

import logging
from typing import TYPE_CHECKING

from .params import SysadminParams
from .resources import (
    ConcatFragment,
    ConcatResource,
    DirectoryResource,
    Resource,
    SshdConfigResource,
    TemplateFileResource,
    UserResource,
)
from .resources.concat import FOOTER_ORDER, HEADER_ORDER

if TYPE_CHECKING:
    from .member import SysadminUser

logger = logging.getLogger(__name__)

SYSADMIN_USER_ENV = "SYSADMIN_USER"


def provision_account(params: SysadminParams) -> list[Resource]:
    """Declare the shared account and, when present, its home tree.

    With ``ensure == "absent"`` only the account removal is declared. Every
    other resource is retained on delete, so dropping it from the plan leaves
    the home tree, the member records and the sshd directives on the host.

    Args:
        params: Resolved parameters (``ensure`` already validated)

    Returns:
        Resources in declaration order
    """
    login = params.login
    account = UserResource(
        name=login,
        description=f"Shared system administrator account {login}",
        home=params.homedir,
        shell=params.shell,
        groups=list(params.groups),
        present=params.ensure == "present",
    )

    if params.ensure != "present":
        logger.debug(f"Account {login} is absent, home tree left undeclared")
        return [account]

    owner = {"user": login, "group": login}

    home = DirectoryResource(
        name=f"{login}-home",
        description=f"Home directory of {login}",
        path=params.homedir,
        mode=params.dirmode,
        retain_on_delete=True,
        **owner,
    ).connect(account)

    profile = TemplateFileResource(
        name=f"{login}-profile",
        description=f"Login profile of {login}",
        path=params.home_path(".profile"),
        template="profile.j2",
        variables={"login": login, "configfile": params.configfile},
        mode=params.filemode,
        retain_on_delete=True,
        **owner,
    ).connect(account, home)

    ssh_dir = DirectoryResource(
        name=f"{login}-ssh",
        description=f"SSH directory of {login}",
        path=params.home_path(".ssh"),
        mode=params.dirmode,
        recurse=True,
        force=True,
        retain_on_delete=True,
        **owner,
    ).connect(account, home)

    bin_dir = DirectoryResource(
        name=f"{login}-bin",
        description=f"Private scripts of {login}",
        path=params.home_path("bin"),
        mode=params.dirmode,
        retain_on_delete=True,
        **owner,
    ).connect(account, home)

    variables = {
        "login": login,
        "configfile": params.configfile,
        "env_var": SYSADMIN_USER_ENV,
    }
    configfile = ConcatResource(
        name=f"{login}-sysadminrc",
        description=f"Per-member settings of {login}",
        path=params.configfile,
        mode=params.filemode,
        fragments=[
            ConcatFragment(name="header", order=HEADER_ORDER, template="header.j2", variables=variables),
            ConcatFragment(name="footer", order=FOOTER_ORDER, template="footer.j2", variables=variables),
        ],
        retain_on_delete=True,
        **owner,
    ).connect(account, home)

    permit_user_environment = SshdConfigResource(
        name="sshd-permituserenvironment",
        description="Honour environment= options of authorized_keys",
        directive="PermitUserEnvironment",
        value="yes",
        path=params.sshd_config_path,
        retain_on_delete=True,
    ).connect(account, configfile)

    accept_env = SshdConfigResource(
        name=f"sshd-acceptenv-{SYSADMIN_USER_ENV.lower()}",
        description=f"Accept {SYSADMIN_USER_ENV} sent by SSH clients",
        directive="AcceptEnv",
        value=SYSADMIN_USER_ENV,
        multiple=True,
        path=params.sshd_config_path,
        retain_on_delete=True,
    ).connect(account, configfile)

    return [
        account,
        home,
        profile,
        ssh_dir,
        bin_dir,
        configfile,
        permit_user_environment,
        accept_env,
    ]


def _find(resources: list[Resource], name: str) -> Resource:
    for resource in resources:
        if resource.name == name:
            return resource
    raise KeyError(f"No resource named '{name}' in plan")


def provision_members(
    params: SysadminParams,
    members: list["SysadminUser"],
    resources: list[Resource],
) -> list[Resource]:
    """Register members on a present account's plan.

    Adds member fragments to the config file already in ``resources`` and
    returns the extra resources the members need: the ``.sysadmins``
    directory, ``.ssh/authorized_keys`` when any member has a key, and one
    record file per member.
    """
    if not members:
        return []

    login = params.login
    account = _find(resources, login)
    home = _find(resources, f"{login}-home")
    ssh_dir = _find(resources, f"{login}-ssh")
    configfile = _find(resources, f"{login}-sysadminrc")
    owner = {"user": login, "group": login}

    records_dir = DirectoryResource(
        name=f"{login}-sysadmins",
        description=f"Records of the members of {login}",
        path=params.home_path(".sysadmins"),
        mode=params.dirmode,
        retain_on_delete=True,
        **owner,
    ).connect(account, home)
    extra: list[Resource] = [records_dir]

    authorized_keys = None
    if any(member.sshkeys for member in members):
        authorized_keys = ConcatResource(
            name=f"{login}-authorized-keys",
            description=f"Member keys allowed to log in as {login}",
            path=params.home_path(".ssh", "authorized_keys"),
            mode="0600",
            retain_on_delete=True,
            **owner,
        ).connect(account, ssh_dir)
        extra.append(authorized_keys)

    for member in members:
        extra.extend(
            member.provision(params, account, records_dir, configfile, authorized_keys)
        )

    logger.info(f"Registered {len(members)} member(s) on {login}")
    return extra
