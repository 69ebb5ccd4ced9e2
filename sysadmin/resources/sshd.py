"""SSH daemon configuration directive resource."""

from .base import Resource


class SshdConfigResource(Resource):
    """One directive in the SSH server configuration.

    Single-valued directives replace an existing setting; ``multiple`` ones
    (AcceptEnv, AllowUsers, ...) are added next to existing occurrences.

    Usage:
        SshdConfigResource(name="sshd-permituserenvironment",
                           directive="PermitUserEnvironment", value="yes")
        SshdConfigResource(name="sshd-acceptenv-sysadmin_user",
                           directive="AcceptEnv", value="SYSADMIN_USER", multiple=True)
    """

    name: str
    directive: str
    value: str
    multiple: bool = False
    path: str = "/etc/ssh/sshd_config"

    def to_pulumi(self):
        """Create the SshdConfig dynamic resource."""
        from sysadmin.pulumi_providers import SshdConfig

        directive = SshdConfig(
            self.name,
            path=self.path,
            directive=self.directive,
            value=self.value,
            multiple=self.multiple,
            opts=self._resource_options(),
        )
        self._pulumi_resource = directive
        return directive
