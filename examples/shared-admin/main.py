"""
Shared Administrator Example - One local account, several real administrators.

Each member logs in to ``localadmin`` with their own SSH key. The key tags the
session with SYSADMIN_USER, and ~/.sysadminrc exports the member's git
identity from it.

IMPORTANT: Applying this creates a local account and edits sshd_config.
Run as root: sudo sysadmin apply

Preview first:
    sysadmin show --os ubuntu
    sysadmin render --os ubuntu
"""

from sysadmin import SSHKey, SysadminAccount, SysadminUser

localadmin = SysadminAccount(
    login="localadmin",
    groups=["adm"],
    members=["svarrette", "hcartiaux"],
)

localadmin.add(
    SysadminUser(
        name="svarrette",
        firstname="Sebastien",
        lastname="Varrette",
        email="sebastien.varrette@uni.lu",
        sshkeys=[
            SSHKey.parse(
                "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIHbR2m0sP3cVdgZlN3VYJtsGmA4R7y3O3z3cFq1tYbQx svarrette@laptop"
            ),
        ],
    ),
    SysadminUser(
        name="hcartiaux",
        firstname="Hyacinthe",
        lastname="Cartiaux",
        email="hyacinthe.cartiaux@uni.lu",
    ),
)
