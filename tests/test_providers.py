"""Tests for the Pulumi dynamic providers.

Providers are exercised directly against a temporary directory, without a
Pulumi engine. Account commands are patched out.
"""

import os
import stat
import subprocess
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from sysadmin.errors import DeploymentError
from sysadmin.pulumi_providers import (
    DirectoryProvider,
    FileProvider,
    SshdConfigProvider,
    UserAccountProvider,
)
from sysadmin.pulumi_providers.file import apply_mode, apply_ownership
from sysadmin.pulumi_providers.sshd_config import remove_directive, set_directive


def mode_of(path):
    return stat.S_IMODE(os.stat(path).st_mode)


class TestFileProvider:
    def test_create_writes_content_and_mode(self, temp_dir):
        target = temp_dir / "home" / ".profile"
        result = FileProvider().create(
            {"path": str(target), "content": "export A=1\n", "mode": "0640"}
        )

        assert result.id == str(target)
        assert target.read_text() == "export A=1\n"
        assert mode_of(target) == 0o640
        assert result.outs["size"] == len("export A=1\n")

    def test_unchanged_content_is_not_rewritten(self, temp_dir):
        target = temp_dir / ".sysadminrc"
        props = {"path": str(target), "content": "same\n", "mode": "0640"}
        provider = FileProvider()
        provider.create(props)
        before = target.stat().st_mtime_ns

        with patch("pathlib.Path.write_text") as write_text:
            provider.update(str(target), props, props)

        write_text.assert_not_called()
        assert target.stat().st_mtime_ns == before

    def test_update_changes_content(self, temp_dir):
        target = temp_dir / ".sysadminrc"
        provider = FileProvider()
        old = {"path": str(target), "content": "old\n", "mode": "0640"}
        new = {**old, "content": "new\n"}
        provider.create(old)

        provider.update(str(target), old, new)

        assert target.read_text() == "new\n"

    def test_directory_in_the_way(self, temp_dir):
        (temp_dir / "taken").mkdir()

        with pytest.raises(DeploymentError, match="is a directory"):
            FileProvider().create(
                {"path": str(temp_dir / "taken"), "content": "", "mode": "0640"}
            )

    def test_symlink_is_replaced_not_followed(self, temp_dir):
        outside = temp_dir / "shadow"
        outside.write_text("root:secret\n")
        outside.chmod(0o600)
        target = temp_dir / ".sysadminrc"
        target.symlink_to(outside)

        FileProvider().create(
            {"path": str(target), "content": "export A=1\n", "mode": "0644"}
        )

        assert not target.is_symlink()
        assert target.read_text() == "export A=1\n"
        assert outside.read_text() == "root:secret\n"
        assert mode_of(outside) == 0o600

    def test_delete(self, temp_dir):
        target = temp_dir / "file"
        target.write_text("x")

        FileProvider().delete(str(target), {"path": str(target)})
        FileProvider().delete(str(target), {"path": str(target)})

        assert not target.exists()

    def test_diff(self):
        provider = FileProvider()
        old = {"path": "/a", "content": "x", "mode": "0640"}

        assert provider.diff("/a", old, dict(old)).changes is False

        content = provider.diff("/a", old, {**old, "content": "y"})
        assert content.changes is True
        assert content.replaces == []

        moved = provider.diff("/a", old, {**old, "path": "/b"})
        assert moved.replaces == ["path"]


class TestOwnershipAndMode:
    @patch("sysadmin.pulumi_providers.file.grp.getgrnam", return_value=SimpleNamespace(gr_gid=4242))
    @patch("sysadmin.pulumi_providers.file.pwd.getpwnam", return_value=SimpleNamespace(pw_uid=4242))
    def test_ownership_of_symlink_itself(self, _getpwnam, _getgrnam, temp_dir):
        link = temp_dir / "link"
        link.symlink_to(temp_dir / "target")

        with patch("sysadmin.pulumi_providers.file.os.chown") as chown:
            assert apply_ownership(link, "localadmin", "localadmin") is True

        chown.assert_called_once_with(link, 4242, 4242, follow_symlinks=False)

    def test_ownership_unchanged(self, temp_dir):
        target = temp_dir / "file"
        target.write_text("")

        with patch("sysadmin.pulumi_providers.file.os.chown") as chown:
            assert apply_ownership(target, target.owner(), target.group()) is False

        chown.assert_not_called()

    def test_mode_skips_symlinks(self, temp_dir):
        outside = temp_dir / "outside"
        outside.write_text("")
        outside.chmod(0o600)
        link = temp_dir / "link"
        link.symlink_to(outside)

        assert apply_mode(link, "0777") is False
        assert mode_of(outside) == 0o600


class TestDirectoryProvider:
    def test_create_nested(self, temp_dir):
        target = temp_dir / "var" / "lib" / "localadmin"

        result = DirectoryProvider().create({"path": str(target), "mode": "0750"})

        assert target.is_dir()
        assert mode_of(target) == 0o750
        assert result.outs["recurse"] is False

    def test_file_in_the_way_without_force(self, temp_dir):
        target = temp_dir / ".ssh"
        target.write_text("not a directory")

        with pytest.raises(DeploymentError, match="force is off"):
            DirectoryProvider().create({"path": str(target), "mode": "0750"})

        assert target.is_file()

    def test_file_in_the_way_with_force(self, temp_dir):
        target = temp_dir / ".ssh"
        target.write_text("not a directory")

        DirectoryProvider().create({"path": str(target), "mode": "0750", "force": True})

        assert target.is_dir()

    def test_recurse_sets_subdirectory_modes(self, temp_dir):
        target = temp_dir / ".ssh"
        (target / "keys").mkdir(parents=True)
        (target / "keys").chmod(0o777)
        (target / "known_hosts").write_text("")
        (target / "known_hosts").chmod(0o644)

        DirectoryProvider().create({"path": str(target), "mode": "0700", "recurse": True})

        assert mode_of(target / "keys") == 0o700
        assert mode_of(target / "known_hosts") == 0o644

    def test_recurse_does_not_follow_symlinks(self, temp_dir):
        target = temp_dir / ".ssh"
        target.mkdir()
        outside_dir = temp_dir / "outside_dir"
        outside_dir.mkdir()
        outside_dir.chmod(0o700)
        outside_file = temp_dir / "outside_secret"
        outside_file.write_text("secret")
        (target / "evildir").symlink_to(outside_dir)
        (target / "evil").symlink_to(outside_file)
        props = {
            "path": str(target),
            "mode": "0750",
            "user": "localadmin",
            "group": "localadmin",
            "recurse": True,
        }

        with patch("sysadmin.pulumi_providers.directory.apply_ownership") as ownership:
            DirectoryProvider().create(props)

        touched = [call.args[0] for call in ownership.call_args_list]
        assert touched == [target]
        assert mode_of(outside_dir) == 0o700

    def test_delete(self, temp_dir):
        empty = temp_dir / "empty"
        full = temp_dir / "full"
        empty.mkdir()
        (full / "sub").mkdir(parents=True)

        provider = DirectoryProvider()
        provider.delete(str(empty), {"path": str(empty)})
        provider.delete(str(full), {"path": str(full), "force": True})

        assert not empty.exists()
        assert not full.exists()

    def test_delete_non_empty_without_force(self, temp_dir):
        full = temp_dir / "full"
        (full / "sub").mkdir(parents=True)

        with pytest.raises(DeploymentError):
            DirectoryProvider().delete(str(full), {"path": str(full)})


SSHD_CONFIG = """\
# OpenSSH server configuration
Port 22
#PermitUserEnvironment no
PermitUserEnvironment no
AcceptEnv LANG LC_*
Subsystem sftp /usr/lib/openssh/sftp-server

Match User backup
    PermitTTY no
"""


class TestSshdDirectives:
    def test_replaces_single_valued_directive(self):
        updated = set_directive(SSHD_CONFIG, "PermitUserEnvironment", "yes")

        assert "PermitUserEnvironment yes\n" in updated
        assert "\nPermitUserEnvironment no\n" not in updated
        assert "#PermitUserEnvironment no" in updated

    def test_drops_duplicates(self):
        text = "PermitUserEnvironment no\nPort 22\nPermitUserEnvironment no\n"

        assert set_directive(text, "PermitUserEnvironment", "yes") == (
            "PermitUserEnvironment yes\nPort 22\n"
        )

    def test_recognises_tab_separated_directive(self):
        text = "PermitUserEnvironment\tno\nUsePAM yes\n"

        assert set_directive(text, "PermitUserEnvironment", "yes") == (
            "PermitUserEnvironment yes\nUsePAM yes\n"
        )

    @pytest.mark.parametrize(
        "line", ["PermitUserEnvironment=no", "PermitUserEnvironment = no", "permituserenvironment  no"]
    )
    def test_recognises_other_separators(self, line):
        text = f"{line}\nUsePAM yes\n"

        assert set_directive(text, "PermitUserEnvironment", "yes") == (
            "PermitUserEnvironment yes\nUsePAM yes\n"
        )

    def test_multiple_listed_after_tab(self):
        text = "AcceptEnv\tLANG SYSADMIN_USER\n"

        assert set_directive(text, "AcceptEnv", "SYSADMIN_USER", multiple=True) == text

    def test_inserts_before_match_block(self):
        updated = set_directive(SSHD_CONFIG, "AcceptEnv", "SYSADMIN_USER", multiple=True)
        lines = updated.splitlines()

        assert "AcceptEnv LANG LC_*" in lines
        assert lines.index("AcceptEnv SYSADMIN_USER") < lines.index("Match User backup")
        assert lines.index("AcceptEnv SYSADMIN_USER") > lines.index("AcceptEnv LANG LC_*")

    def test_multiple_already_listed(self):
        text = "AcceptEnv LANG SYSADMIN_USER\n"

        assert set_directive(text, "AcceptEnv", "SYSADMIN_USER", multiple=True) == text

    def test_idempotent(self):
        once = set_directive(SSHD_CONFIG, "PermitUserEnvironment", "yes")
        assert set_directive(once, "PermitUserEnvironment", "yes") == once

        once = set_directive(SSHD_CONFIG, "AcceptEnv", "SYSADMIN_USER", multiple=True)
        assert set_directive(once, "AcceptEnv", "SYSADMIN_USER", multiple=True) == once

    def test_remove_directive(self):
        text = set_directive(SSHD_CONFIG, "AcceptEnv", "SYSADMIN_USER", multiple=True)

        removed = remove_directive(text, "AcceptEnv", "SYSADMIN_USER")

        assert "AcceptEnv SYSADMIN_USER" not in removed
        assert "AcceptEnv LANG LC_*" in removed

    def test_provider_requires_existing_file(self, temp_dir):
        props = {
            "path": str(temp_dir / "sshd_config"),
            "directive": "PermitUserEnvironment",
            "value": "yes",
        }

        with pytest.raises(DeploymentError, match="SSH server"):
            SshdConfigProvider().create(props)

    def test_provider_create_and_delete(self, temp_dir):
        config = temp_dir / "sshd_config"
        config.write_text(SSHD_CONFIG)
        props = {
            "path": str(config),
            "directive": "AcceptEnv",
            "value": "SYSADMIN_USER",
            "multiple": True,
        }
        provider = SshdConfigProvider()

        result = provider.create(props)
        assert result.id == f"{config}:AcceptEnv:SYSADMIN_USER"
        assert "AcceptEnv SYSADMIN_USER" in config.read_text()

        provider.delete(result.id, props)
        assert "AcceptEnv SYSADMIN_USER" not in config.read_text()


def passwd_entry(home="/var/lib/localadmin", shell="/bin/bash"):
    return SimpleNamespace(pw_dir=home, pw_shell=shell)


class TestUserAccountProvider:
    @pytest.fixture
    def props(self):
        return {
            "login": "localadmin",
            "present": True,
            "home": "/var/lib/localadmin",
            "shell": "/bin/bash",
            "groups": ["adm"],
            "system": False,
        }

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_create_missing_account(self, mock_run, props):
        provider = UserAccountProvider()
        with patch.object(provider, "_lookup", return_value=None):
            result = provider.create(props)

        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == [
            "useradd",
            "--user-group",
            "--no-create-home",
            "--home-dir",
            "/var/lib/localadmin",
            "--shell",
            "/bin/bash",
            "--groups",
            "adm",
            "localadmin",
        ]
        assert result.id == "localadmin"

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_in_sync_account_runs_nothing(self, mock_run, props):
        provider = UserAccountProvider()
        with patch.object(provider, "_lookup", return_value=passwd_entry()), \
                patch.object(provider, "_supplementary_groups", return_value=["adm"]):
            provider.update("localadmin", props, props)

        mock_run.assert_not_called()

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_drifted_account_is_modified(self, mock_run, props):
        provider = UserAccountProvider()
        with patch.object(provider, "_lookup", return_value=passwd_entry(shell="/bin/sh")), \
                patch.object(provider, "_supplementary_groups", return_value=[]):
            provider.update("localadmin", props, props)

        assert mock_run.call_args[0][0] == [
            "usermod", "--shell", "/bin/bash", "--groups", "adm", "localadmin"
        ]

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_absent_removes_existing_account(self, mock_run, props):
        provider = UserAccountProvider()
        with patch.object(provider, "_lookup", return_value=passwd_entry()):
            provider.create({**props, "present": False})

        assert mock_run.call_args[0][0] == ["userdel", "localadmin"]

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_absent_and_missing_is_a_noop(self, mock_run, props):
        provider = UserAccountProvider()
        with patch.object(provider, "_lookup", return_value=None):
            result = provider.create({**props, "present": False})

        mock_run.assert_not_called()
        assert result.outs["present"] is False

    @patch("sysadmin.pulumi_providers.user_account.subprocess.run")
    def test_command_failure(self, mock_run, props):
        mock_run.side_effect = subprocess.CalledProcessError(
            9, ["useradd"], stderr="useradd: user 'localadmin' already exists\n"
        )
        provider = UserAccountProvider()

        with patch.object(provider, "_lookup", return_value=None):
            with pytest.raises(DeploymentError, match="already exists"):
                provider.create(props)

    def test_diff(self, props):
        provider = UserAccountProvider()

        assert provider.diff("localadmin", props, dict(props)).changes is False
        assert provider.diff(
            "localadmin", props, {**props, "groups": ["adm"]}
        ).changes is False

        removal = provider.diff("localadmin", props, {**props, "present": False})
        assert removal.changes is True
        assert removal.replaces == []

        renamed = provider.diff("localadmin", props, {**props, "login": "other"})
        assert renamed.replaces == ["login"]
