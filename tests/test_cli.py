"""Tests for the sysadmin command line."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from sysadmin import SysadminCore, __version__
from sysadmin.cli import app

runner = CliRunner()

MAIN_PY = """\
from sysadmin import SysadminAccount, SysadminUser

localadmin = SysadminAccount(login="localadmin", members=[])
localadmin.add(SysadminUser(name="alice", email="alice@example.org"))
"""


@pytest.fixture
def main_file(temp_dir):
    path = temp_dir / "main.py"
    path.write_text(MAIN_PY)
    return path


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_show(main_file):
    result = runner.invoke(app, ["show", "--file", str(main_file), "--os", "ubuntu"])

    assert result.exit_code == 0, result.output
    assert "Sysadmin Show" in result.output
    assert "Declared resources" in result.output


def test_render(main_file):
    result = runner.invoke(app, ["render", "-f", str(main_file), "--os", "debian"])

    assert result.exit_code == 0, result.output
    assert '# /var/lib/localadmin/.sysadminrc - per-member settings' in result.output
    assert "export EMAIL=alice@example.org" in result.output
    assert result.output.rstrip().endswith("esac")


def test_unsupported_os(main_file):
    result = runner.invoke(app, ["show", "--file", str(main_file), "--os", "darwin"])

    assert result.exit_code == 1
    assert "not supported on darwin" in result.output


def test_missing_main_file(temp_dir):
    result = runner.invoke(app, ["show", "--file", str(temp_dir / "main.py")])

    assert result.exit_code == 1
    assert "No main.py found" in result.output


def test_invalid_ensure_from_environment(main_file, monkeypatch):
    monkeypatch.setenv("SYSADMIN_ENSURE", "installed")

    result = runner.invoke(app, ["render", "-f", str(main_file), "--os", "ubuntu"])

    assert result.exit_code == 1
    assert "Invalid ensure value 'installed'" in result.output


def test_plan_prints_pending_changes(main_file):
    outcome = {
        "dry_run": True,
        "resources": 10,
        "preview": {
            "success": True,
            "summary": {"change_summary": {"create": 10}, "total_changes": 10},
        },
    }

    with patch.object(SysadminCore, "plan", new=AsyncMock(return_value=outcome)):
        result = runner.invoke(app, ["plan", "-f", str(main_file), "--os", "ubuntu"])

    assert result.exit_code == 0, result.output
    assert "Declared resources: 10" in result.output
    assert "create   10" in result.output


def test_failed_apply_exits_non_zero(main_file):
    outcome = {"success": False, "error": "useradd: permission denied", "summary": None}

    with patch.object(SysadminCore, "apply", new=AsyncMock(return_value=outcome)):
        result = runner.invoke(app, ["apply", "-f", str(main_file), "--os", "ubuntu"])

    assert result.exit_code == 1
    assert "permission denied" in result.output
