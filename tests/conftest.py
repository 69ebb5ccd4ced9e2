"""
Pytest configuration and fixtures for sysadmin tests.
"""

import tempfile
from pathlib import Path

import pytest

from sysadmin.settings import SysadminSettings


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep SYSADMIN_* variables of the developer's shell out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SYSADMIN_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr("sysadmin.settings._settings", None)


@pytest.fixture
def settings():
    """Settings with the shipped defaults, ignoring any .env file."""
    return SysadminSettings(_env_file=None)


@pytest.fixture
def ubuntu_settings():
    """Default settings on an Ubuntu host."""
    return SysadminSettings(_env_file=None, os_name="ubuntu")
