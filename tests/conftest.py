"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path (for 'savesync.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep SAVESYNC_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("SAVESYNC_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore global logger state after each test."""
    from savesync.core.logging import VerbosityLevel, set_colors, set_verbosity

    yield
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)


@pytest.fixture
def resolver(tmp_path):
    """ConfigResolver isolated to tmp_path (no host config files).

    Returns:
        ConfigResolver instance
    """
    from savesync.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={
            "data_dir": str(tmp_path / "data"),
            "scratch_dir": str(tmp_path / "scratch"),
        },
        user_config_path=tmp_path / "missing-user.yaml",
        system_config_path=tmp_path / "missing-system.yaml",
    )


@pytest.fixture
def scratch_dir(tmp_path):
    return tmp_path / "scratch"


@pytest.fixture
def save_file(tmp_path):
    """Single-file save location containing 'foo'."""
    path = tmp_path / "notes.txt"
    path.write_text("foo")
    return path


@pytest.fixture
def save_dir(tmp_path):
    """Directory save location with a.txt and sub/b.txt."""
    root = tmp_path / "projdir"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("Hello")
    (root / "sub" / "b.txt").write_text("World")
    return root
