"""Shared test fixtures for aiarena."""

import pytest

from aiarena.config import EngineConfig


@pytest.fixture
def tmp_output(tmp_path):
    """Provide a temporary output directory for test runs."""
    return tmp_path / "output"


@pytest.fixture
def fast_engine_config():
    """Short turn deadline so timeout tests finish quickly."""
    return EngineConfig(max_attempts=3, turn_timeout_s=0.2, max_output_tokens=256)


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at an empty dir so no user secrets file is read."""
    home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)
    return home
