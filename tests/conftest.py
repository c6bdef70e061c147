"""Shared fixtures."""

import pytest

from canvas_mcp import config as config_module
from canvas_mcp.config import ENV_VARS, CanvasConfig, load_config


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the developer's environment, .env and YAML config out of tests."""
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "config.yaml")


@pytest.fixture
def config(tmp_path) -> CanvasConfig:
    """Configuration pointing at a fake Canvas instance."""
    return load_config(
        api_token="test_token",
        api_url="https://school.edu",
        log_dir=tmp_path / "logs",
    )
