"""Shared pytest fixtures for test isolation helpers."""

from pathlib import Path

import pytest

import shellwise.config as config_module
from shellwise.safety import Analyzer

_ENV_OVERRIDES = (
    "SHELLWISE_ALLOWED_PATHS",
    "SHELLWISE_BLOCKED_COMMANDS",
    "SHELLWISE_CONFIRM_THRESHOLD",
    "SHELLWISE_AUTO_EXECUTE_SAFE",
    "SHELLWISE_ALLOW_UNSAFE",
)


@pytest.fixture()
def shellwise_config_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> tuple[Path, Path]:
    """Redirect shellwise config paths to a temp directory and clear env overrides."""
    config_dir = tmp_path / ".shellwise"
    config_file = config_dir / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_file)
    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    return config_dir, config_file


@pytest.fixture()
def config_dir(shellwise_config_paths: tuple[Path, Path]) -> Path:
    return shellwise_config_paths[0]


@pytest.fixture()
def config_file(shellwise_config_paths: tuple[Path, Path]) -> Path:
    return shellwise_config_paths[1]


@pytest.fixture()
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``~`` at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture()
def analyzer() -> Analyzer:
    """Analyzer with the built-in pattern table and no blocklist or allow-list."""
    return Analyzer()


@pytest.fixture()
def structural_analyzer() -> Analyzer:
    """Analyzer with an empty pattern table, so only structural rules apply."""
    return Analyzer(patterns=())
