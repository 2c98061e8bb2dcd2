"""Configuration for shellwise."""

import json
import logging
import os
import secrets
import stat
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from shellwise.models import RiskLevel

log = logging.getLogger(__name__)

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "DEFAULT_BLOCKED_COMMANDS",
    "SafetyConfig",
    "ShellwiseConfig",
    "custom_rules_file",
    "load_config",
    "save_config",
]

CONFIG_DIR = Path.home() / ".shellwise"
CONFIG_FILE = CONFIG_DIR / "config.json"
CUSTOM_RULES_FILENAME = "safety_rules.yaml"
BOOLEAN_TRUE_STRINGS = {"1", "true", "yes", "on"}
BOOLEAN_FALSE_STRINGS = {"0", "false", "no", "off"}

DEFAULT_BLOCKED_COMMANDS = ["shutdown", "reboot", "init 0", "init 6", ":(){ :|:& };:"]


class SafetyConfig(BaseModel):
    """Settings that drive command classification and execution policy."""

    require_confirmation: bool = Field(
        default=True,
        description="Ask before running any command at or above the confirm threshold.",
    )
    auto_execute_safe: bool = Field(
        default=False,
        description="Run commands classified SAFE without asking.",
    )
    confirm_threshold: RiskLevel = Field(
        default=RiskLevel.CAUTION,
        description="Lowest risk level that needs confirmation when require_confirmation is off.",
    )
    dry_run_default: bool = Field(
        default=False,
        description="Preview affected files instead of executing by default.",
    )
    max_affected_files: int = Field(
        default=100,
        description="Upper bound on affected files listed in a preview.",
    )
    blocked_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS),
        description="Command fragments that are always refused.",
    )
    allowed_paths: list[str] = Field(
        default_factory=list,
        description="Directories commands may touch. Empty means unrestricted.",
    )
    custom_rules_path: str | None = Field(
        default=None,
        description=(
            "YAML file with extra pattern rules. Defaults to "
            "~/.shellwise/safety_rules.yaml."
        ),
    )

    @field_validator("confirm_threshold", mode="before")
    @classmethod
    def _parse_threshold(cls, value: object) -> object:
        if isinstance(value, str):
            return RiskLevel.parse(value)
        return value


class ShellwiseConfig(BaseModel):
    """Runtime configuration for shellwise."""

    safety: SafetyConfig = Field(default_factory=SafetyConfig)


def custom_rules_file(config: ShellwiseConfig) -> Path:
    """Return the custom rules file configured for *config*."""
    if config.safety.custom_rules_path:
        return Path(config.safety.custom_rules_path).expanduser()
    return CONFIG_DIR / CUSTOM_RULES_FILENAME


def load_config() -> ShellwiseConfig:
    """Load config from file, with env var overrides.

    Reads ``~/.shellwise/config.json`` and applies environment variable
    overrides (``SHELLWISE_ALLOWED_PATHS``, ``SHELLWISE_BLOCKED_COMMANDS``,
    ``SHELLWISE_CONFIRM_THRESHOLD`` and ``SHELLWISE_AUTO_EXECUTE_SAFE``).
    Falls back to defaults when the file is absent or contains invalid JSON.

    Returns:
        The resolved ``ShellwiseConfig`` instance.

    Raises:
        pydantic.ValidationError: If the file holds values of the wrong type.
    """
    raw_config: dict[str, Any] = {}

    _ensure_config_dir_permissions(create=False)
    _ensure_config_file_permissions()

    if CONFIG_FILE.exists():
        try:
            with open(CONFIG_FILE) as f:
                loaded = json.load(f)
        except json.JSONDecodeError as exc:
            log.warning(
                "invalid config JSON in %s (%s); falling back to defaults",
                CONFIG_FILE,
                exc,
            )
        else:
            if isinstance(loaded, dict):
                raw_config = loaded
            log.debug("loaded config from %s", CONFIG_FILE)

    config = ShellwiseConfig.model_validate(raw_config)
    safety = config.safety

    # Env var overrides
    if (allowed := os.environ.get("SHELLWISE_ALLOWED_PATHS")) is not None:
        safety.allowed_paths = [p for p in allowed.split(os.pathsep) if p]
    if (blocked := os.environ.get("SHELLWISE_BLOCKED_COMMANDS")) is not None:
        safety.blocked_commands = [b.strip() for b in blocked.split(",") if b.strip()]
    if threshold := os.environ.get("SHELLWISE_CONFIRM_THRESHOLD"):
        try:
            safety.confirm_threshold = RiskLevel.parse(threshold)
        except ValueError as exc:
            log.warning("ignoring SHELLWISE_CONFIRM_THRESHOLD: %s", exc)
    if auto_raw := os.environ.get("SHELLWISE_AUTO_EXECUTE_SAFE"):
        normalized = auto_raw.strip().lower()
        if normalized in BOOLEAN_TRUE_STRINGS:
            safety.auto_execute_safe = True
        elif normalized in BOOLEAN_FALSE_STRINGS:
            safety.auto_execute_safe = False

    return config


def save_config(config: ShellwiseConfig) -> None:
    """Save config to file.

    Writes ``~/.shellwise/config.json`` atomically (temp file + rename) with
    0o600 permissions so the file is only readable by the owner.

    Args:
        config: Configuration to persist.

    Raises:
        OSError: If the config directory or file cannot be created or written.
    """
    _ensure_config_dir_permissions(create=True)
    # Write to a temp file opened as 0o600, then atomically replace.
    temp_file = CONFIG_DIR / f".{CONFIG_FILE.name}.{os.getpid()}.{secrets.token_hex(8)}.tmp"
    fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(config.model_dump_json(exclude_none=True, indent=2))
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, CONFIG_FILE)
    except Exception:
        temp_file.unlink(missing_ok=True)
        raise
    log.debug("saved config to %s", CONFIG_FILE)


def _ensure_config_dir_permissions(*, create: bool) -> None:
    """Ensure the config directory exists and is owner-only."""
    if create:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)

    if not CONFIG_DIR.exists():
        return

    current_mode = stat.S_IMODE(CONFIG_DIR.stat().st_mode)
    if current_mode & 0o077:
        CONFIG_DIR.chmod(0o700)
        log.warning(
            "updated config directory permissions for %s from %o to 700",
            CONFIG_DIR,
            current_mode,
        )


def _ensure_config_file_permissions() -> None:
    """Ensure the config file is not readable/writable by group or others."""
    if not CONFIG_FILE.exists():
        return

    current_mode = stat.S_IMODE(CONFIG_FILE.stat().st_mode)
    if current_mode & 0o077:
        CONFIG_FILE.chmod(0o600)
        log.warning(
            "updated config file permissions for %s from %o to 600",
            CONFIG_FILE,
            current_mode,
        )
