"""Dangerous command patterns matched against raw command text."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from shellwise.models import CustomRule, RiskLevel

log = logging.getLogger(__name__)

__all__ = [
    "DangerPattern",
    "RuleFileError",
    "compile_custom_rules",
    "get_dangerous_patterns",
    "load_custom_rules",
    "patterns_by_category",
    "patterns_by_risk_level",
]


@dataclass(frozen=True)
class DangerPattern:
    """One rule of the dangerous pattern table."""

    pattern: re.Pattern[str]
    risk_level: RiskLevel
    description: str
    category: str

    def matches(self, command: str) -> bool:
        return self.pattern.search(command) is not None


class RuleFileError(ValueError):
    """Raised when a custom safety rules file cannot be used."""


def _rule(pattern: str, risk_level: RiskLevel, description: str, category: str) -> DangerPattern:
    return DangerPattern(re.compile(pattern), risk_level, description, category)


_CRITICAL = RiskLevel.CRITICAL
_DANGEROUS = RiskLevel.DANGEROUS
_CAUTION = RiskLevel.CAUTION

_DANGEROUS_PATTERNS: tuple[DangerPattern, ...] = (
    # System destruction
    _rule(r"\brm\s+(?:-[rfRv]+\s+)*(?:/|~/?)(?:\s|$)", _CRITICAL,
          "Delete from root or home directory", "filesystem"),
    _rule(r"\brm\s+-rf\s+/\s*$", _CRITICAL, "Wipe entire filesystem", "filesystem"),
    _rule(r"\bdd\s+.*of=/dev/(?:sd[a-z]|nvme|disk|hd[a-z])", _CRITICAL,
          "Direct disk write - can destroy data", "disk"),
    _rule(r"\bmkfs(?:\.[a-z0-9]+)?\s+", _CRITICAL, "Format filesystem", "disk"),
    _rule(r":\s*\(\s*\)\s*\{\s*:\s*\|\s*:\s*&\s*\}\s*;\s*:", _CRITICAL,
          "Fork bomb - will crash system", "system"),
    _rule(r">\s*/dev/(?:sd[a-z]|nvme|disk|hd[a-z])", _CRITICAL, "Overwrite disk device", "disk"),
    _rule(r"\bmv\s+(?:/|~)\s+", _CRITICAL, "Move root or home directory", "filesystem"),
    _rule(r"\bchmod\s+(?:-R\s+)?0?00?0\s+/", _CRITICAL,
          "Remove all permissions from root", "permissions"),
    # Major system changes
    _rule(r"\bchmod\s+-R\s+777", _DANGEROUS, "World-writable permissions (security risk)",
          "permissions"),
    _rule(r"\bchown\s+-R\s+", _DANGEROUS, "Recursive ownership change", "permissions"),
    _rule(r"\bcurl\s+.*\|\s*(?:ba)?sh\b", _DANGEROUS, "Pipe URL to shell - potential malware",
          "network"),
    _rule(r"\bwget\s+.*(?:-O\s*-|--output-document\s*=?\s*-).*\|\s*(?:ba)?sh\b", _DANGEROUS,
          "Download and execute - potential malware", "network"),
    _rule(r"\bsudo\s+rm\s+-rf", _DANGEROUS, "Privileged recursive deletion", "filesystem"),
    _rule(r">\s*/etc/", _DANGEROUS, "Overwrite system configuration", "system"),
    _rule(r"\brm\s+.*\*\s*$", _DANGEROUS, "Delete with wildcard", "filesystem"),
    _rule(r"\b(?:fdisk|parted)\b|\bdiskutil\s+erase", _DANGEROUS,
          "Disk partition modification", "disk"),
    _rule(r"\blaunchctl\s+unload.*com\.apple", _DANGEROUS, "Unload system service", "system"),
    # Potentially risky
    _rule(r"\brm\s+-[rf]+", _CAUTION, "Recursive or force delete", "filesystem"),
    _rule(r"\bsudo\s+", _CAUTION, "Elevated privileges", "system"),
    _rule(r"\bkill\s+-9\b", _CAUTION, "Force kill process", "process"),
    _rule(r"\b(?:pkill|killall)\b", _CAUTION, "Kill processes by name", "process"),
    _rule(r"(?<!>)>\s+[^|>]", _CAUTION, "File overwrite redirect", "filesystem"),
    _rule(r"\bgit\s+push.*--force", _CAUTION, "Force push can overwrite history", "git"),
    _rule(r"\bgit\s+reset\s+--hard", _CAUTION, "Hard reset discards changes", "git"),
    _rule(r"\bdocker\s+system\s+prune", _CAUTION, "Remove all unused Docker data", "docker"),
    _rule(r"\bdocker\s+rm\s+-f", _CAUTION, "Force remove container", "docker"),
    _rule(r"\b(?:brew\s+uninstall|apt\s+remove|yum\s+remove)\b", _CAUTION, "Package removal",
          "packages"),
    _rule(r"\bhistory\s+-c\b|>\s*~/\.(?:bash_history|zsh_history)", _CAUTION,
          "Clear command history", "system"),
    _rule(r"\btruncate\s+", _CAUTION, "Truncate file (data loss)", "filesystem"),
    _rule(r"\bshred\s+", _CAUTION, "Secure delete (unrecoverable)", "filesystem"),
)


def get_dangerous_patterns() -> tuple[DangerPattern, ...]:
    """Return the built-in pattern table, most severe rules first."""
    return _DANGEROUS_PATTERNS


def patterns_by_category(category: str) -> list[DangerPattern]:
    return [p for p in _DANGEROUS_PATTERNS if p.category == category]


def patterns_by_risk_level(level: RiskLevel) -> list[DangerPattern]:
    return [p for p in _DANGEROUS_PATTERNS if p.risk_level == level]


def load_custom_rules(path: Path) -> list[CustomRule]:
    """Load operator-defined rules from a YAML file.

    The file holds either a list of rules or a mapping with a ``rules`` list.
    Each rule has ``pattern``, ``message``, and optionally ``action``
    (``warn``/``block``/``confirm``) and ``risk_level``.

    Args:
        path: Location of the rules file.

    Returns:
        The parsed rules; an empty list when the file does not exist.

    Raises:
        RuleFileError: If the file is not valid YAML, has the wrong shape, or a
            rule fails validation or has an invalid regular expression.
    """
    if not path.exists():
        log.debug("no custom rules file at %s", path)
        return []

    try:
        with open(path) as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise RuleFileError(f"invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return []
    entries = loaded.get("rules", []) if isinstance(loaded, dict) else loaded
    if not isinstance(entries, list):
        raise RuleFileError(f"{path} must contain a list of rules")

    rules: list[CustomRule] = []
    for index, entry in enumerate(entries):
        try:
            rule = CustomRule.model_validate(entry)
        except ValidationError as exc:
            raise RuleFileError(f"invalid rule #{index + 1} in {path}: {exc}") from exc
        try:
            re.compile(rule.pattern)
        except re.error as exc:
            raise RuleFileError(
                f"invalid pattern {rule.pattern!r} in rule #{index + 1} of {path}: {exc}"
            ) from exc
        rules.append(rule)

    log.debug("loaded %d custom rules from %s", len(rules), path)
    return rules


def compile_custom_rules(rules: list[CustomRule]) -> list[DangerPattern]:
    """Turn custom rules into pattern table entries.

    A ``block`` rule is always compiled at ``CRITICAL`` so that it is refused
    like a blocklisted command.
    """
    compiled = []
    for rule in rules:
        level = RiskLevel.CRITICAL if rule.action == "block" else rule.risk_level
        compiled.append(_rule(rule.pattern, level, rule.message, "custom"))
    return compiled
