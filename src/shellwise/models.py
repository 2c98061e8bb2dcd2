"""Records produced and consumed by the shellwise risk engine."""

from __future__ import annotations

from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class RiskLevel(IntEnum):
    """Ordered severity of a shell command."""

    SAFE = 0
    CAUTION = 1
    DANGEROUS = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: str | int | RiskLevel) -> RiskLevel:
        """Return the level named by *value* (``"caution"``, ``"CRITICAL"``, ``2``).

        Raises:
            ValueError: If *value* does not name a risk level.
        """
        if isinstance(value, RiskLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(level.name.lower() for level in cls)
            raise ValueError(f"unknown risk level {value!r} (expected one of: {names})") from None


class MatchedPattern(BaseModel):
    """A dangerous-pattern rule that matched the raw command text."""

    pattern: str
    description: str
    risk_level: RiskLevel


class FileInfo(BaseModel):
    """Filesystem metadata for a path a command would touch."""

    path: str
    size: int
    is_dir: bool
    file_count: int = Field(
        default=0,
        description="Entries found walking a directory, the directory itself included.",
    )


class CommandAnalysis(BaseModel):
    """Mutable verdict record filled in by successive analysis passes.

    Risk only ever goes up and ``reversible`` only ever goes from ``True`` to
    ``False``; every list is append-only.  Use the helper methods rather than
    assigning fields directly.
    """

    command: str
    risk_level: RiskLevel = RiskLevel.SAFE
    reversible: bool = True
    affected_paths: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)
    risk_reasons: list[str] = Field(default_factory=list)
    matched_patterns: list[MatchedPattern] = Field(default_factory=list)
    requires_sudo: bool = False
    parsed: bool = Field(
        default=False,
        description="True when the command was parsed and structural rules ran.",
    )
    notices: list[str] = Field(
        default_factory=list,
        description="Why analysis ran in a degraded mode, if it did.",
    )

    def escalate(self, level: RiskLevel, reason: str | None = None) -> None:
        """Raise the risk level to at least *level*, optionally recording why."""
        self.risk_level = max(self.risk_level, RiskLevel(level))
        if reason:
            self.risk_reasons.append(reason)

    def merge_external_risk(self, level: RiskLevel | str | int, reason: str | None = None) -> None:
        """Fold in a rating from another source (e.g. the command generator)."""
        self.escalate(RiskLevel.parse(level), reason)

    def mark_irreversible(self) -> None:
        self.reversible = False

    def add_path(self, path: str) -> None:
        self.affected_paths.append(path)

    def add_action(self, action: str) -> None:
        self.actions.append(action)

    def add_reason(self, reason: str) -> None:
        self.risk_reasons.append(reason)

    def add_match(self, match: MatchedPattern) -> None:
        self.matched_patterns.append(match)

    def add_notice(self, notice: str) -> None:
        self.notices.append(notice)


class CustomRule(BaseModel):
    """Operator-defined pattern rule, as written in a safety rules file."""

    pattern: str = Field(description="Regular expression searched for in the raw command.")
    action: Literal["warn", "block", "confirm"] = "warn"
    message: str = Field(description="Reason shown when the rule matches.")
    risk_level: RiskLevel = RiskLevel.CAUTION

    @field_validator("risk_level", mode="before")
    @classmethod
    def _parse_risk_level(cls, value: object) -> object:
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return RiskLevel.parse(value)
        return value
