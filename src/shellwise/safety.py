"""Risk classification of shell commands before they run."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from enum import Enum

from shellwise.config import SafetyConfig, ShellwiseConfig, custom_rules_file
from shellwise.models import CommandAnalysis, FileInfo, MatchedPattern, RiskLevel
from shellwise.parser import CommandParseError, Invocation, iter_elements, parse_command
from shellwise.patterns import (
    DangerPattern,
    compile_custom_rules,
    get_dangerous_patterns,
    load_custom_rules,
)
from shellwise.preview import expand_home, get_affected_files
from shellwise.rules import apply_command_rule, apply_redirection_rule

log = logging.getLogger(__name__)


class ExecutionDecision(str, Enum):
    """What the caller should do with a classified command."""

    EXECUTE = "execute"
    CONFIRM = "confirm"
    REFUSE = "refuse"


class UnsafeCommandError(ValueError):
    """Raised when a command is refused by the safety policy."""

    def __init__(self, reasons: Sequence[str]):
        reason_text = "; ".join(reasons) or "critical risk"
        super().__init__(f"Unsafe command blocked: {reason_text}")
        self.reasons = tuple(reasons)


class Analyzer:
    """Classifies shell commands by risk.

    Holds only immutable configuration, so one instance can serve any number
    of concurrent ``analyze`` calls.

    Args:
        blocked_commands: Fragments that force ``CRITICAL`` wherever they appear.
        allowed_paths: Directory prefixes commands may touch; empty means no
            restriction.
        patterns: Pattern table to match raw text against; ``None`` selects
            the built-in table.
    """

    def __init__(
        self,
        blocked_commands: Iterable[str] = (),
        allowed_paths: Iterable[str] = (),
        patterns: Iterable[DangerPattern] | None = None,
    ):
        self._blocked_commands = tuple(blocked_commands)
        self._allowed_paths = tuple(allowed_paths)
        self._patterns = tuple(get_dangerous_patterns() if patterns is None else patterns)

    @classmethod
    def from_config(cls, config: ShellwiseConfig) -> Analyzer:
        """Build an analyzer from loaded configuration, custom rules included.

        Raises:
            shellwise.patterns.RuleFileError: If the custom rules file is invalid.
        """
        safety = config.safety
        custom = compile_custom_rules(load_custom_rules(custom_rules_file(config)))
        return cls(
            blocked_commands=safety.blocked_commands,
            allowed_paths=safety.allowed_paths,
            patterns=(*get_dangerous_patterns(), *custom),
        )

    @property
    def blocked_commands(self) -> tuple[str, ...]:
        return self._blocked_commands

    @property
    def allowed_paths(self) -> tuple[str, ...]:
        return self._allowed_paths

    @property
    def patterns(self) -> tuple[DangerPattern, ...]:
        return self._patterns

    def analyze(self, command: str) -> CommandAnalysis:
        """Classify *command*.

        Never raises for malformed input: when the command cannot be parsed
        the structural pass is skipped and a notice is recorded, while the
        pattern, blocklist and path checks still run.
        """
        analysis = CommandAnalysis(command=command)

        try:
            trees = parse_command(command)
        except CommandParseError as exc:
            log.debug("parse failed for %r, using pattern analysis only: %s", command, exc)
            analysis.add_notice(f"structural analysis skipped: {exc}")
        else:
            analysis.parsed = True
            self._structural_analysis(trees, analysis)

        self._pattern_analysis(command, analysis)
        self._check_blocked_commands(command, analysis)
        self._check_path_restrictions(analysis)

        log.debug(
            "analyzed %r: risk=%s reasons=%s", command, analysis.risk_level.label,
            analysis.risk_reasons,
        )
        return analysis

    def get_affected_files(self, analysis: CommandAnalysis) -> list[FileInfo]:
        return get_affected_files(analysis)

    def _structural_analysis(self, trees: list, analysis: CommandAnalysis) -> None:
        for element in iter_elements(trees):
            if isinstance(element, Invocation):
                apply_command_rule(element, analysis)
            else:
                apply_redirection_rule(element, analysis)

    def _pattern_analysis(self, command: str, analysis: CommandAnalysis) -> None:
        for pattern in self._patterns:
            if not pattern.matches(command):
                continue
            analysis.escalate(pattern.risk_level)
            analysis.add_match(
                MatchedPattern(
                    pattern=pattern.pattern.pattern,
                    description=pattern.description,
                    risk_level=pattern.risk_level,
                )
            )
            analysis.add_reason(pattern.description)
            if pattern.risk_level >= RiskLevel.DANGEROUS:
                analysis.mark_irreversible()

    def _check_blocked_commands(self, command: str, analysis: CommandAnalysis) -> None:
        for blocked in self._blocked_commands:
            if blocked and blocked in command:
                analysis.escalate(
                    RiskLevel.CRITICAL, f"Command '{blocked}' is blocked by configuration"
                )

    def _check_path_restrictions(self, analysis: CommandAnalysis) -> None:
        if not self._allowed_paths:
            return

        allowed = [expand_home(p) for p in self._allowed_paths]
        for raw_path in analysis.affected_paths:
            path = expand_home(raw_path)
            if not any(path.startswith(prefix) for prefix in allowed):
                analysis.escalate(
                    RiskLevel.CAUTION, f"Path '{path}' is outside allowed directories"
                )


def is_unsafe_override_enabled() -> bool:
    """Return whether unsafe-command override is enabled by environment."""
    return os.getenv("SHELLWISE_ALLOW_UNSAFE", "").strip().lower() in {"1", "true", "yes", "on"}


def decide_execution(
    analysis: CommandAnalysis, safety: SafetyConfig, *, allow_unsafe: bool = False
) -> ExecutionDecision:
    """Map a verdict onto run / ask / refuse under *safety* settings."""
    level = analysis.risk_level
    if level >= RiskLevel.CRITICAL and not allow_unsafe:
        return ExecutionDecision.REFUSE
    if level == RiskLevel.SAFE and safety.auto_execute_safe:
        return ExecutionDecision.EXECUTE
    if not safety.require_confirmation and level < safety.confirm_threshold:
        return ExecutionDecision.EXECUTE
    return ExecutionDecision.CONFIRM


def enforce_command_safety(
    analyzer: Analyzer, command: str, *, allow_unsafe: bool = False
) -> CommandAnalysis:
    """Analyze *command* and raise if it must not run.

    Raises:
        UnsafeCommandError: If the command is ``CRITICAL`` and *allow_unsafe*
            is not set.
    """
    analysis = analyzer.analyze(command)
    if analysis.risk_level >= RiskLevel.CRITICAL and not allow_unsafe:
        raise UnsafeCommandError(analysis.risk_reasons)
    return analysis
