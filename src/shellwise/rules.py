"""Structural rules applied to parsed command invocations."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from shellwise.models import CommandAnalysis, RiskLevel
from shellwise.parser import Invocation, Redirection

ROOT_OR_HOME = frozenset({"/", "~", "$HOME"})
WORLD_WRITABLE_MODES = frozenset({"777", "0777"})
# chmod modes that argument splitting files under flags: -w, -rwx, --reference=REF
_DASH_MODE = re.compile(r"-[rwxXst]+|--reference=.*")

Rule = Callable[[Invocation, CommandAnalysis], None]


@dataclass
class _Arguments:
    """Literal arguments of an invocation split into flags and operands."""

    flags: list[str] = field(default_factory=list)
    operands: list[str] = field(default_factory=list)

    def has_short(self, *letters: str) -> bool:
        return any(
            letter in flag[1:]
            for flag in self.flags
            if not flag.startswith("--")
            for letter in letters
        )

    def has_long(self, name: str) -> bool:
        return f"--{name}" in self.flags


def split_arguments(args: tuple[str | None, ...]) -> _Arguments:
    """Separate flags from operands, skipping dynamic arguments.

    A ``--`` token ends option parsing; later tokens are operands even if they
    start with a dash.
    """
    result = _Arguments()
    options_done = False
    for arg in args:
        if not arg:
            continue
        if not options_done and arg == "--":
            options_done = True
            continue
        if not options_done and arg.startswith("-") and arg != "-":
            result.flags.append(arg)
        else:
            result.operands.append(arg)
    return result


def _analyze_rm(invocation: Invocation, analysis: CommandAnalysis) -> None:
    args = split_arguments(invocation.args)
    recursive = args.has_short("r", "R") or args.has_long("recursive")
    force = args.has_short("f") or args.has_long("force")

    for path in args.operands:
        analysis.add_path(path)
        if path in ROOT_OR_HOME:
            analysis.escalate(RiskLevel.CRITICAL, "Attempting to delete root or home directory")

    if recursive and force:
        analysis.escalate(RiskLevel.DANGEROUS, "Recursive force deletion cannot be undone")
        analysis.mark_irreversible()
    elif recursive or force:
        analysis.escalate(RiskLevel.CAUTION, "Deletion operation")

    analysis.add_action("DELETE files/directories")


def _analyze_mv(invocation: Invocation, analysis: CommandAnalysis) -> None:
    for path in split_arguments(invocation.args).operands:
        analysis.add_path(path)
    analysis.add_action("MOVE/RENAME files")
    analysis.escalate(RiskLevel.CAUTION)


def _analyze_cp(invocation: Invocation, analysis: CommandAnalysis) -> None:
    for path in split_arguments(invocation.args).operands:
        analysis.add_path(path)
    analysis.add_action("COPY files")


def _analyze_chmod(invocation: Invocation, analysis: CommandAnalysis) -> None:
    args = split_arguments(invocation.args)
    recursive = args.has_short("R") or args.has_long("recursive")

    if any(operand in WORLD_WRITABLE_MODES for operand in args.operands):
        analysis.escalate(RiskLevel.DANGEROUS, "World-writable permissions are a security risk")
    # the first operand is the mode unless a flag already supplied it
    mode_in_flags = any(_DASH_MODE.fullmatch(flag) for flag in args.flags)
    for path in args.operands if mode_in_flags else args.operands[1:]:
        analysis.add_path(path)

    if recursive:
        analysis.escalate(RiskLevel.CAUTION, "Recursive permission change")

    analysis.add_action("MODIFY permissions")


def _analyze_chown(invocation: Invocation, analysis: CommandAnalysis) -> None:
    args = split_arguments(invocation.args)
    recursive = args.has_short("R") or args.has_long("recursive")

    # first operand is the owner[:group] spec
    for path in args.operands[1:]:
        analysis.add_path(path)

    if recursive:
        analysis.escalate(RiskLevel.DANGEROUS, "Recursive ownership change")

    analysis.add_action("MODIFY ownership")


def _analyze_sudo(invocation: Invocation, analysis: CommandAnalysis) -> None:
    analysis.requires_sudo = True
    analysis.escalate(RiskLevel.CAUTION, "Command requires elevated privileges")


def _analyze_dd(invocation: Invocation, analysis: CommandAnalysis) -> None:
    analysis.escalate(RiskLevel.DANGEROUS, "Direct disk access - potential data loss")
    analysis.mark_irreversible()


COMMAND_RULES: dict[str, Rule] = {
    "rm": _analyze_rm,
    "mv": _analyze_mv,
    "cp": _analyze_cp,
    "chmod": _analyze_chmod,
    "chown": _analyze_chown,
    "sudo": _analyze_sudo,
    "dd": _analyze_dd,
}


def apply_command_rule(invocation: Invocation, analysis: CommandAnalysis) -> bool:
    """Run the rule registered for the invocation's command name.

    Returns:
        ``True`` when a rule exists for the command, ``False`` otherwise.
    """
    rule = COMMAND_RULES.get(invocation.name)
    if rule is None:
        return False
    rule(invocation, analysis)
    return True


def apply_redirection_rule(redirection: Redirection, analysis: CommandAnalysis) -> None:
    """Record a redirect target; overwriting redirects also raise the risk."""
    analysis.add_path(redirection.target)
    if redirection.overwrites:
        analysis.escalate(RiskLevel.CAUTION)
        analysis.add_action(f"OVERWRITE file: {redirection.target}")
