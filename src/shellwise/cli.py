"""Command-line interface for shellwise."""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

import shellwise.config as config_module
from shellwise import __version__
from shellwise.config import load_config, save_config
from shellwise.models import CommandAnalysis, FileInfo, RiskLevel
from shellwise.patterns import RuleFileError
from shellwise.safety import (
    Analyzer,
    ExecutionDecision,
    decide_execution,
    is_unsafe_override_enabled,
)

EXIT_CODES = {
    ExecutionDecision.EXECUTE: 0,
    ExecutionDecision.REFUSE: 1,
    ExecutionDecision.CONFIRM: 2,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shellwise",
        description="Classify the risk of a shell command before running it",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full analysis record as JSON",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="List existing files and directories the command would touch",
    )
    parser.add_argument(
        "--risk",
        type=RiskLevel.parse,
        metavar="LEVEL",
        help="Risk rating from another source (e.g. the command generator) to merge in",
    )
    parser.add_argument(
        "--allow-unsafe",
        action="store_true",
        help="Do not refuse CRITICAL commands",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write the effective configuration to ~/.shellwise/config.json and exit",
    )
    # everything from the first positional word on belongs to the command,
    # so its own flags (rm -rf, ls -d) are not read as ours
    parser.add_argument(
        "words",
        nargs=argparse.REMAINDER,
        metavar="command",
        help="The shell command to classify",
    )
    return parser


def _format_analysis(analysis: CommandAnalysis, decision: ExecutionDecision) -> str:
    lines = [f"$ {analysis.command}", f"risk: {analysis.risk_level.label}"]
    lines.extend(f"  - {reason}" for reason in analysis.risk_reasons)
    if analysis.actions:
        lines.append("actions:")
        lines.extend(f"  - {action}" for action in analysis.actions)
    if analysis.requires_sudo:
        lines.append("requires sudo")
    if not analysis.reversible:
        lines.append("not reversible")
    for notice in analysis.notices:
        lines.append(f"note: {notice}")
    lines.append(f"decision: {decision.value}")
    return "\n".join(lines)


def _format_files(files: list[FileInfo], limit: int) -> str:
    if not files:
        return "no existing files affected"
    lines = ["affected files:"]
    for info in files[:limit]:
        if info.is_dir:
            lines.append(f"  {info.path}/ ({info.file_count} entries)")
        else:
            lines.append(f"  {info.path} ({info.size} bytes)")
    if len(files) > limit:
        lines.append(f"  ... and {len(files) - limit} more")
    return "\n".join(lines)


def _init_config() -> int:
    """Persist the effective config so it can be edited by hand."""
    try:
        config = load_config()
        save_config(config)
    except (OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Wrote configuration to {config_module.CONFIG_FILE}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.words and not args.init_config:
        parser.error("the following arguments are required: command")

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )

    if args.init_config:
        return _init_config()

    try:
        config = load_config()
        analyzer = Analyzer.from_config(config)
    except (RuleFileError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    command = " ".join(args.words)
    analysis = analyzer.analyze(command)
    if args.risk is not None:
        analysis.merge_external_risk(args.risk)

    allow_unsafe = args.allow_unsafe or is_unsafe_override_enabled()
    decision = decide_execution(analysis, config.safety, allow_unsafe=allow_unsafe)
    preview = args.preview or config.safety.dry_run_default
    files = analyzer.get_affected_files(analysis) if preview else None

    if args.json:
        payload = analysis.model_dump(mode="json")
        payload["decision"] = decision.value
        if files is not None:
            payload["affected_files"] = [info.model_dump() for info in files]
        print(json.dumps(payload, indent=2))
    else:
        print(_format_analysis(analysis, decision))
        if files is not None:
            print(_format_files(files, config.safety.max_affected_files))

    return EXIT_CODES[decision]


def entrypoint() -> None:
    raise SystemExit(main())
