"""
main.py - CLI orchestration for the SMS parser.

This module is orchestration-only:
1. load templates and recipients
2. parse (or scan for duplicate recipients)
3. format
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from explain import format_duplicates, format_duplicates_json, format_outcome, format_outcome_json
from logging_config import get_logger, setup_logging
from match import parse_message_async
from models import ParseOutcome
from recipients import find_all_duplicate_pairs
from template_store import JsonTemplateStore

logger = get_logger("sms-parser")

try:
    load_dotenv()
except UnicodeDecodeError:
    load_dotenv(encoding="cp1252")


def _configure_output() -> None:
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, ValueError, OSError):
        pass


def read_message(message: str | None, file_path: str | None) -> str:
    """Resolve the SMS text from --message or --file."""
    if message is not None:
        text = message
    elif file_path is not None:
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Message file not found: {file_path}")
        text = path.read_text(encoding="utf-8")
    else:
        raise ValueError("Provide the SMS with --message TEXT or --file PATH")

    if not text.strip():
        raise ValueError("SMS message is empty")
    return text.strip()


def open_store(data_path: str | None) -> JsonTemplateStore:
    store = JsonTemplateStore(data_path)
    if not store.path.exists():
        raise FileNotFoundError(
            f"Template data file not found: {store.path}\n"
            "Provide one with --data or set SMS_PARSER_DATA_FILE"
        )
    return store


def run_parse(args: argparse.Namespace) -> ParseOutcome:
    """Parse one SMS against the stored templates and print the outcome."""
    message = read_message(args.message, args.file)
    store = open_store(args.data)
    logger.info(
        "cli_parse | data=%s | template_id=%s | account=%s | chars=%s",
        store.path,
        args.template_id,
        args.account,
        len(message),
    )

    outcome = asyncio.run(
        parse_message_async(
            message,
            store,
            template_id=args.template_id,
            account_hint=args.account,
        )
    )

    if args.json:
        print(json.dumps(format_outcome_json(outcome), indent=2))
    else:
        print(format_outcome(outcome))
    return outcome


def run_duplicates(args: argparse.Namespace) -> None:
    """Print recipient pairs whose names look like the same entity."""
    store = open_store(args.data)
    recipients = store.load_state().recipients
    pairs = find_all_duplicate_pairs(recipients)

    if args.json:
        print(json.dumps(format_duplicates_json(pairs), indent=2))
    else:
        print(format_duplicates(pairs))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sms-parser",
        description=(
            "SMS Transaction Parser\n"
            "Extracts amount, recipient, date and more from bank or "
            "mobile-money notifications using stored regex templates."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s parse --message \"Ksh2,500.00 sent to JOHN DOE ...\"\n"
            "  %(prog)s parse --file sms.txt --template-id 3 --json\n"
            "  %(prog)s duplicates --data data/sms_parser.json\n"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs as JSON lines (for production/log aggregation)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    parse_cmd = commands.add_parser("parse", help="Parse one SMS message")
    parse_cmd.add_argument("--message", "-m", type=str, help="SMS text")
    parse_cmd.add_argument("--file", "-f", type=str, help="Path to a file holding the SMS text")
    parse_cmd.add_argument("--data", "-d", type=str, help="Templates/recipients JSON file")
    parse_cmd.add_argument("--template-id", "-t", type=int, help="Use only this template")
    parse_cmd.add_argument("--account", "-a", type=int, help="Account hint: try its template first")
    parse_cmd.add_argument("--json", action="store_true", help="Output the result as JSON")

    dup_cmd = commands.add_parser("duplicates", help="List likely duplicate recipients")
    dup_cmd.add_argument("--data", "-d", type=str, help="Templates/recipients JSON file")
    dup_cmd.add_argument("--json", action="store_true", help="Output the pairs as JSON")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the SMS parser."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        json_format=args.log_json,
    )
    _configure_output()

    try:
        if args.command == "duplicates":
            run_duplicates(args)
            return

        if args.message is not None and args.file is not None:
            parser.error("Use --message OR --file, not both")

        outcome = run_parse(args)
        if not outcome.ok:
            raise SystemExit(1)
    except FileNotFoundError as exc:
        logger.error("cli_error | type=FileNotFoundError | error=%s", exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error("cli_error | type=ValueError | error=%s", exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
        raise SystemExit(130)
    except Exception as exc:
        logger.error(
            "cli_error | type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        print(f"\nUnexpected error: {exc}")
        print("Run with --verbose for full traceback.")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
