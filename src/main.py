# src/main.py - v4
"""CLI entry point: ask, config commands.

Usage:
    occlaude ask <message...> [--conversation FILE]
    occlaude config show
    occlaude config set <key> <value>

Global flags -l/--log and --log-file PATH add a rotating log file.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from occlaude.logging.handlers import DEFAULT_LOG_FILE
from occlaude.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from occlaude.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose, args.log_file)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("%s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="occlaude",
        description=f"occlaude v{__version__} - minimal Claude chat client",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "-l", "--log", dest="log_file", action="store_const", const=DEFAULT_LOG_FILE,
        help=f"Also log to {DEFAULT_LOG_FILE}",
    )
    parser.add_argument(
        "--log-file", dest="log_file", type=Path, default=None, metavar="PATH",
        help="Also log to a rotating file at PATH",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- ask ---
    p_ask = subparsers.add_parser("ask", help="Send a message and print the reply")
    p_ask.add_argument("message", nargs="+", help="Message text")
    p_ask.add_argument(
        "-c", "--conversation", type=Path, default=None,
        help="Conversation file to continue and update",
    )
    p_ask.add_argument("--model", default=None, help="Override the configured model")
    p_ask.add_argument(
        "--max-tokens", type=int, default=None,
        help="Override the configured output token limit",
    )
    p_ask.set_defaults(func=_cmd_ask)

    # --- config ---
    p_config = subparsers.add_parser("config", help="Show or change stored settings")
    config_sub = p_config.add_subparsers(dest="config_command", required=True)

    p_show = config_sub.add_parser("show", help="Print stored settings")
    p_show.set_defaults(func=_cmd_config_show)

    p_set = config_sub.add_parser("set", help="Store one setting")
    p_set.add_argument("key", help="api_key, model, max_tokens or system_prompt")
    p_set.add_argument("value", help="New value")
    p_set.set_defaults(func=_cmd_config_set)

    return parser


async def _cmd_ask(args: argparse.Namespace, settings) -> int:
    """Send one user turn, optionally continuing a saved conversation."""
    from occlaude.config.store import ConfigStore
    from occlaude.llm.api_client import ClaudeApiClient
    from occlaude.llm.conversation import Conversation

    settings = ConfigStore(settings.config_path).apply(settings)
    overrides = {}
    if args.model:
        overrides["model"] = args.model
    if args.max_tokens:
        overrides["max_tokens"] = args.max_tokens
    if overrides:
        settings = settings.model_copy(update=overrides)

    conversation = Conversation()
    if args.conversation is not None and args.conversation.exists():
        conversation = Conversation.load(args.conversation)
        logger.debug("Continuing conversation with %d messages", len(conversation))

    client = ClaudeApiClient.from_settings(settings)
    result = await conversation.send(client, settings, " ".join(args.message))
    print(_printable(result.text))

    if args.conversation is not None:
        conversation.save(args.conversation)
    return 0


async def _cmd_config_show(args: argparse.Namespace, settings) -> int:
    """Print stored values with the API key masked."""
    from occlaude.config.store import ConfigStore, mask_key

    store = ConfigStore(settings.config_path)
    values = store.load()
    print(f"Config file: {store.path}")
    print(f"  api_key:       {mask_key(values.get('api_key', ''))}")
    print(f"  model:         {values.get('model')}")
    print(f"  max_tokens:    {values.get('max_tokens')}")
    print(f"  system_prompt: {values.get('system_prompt')}")
    return 0


async def _cmd_config_set(args: argparse.Namespace, settings) -> int:
    """Validate and persist a single stored value."""
    from occlaude.config.store import STORED_KEYS, ConfigStore

    if args.key not in STORED_KEYS:
        logger.error("Unknown key: %s (expected one of %s)", args.key, ", ".join(STORED_KEYS))
        return 1

    value: str | int = args.value.strip()
    if args.key == "max_tokens":
        try:
            value = int(value)
        except ValueError:
            logger.error("max_tokens must be an integer: %r", args.value)
            return 1
        if value <= 0:
            logger.error("max_tokens must be > 0")
            return 1

    ConfigStore(settings.config_path).set(args.key, value)
    print(f"Saved {args.key}.")
    return 0


def _printable(text: str) -> str:
    """Replace lone surrogates, which cannot be written to a UTF-8 stream."""
    return text.encode("utf-8", "replace").decode("utf-8")


def _setup_logging(settings, verbose: bool, log_file: Path | None = None) -> None:
    """Configure logging for CLI usage. A --log-file path wins over settings."""
    from occlaude.logging.logger import setup_logging

    log_file = log_file or settings.log_file
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(log_file) if log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
