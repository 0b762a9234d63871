"""
Discord Channel Purge

Deletes every message in a Discord channel using a bot token.

Usage:
    channel-purge [CHANNEL_ID] [--delay SECONDS] [--match-embed-title REGEX]
                  [--fetch-retries N] [--env-file PATH] [--yes] [--verbose]

Environment:
    DISCORD_BOT_TOKEN     Bot token (required)
    DISCORD_CHANNEL_ID    Channel to purge when no argument is given
    DISCORD_DELETE_DELAY  Seconds to wait between deletions (default: 0.5)
"""

import argparse
import asyncio
import logging
import math
import os
import re
import signal
import sys
from typing import Optional

import httpx
from dotenv import find_dotenv, load_dotenv

from channel_purge.bulk_delete import (
    BulkDeleter,
    DEFAULT_DELETE_DELAY,
    SweepStats,
    embed_title_filter,
    validate_channel_id,
)
from channel_purge.discord_api import DiscordAPI
from channel_purge.errors import ConfigError, MessageFetchError

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="channel-purge",
        description="Delete all messages in a Discord channel",
    )
    parser.add_argument(
        "channel_id",
        nargs="?",
        help="Channel to purge (default: $DISCORD_CHANNEL_ID)",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help=f"Seconds between deletions (default: $DISCORD_DELETE_DELAY or {DEFAULT_DELETE_DELAY})",
    )
    parser.add_argument(
        "--match-embed-title",
        metavar="REGEX",
        help="Only delete messages whose first embed title matches REGEX",
    )
    parser.add_argument(
        "--fetch-retries",
        type=int,
        default=0,
        help="Retries for message listing on connection errors (default: 0)",
    )
    parser.add_argument("--env-file", help="Load environment from this .env file")
    parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def resolve_delay(cli_value: Optional[float]) -> float:
    """--delay, else DISCORD_DELETE_DELAY, else the default"""
    if cli_value is not None:
        delay = cli_value
    else:
        raw = os.getenv('DISCORD_DELETE_DELAY')
        if not raw:
            return DEFAULT_DELETE_DELAY
        try:
            delay = float(raw)
        except ValueError:
            raise ConfigError(f"DISCORD_DELETE_DELAY must be a number, got '{raw}'")

    if not math.isfinite(delay) or delay < 0:
        raise ConfigError(f"Delete delay must be a finite non-negative number, got {delay}")
    return delay


def print_results(stats: SweepStats):
    print()
    print("=" * 40)
    if stats.nothing_to_delete:
        print("No messages found, nothing to delete.")
    else:
        print("Results:")
        print(f"  Deleted: {stats.deleted} messages")
        print(f"  Failed:  {stats.failed} messages")
        if stats.skipped:
            print(f"  Skipped: {stats.skipped} messages (filter)")
        print(f"  Batches: {stats.batches}")
        if stats.cancelled:
            print("  Stopped early by signal")
    print("=" * 40)


def _install_signal_handlers(deleter: BulkDeleter) -> list:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, deleter.stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows / non-main thread
            pass
    return installed


async def run_purge(
    deleter: BulkDeleter,
    api: DiscordAPI,
) -> SweepStats:
    loop = asyncio.get_running_loop()
    installed = _install_signal_handlers(deleter)
    try:
        return await deleter.run()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await api.close()


def main(
    argv: Optional[list[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep=asyncio.sleep,
) -> int:
    """Entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    setup_logging(args.verbose)

    bot_token = os.getenv('DISCORD_BOT_TOKEN')
    channel_id = args.channel_id or os.getenv('DISCORD_CHANNEL_ID')

    try:
        if not bot_token:
            raise ConfigError("DISCORD_BOT_TOKEN environment variable not set")
        if not channel_id:
            raise ConfigError("No channel ID given (pass as argument or set DISCORD_CHANNEL_ID)")
        validate_channel_id(channel_id)
        delay = resolve_delay(args.delay)
        message_filter = embed_title_filter(args.match_embed_title) if args.match_embed_title else None

        api = DiscordAPI(bot_token, transport=transport)
        deleter = BulkDeleter(
            api,
            channel_id,
            delete_delay=delay,
            message_filter=message_filter,
            fetch_retries=args.fetch_retries,
            sleep=sleep,
        )
    except (ConfigError, ValueError, re.error) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print("=" * 40)
    print("Discord Bulk Delete")
    print("=" * 40)
    print(f"Channel ID: {channel_id}")
    if args.match_embed_title:
        print(f"Pattern: {args.match_embed_title}")
    print(f"Delay: {delay}s between deletions")
    print()

    if not args.yes and sys.stdin.isatty():
        confirm = input("Are you sure you want to delete messages? (yes/no): ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return EXIT_OK

    try:
        stats = asyncio.run(run_purge(deleter, api))
    except MessageFetchError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.body:
            print(f"Response: {e.body}", file=sys.stderr)
        return EXIT_ERROR

    print_results(stats)
    return EXIT_CANCELLED if stats.cancelled else EXIT_OK


def cli():
    sys.exit(main())


if __name__ == '__main__':
    cli()
