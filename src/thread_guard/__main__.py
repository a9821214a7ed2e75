"""Command line entry point: evaluate one event against a configuration file."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

import aiohttp

from .discord import DiscordMemberDirectory
from .models import HookEvent, InboundMessage
from .plugin import BEFORE_NEW_MESSAGE_RECEIVED, BEFORE_NEW_THREAD, HookRegistry, setup

_EVENTS = {"thread": BEFORE_NEW_THREAD, "message": BEFORE_NEW_MESSAGE_RECEIVED}


async def run_event(
    config: dict[str, Any],
    *,
    content: str,
    user_id: str | None,
    event: str,
    token: str | None,
) -> bool:
    """Return ``True`` when the event would be cancelled."""

    registry = HookRegistry()
    cancelled: list[bool] = []

    async with aiohttp.ClientSession() as session:
        directory = DiscordMemberDirectory(session, token)
        setup(config, registry)
        message = InboundMessage(content=content, client=directory, author_id=user_id)
        hook_event = HookEvent(message, lambda: cancelled.append(True), user_id)
        await registry.dispatch(_EVENTS[event], hook_event)

    return bool(cancelled)


def main() -> None:
    parser = argparse.ArgumentParser(description="Check whether a message would be filtered")
    parser.add_argument("--config", required=True, help="Path to the JSON host configuration")
    parser.add_argument("--content", required=True, help="Message content")
    parser.add_argument("--user", help="Discord id of the acting user")
    parser.add_argument("--event", choices=sorted(_EVENTS), default="thread")
    parser.add_argument(
        "--discord-token",
        help="Discord bot token. Can also be passed via THREAD_GUARD_DISCORD_TOKEN",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = json.loads(Path(args.config).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        parser.error(f"Cannot read configuration {args.config}: {exc}")
    if not isinstance(config, dict):
        parser.error("Configuration file must contain a JSON object")

    token = args.discord_token or os.getenv("THREAD_GUARD_DISCORD_TOKEN")
    cancelled = asyncio.run(
        run_event(config, content=args.content, user_id=args.user, event=args.event, token=token)
    )
    print("cancel" if cancelled else "allow")
    raise SystemExit(1 if cancelled else 0)


if __name__ == "__main__":
    main()
