from __future__ import annotations

import asyncio
import contextlib
import logging

import discord

from .config import Settings
from .discord.client import VcThreadDiscordBot

logger = logging.getLogger("vc_thread_bot")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)


def build_bot(settings: Settings) -> VcThreadDiscordBot:
    return VcThreadDiscordBot(settings=settings)


async def _run_bot(settings: Settings) -> None:
    bot = build_bot(settings)
    try:
        async with bot:
            await bot.start(settings.discord_token)
    finally:
        if not bot.is_closed():
            with contextlib.suppress(Exception):
                await asyncio.wait_for(bot.close(), timeout=10.0)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    settings.validate()
    logger.info(
        "Watching voice category %s, announcing in channel %s (%s ignored channel(s))",
        settings.vc_category_id,
        settings.thread_channel_id,
        len(settings.vc_ignored_channel_ids),
    )
    try:
        asyncio.run(_run_bot(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown requested, exiting.")
    except discord.LoginFailure as exc:
        logger.error("Discord login failed: %s", exc)
        raise SystemExit(1) from exc
