from __future__ import annotations

import logging
from typing import Any

import discord

from ..errors import LifecycleError

logger = logging.getLogger("vc_thread_bot")


class IdentityMixin:
    def is_custom_vc(self, channel: Any) -> bool:
        if channel is None:
            return False
        if getattr(channel, "type", None) != discord.ChannelType.voice:
            return False
        category_id = getattr(channel, "category_id", None)
        if category_id is None or int(category_id) != self.settings.vc_category_id:
            return False
        return int(channel.id) not in self.settings.vc_ignored_channel_ids

    def _remember_bot_identity(self, user_id: int) -> None:
        current = self._bot_identity
        if current is None:
            self._bot_identity = int(user_id)
            return
        if current != int(user_id):
            logger.warning("Ignoring bot identity change %s -> %s", current, user_id)

    def _bot_user_id(self) -> int:
        if self._bot_identity is None:
            raise LifecycleError("bot identity is not known yet (READY not received)")
        return self._bot_identity

    async def _resolve_channel(self, channel_id: int) -> Any | None:
        """Cached channel lookup with an API fallback. ``None`` when the channel is gone."""
        channel = self.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden):
            return None

    async def _channel_name(self, channel_id: int) -> str | None:
        try:
            channel = await self._resolve_channel(channel_id)
        except discord.HTTPException as exc:
            logger.warning("Failed to fetch name of channel %s: %s", channel_id, exc)
            return None
        if channel is None:
            return None
        return getattr(channel, "name", None)
