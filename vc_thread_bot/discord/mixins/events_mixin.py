from __future__ import annotations

import logging
from typing import Any, Awaitable

import discord

from ..common import RENAME_BUTTON_ID, RENAME_MODAL_ID
from ..errors import LifecycleError

logger = logging.getLogger("vc_thread_bot")


class EventsMixin:
    async def on_ready(self) -> None:
        if self.user:
            self._remember_bot_identity(self.user.id)
            logger.info("Connected as %s (%s)", self.user, self.user.id)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        data = interaction.data or {}
        custom_id = data.get("custom_id")
        if interaction.type == discord.InteractionType.component and custom_id == RENAME_BUTTON_ID:
            await self._run_guarded("rename button", self.button_pressed(interaction))
        elif interaction.type == discord.InteractionType.modal_submit and custom_id == RENAME_MODAL_ID:
            await self._run_guarded("rename dialog", self.rename_vc(interaction))

    async def on_guild_channel_delete(self, channel: Any) -> None:
        if not self.is_custom_vc(channel):
            return
        await self._run_guarded(f"retire thread of voice channel {channel.id}", self.retire_thread(channel.id))

    async def on_guild_channel_update(self, before: Any, after: Any) -> None:
        if not self.is_custom_vc(after):
            return
        if getattr(before, "name", None) == getattr(after, "name", None):
            return
        await self._run_guarded(f"rename thread of voice channel {after.id}", self.rename_thread(after.id))

    async def on_voice_state_update(self, member: Any, before: Any, after: Any) -> None:
        channel = getattr(after, "channel", None)
        if channel is None:
            return
        # Mute/deafen/stream toggles keep the member in the same channel.
        before_channel = getattr(before, "channel", None)
        if before_channel is not None and before_channel.id == channel.id:
            return
        if not self.is_custom_vc(channel):
            return
        await self._run_guarded(
            f"create or mention thread for voice channel {channel.id}",
            self.create_or_mention_thread(channel.id, member),
        )

    async def _run_guarded(self, label: str, coro: Awaitable[None]) -> None:
        # Errors stop here; one event never affects another.
        try:
            await coro
        except LifecycleError as exc:
            logger.error("Failed to handle %s: %s", label, exc)
        except Exception:
            logger.exception("Unexpected error while handling %s", label)
