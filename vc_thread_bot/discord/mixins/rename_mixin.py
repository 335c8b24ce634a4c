from __future__ import annotations

import logging
from typing import Any

import discord

from ..common import (
    CHANNEL_NAME_LIMIT,
    MSG_ALREADY_DISSOLVED,
    MSG_OWNER_ONLY,
    MSG_RENAME_FAILED,
    MSG_RENAME_MISSING,
    MSG_RENAMED,
    RENAME_FIELD_ID,
    collapse_spaces,
    extract_text_input,
    mention_user,
)
from ..components import build_rename_modal
from ..errors import LifecycleError
from .lifecycle_mixin import NO_USER_MENTIONS

logger = logging.getLogger("vc_thread_bot")


class RenameMixin:
    # Both steps resolve the voice channel and check permissions from scratch: the
    # channel may be gone or its overwrites changed while the dialog was open.

    async def button_pressed(self, interaction: Any) -> None:
        voice_channel = await self._authorize_rename(interaction)
        if voice_channel is None:
            return
        try:
            await interaction.response.send_modal(build_rename_modal())
        except discord.HTTPException as exc:
            raise LifecycleError("failed to open the rename dialog") from exc

    async def rename_vc(self, interaction: Any) -> None:
        voice_channel = await self._authorize_rename(interaction)
        if voice_channel is None:
            return

        data = interaction.data or {}
        raw_name = extract_text_input(data.get("components"), RENAME_FIELD_ID)
        name = collapse_spaces(raw_name or "")[:CHANNEL_NAME_LIMIT]
        if not name:
            await self._reply_ephemeral(interaction, MSG_RENAME_MISSING)
            return

        # A rate limited rename can outlast the 3 second response window: acknowledge first.
        try:
            await interaction.response.defer()
        except discord.HTTPException as exc:
            raise LifecycleError("failed to acknowledge the rename dialog") from exc

        try:
            await voice_channel.edit(name=name)
        except (discord.HTTPException, discord.RateLimited) as exc:
            await self._send_followup(interaction, MSG_RENAME_FAILED, ephemeral=True)
            raise LifecycleError("failed to rename the voice channel") from exc

        logger.info("User %s renamed voice channel %s to %s", interaction.user.id, voice_channel.id, name)
        await self._send_followup(
            interaction,
            MSG_RENAMED.format(user=mention_user(interaction.user.id)),
            allowed_mentions=NO_USER_MENTIONS,
        )

    async def _authorize_rename(self, interaction: Any) -> Any | None:
        """Bound voice channel of the interaction's thread, or ``None`` after an error reply."""
        voice_channel = await self._resolve_bound_vc(interaction.channel_id)
        if voice_channel is None:
            await self._reply_ephemeral(interaction, MSG_ALREADY_DISSOLVED)
            return None
        if not self._can_manage_channel(voice_channel, interaction.user):
            await self._reply_ephemeral(interaction, MSG_OWNER_ONLY)
            return None
        return voice_channel

    async def _resolve_bound_vc(self, thread_id: int | None) -> Any | None:
        if thread_id is None:
            return None
        voice_channel_id = await self.channel_map.voice_for_thread(thread_id)
        if voice_channel_id is None:
            return None
        try:
            return await self._resolve_channel(voice_channel_id)
        except discord.HTTPException as exc:
            logger.warning("Failed to fetch voice channel %s: %s", voice_channel_id, exc)
            return None

    @staticmethod
    def _can_manage_channel(channel: Any, user: Any) -> bool:
        try:
            permissions = channel.permissions_for(user)
        except (AttributeError, TypeError) as exc:
            # Happens when the invoker is a bare User rather than a guild Member.
            logger.warning("Could not resolve permissions of %s on %s: %s", getattr(user, "id", "?"), channel.id, exc)
            return False
        return bool(permissions.manage_channels)

    async def _send_followup(self, interaction: Any, content: str, **kwargs: Any) -> None:
        try:
            await interaction.followup.send(content, **kwargs)
        except discord.HTTPException as exc:
            raise LifecycleError("failed to send the rename result") from exc

    async def _reply_ephemeral(self, interaction: Any, content: str) -> None:
        try:
            await interaction.response.send_message(content, ephemeral=True)
        except discord.HTTPException as exc:
            raise LifecycleError("failed to reply to the interaction") from exc
