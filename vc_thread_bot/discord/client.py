from __future__ import annotations

import logging

import discord

from ..config import Settings
from .channel_map import ChannelMap
from .components import build_rename_view
from .mixins.events_mixin import EventsMixin
from .mixins.identity_mixin import IdentityMixin
from .mixins.lifecycle_mixin import LifecycleMixin
from .mixins.rename_mixin import RenameMixin

logger = logging.getLogger("vc_thread_bot")


class VcThreadDiscordBot(
    EventsMixin,
    RenameMixin,
    LifecycleMixin,
    IdentityMixin,
    discord.Client,
):
    def __init__(self, settings: Settings, channel_map: ChannelMap | None = None) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.voice_states = True
        # Listing thread members needs the privileged members intent.
        intents.members = True

        super().__init__(intents=intents)

        self.settings = settings
        self.channel_map = channel_map if channel_map is not None else ChannelMap()
        self._bot_identity: int | None = None

    async def setup_hook(self) -> None:
        self.add_view(build_rename_view())

    async def close(self) -> None:
        live = len(self.channel_map)
        if live:
            logger.info("Shutting down with %s live voice channel binding(s); they will not be restored", live)
        await super().close()
