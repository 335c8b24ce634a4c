from __future__ import annotations

import logging
from typing import Any

import discord

from ..common import (
    MSG_AGENDA,
    MSG_CLOSING_SUMMARY,
    MSG_JOINED,
    MSG_VC_BACKREF,
    MSG_WELCOME,
    clip_name,
    format_duration,
    mention_channel,
    mention_user,
)
from ..components import build_rename_view
from ..errors import LifecycleError

logger = logging.getLogger("vc_thread_bot")

NO_USER_MENTIONS = discord.AllowedMentions(users=False)


class LifecycleMixin:
    async def create_or_mention_thread(self, voice_channel_id: int, member: Any) -> None:
        thread_id = await self.channel_map.thread_for_voice(voice_channel_id)
        if thread_id is not None:
            try:
                bound_thread = await self._resolve_channel(thread_id)
            except discord.HTTPException as exc:
                raise LifecycleError("failed to fetch the bound thread") from exc
            if bound_thread is not None:
                await self._mention_joined_member(bound_thread, member)
                return
            logger.warning(
                "Thread %s of voice channel %s was deleted; starting a new session",
                thread_id,
                voice_channel_id,
            )
            await self.channel_map.unbind_voice(voice_channel_id)

        channel_name = clip_name(await self._channel_name(voice_channel_id))

        announcement = await self._require_channel(
            self.settings.thread_channel_id,
            "announcement channel is not available",
        )
        try:
            agenda = await announcement.send(
                MSG_AGENDA.format(member=mention_user(member.id), channel=mention_channel(voice_channel_id)),
                allowed_mentions=NO_USER_MENTIONS,
            )
        except discord.HTTPException as exc:
            raise LifecycleError("failed to send the agenda message") from exc

        try:
            thread = await agenda.create_thread(name=channel_name)
        except discord.HTTPException as exc:
            raise LifecycleError("failed to create the thread") from exc

        voice_channel = await self._require_channel(voice_channel_id, "voice channel disappeared before linking")
        try:
            await voice_channel.send(MSG_VC_BACKREF.format(thread=mention_channel(thread.id)))
        except discord.HTTPException as exc:
            raise LifecycleError("failed to post the thread link in the voice channel chat") from exc

        view = build_rename_view()
        try:
            await thread.send(
                MSG_WELCOME.format(member=mention_user(member.id), name=channel_name),
                view=view,
            )
        except discord.HTTPException as exc:
            raise LifecycleError("failed to send the welcome message") from exc
        finally:
            # send() tracks the view per message; clicks are served by the view registered in setup_hook.
            view.stop()

        if await self.channel_map.bind(voice_channel_id, thread.id, agenda):
            logger.info("Bound voice channel %s to thread %s (%s)", voice_channel_id, thread.id, channel_name)

    async def _mention_joined_member(self, thread: Any, member: Any) -> None:
        try:
            members = await thread.fetch_members()
        except discord.HTTPException as exc:
            raise LifecycleError("failed to fetch thread members") from exc

        if any(int(m.id) == int(member.id) for m in members):
            return
        try:
            await thread.send(MSG_JOINED.format(member=mention_user(member.id)))
        except discord.HTTPException as exc:
            raise LifecycleError("failed to send the join notice") from exc

    async def rename_thread(self, voice_channel_id: int) -> None:
        thread_id = await self.channel_map.thread_for_voice(voice_channel_id)
        if thread_id is None:
            return

        channel_name = clip_name(await self._channel_name(voice_channel_id))
        thread = await self._require_channel(thread_id, "bound thread is no longer available")
        try:
            await thread.edit(name=channel_name)
        except discord.HTTPException as exc:
            raise LifecycleError("failed to rename the thread") from exc
        logger.info("Renamed thread %s to %s", thread_id, channel_name)

    async def finalize_agenda_message(self, thread_id: int) -> bool:
        """Tidy up the agenda message of a finished session.

        Returns True when the thread should be deleted rather than archived: nobody
        but bots wrote in the recent window and the window holds only the bot's own
        opening posts.
        """
        binding = await self.channel_map.agenda_for_thread(thread_id)
        if binding is None:
            return False

        thread = await self._require_channel(thread_id, "bound thread is no longer available")
        try:
            messages = [m async for m in thread.history(limit=self.settings.thread_history_window)]
        except discord.HTTPException as exc:
            raise LifecycleError("failed to fetch recent thread messages") from exc

        agenda = binding.agenda_message
        if not any(not m.author.bot for m in messages):
            try:
                await agenda.delete()
            except discord.HTTPException as exc:
                # The thread still has to be retired.
                logger.error("Failed to delete agenda message of thread %s: %s", thread_id, exc)
            return len(messages) <= self.settings.thread_delete_max_messages

        try:
            members = await thread.fetch_members()
        except discord.HTTPException as exc:
            raise LifecycleError("failed to fetch thread members") from exc
        bot_id = self._bot_user_id()
        participants = " ".join(mention_user(m.id) for m in members if int(m.id) != bot_id)

        try:
            await agenda.edit(
                content=MSG_CLOSING_SUMMARY.format(
                    name=clip_name(getattr(thread, "name", None)),
                    duration=format_duration(binding.started_at),
                    participants=participants or "-",
                ),
                allowed_mentions=NO_USER_MENTIONS,
            )
        except discord.HTTPException as exc:
            logger.error("Failed to edit agenda message of thread %s: %s", thread_id, exc)
        return False

    async def retire_thread(self, voice_channel_id: int) -> None:
        thread_id = await self.channel_map.thread_for_voice(voice_channel_id)
        if thread_id is None:
            return

        try:
            should_delete = await self.finalize_agenda_message(thread_id)
        except LifecycleError as exc:
            logger.error("Failed to finalize agenda of thread %s, archiving instead: %s", thread_id, exc)
            should_delete = False

        try:
            thread = await self._resolve_channel(thread_id)
            if thread is None:
                logger.info("Thread %s is already gone", thread_id)
            elif should_delete:
                await thread.delete()
                logger.info("Deleted thread %s of voice channel %s", thread_id, voice_channel_id)
            else:
                await thread.edit(archived=True)
                logger.info("Archived thread %s of voice channel %s", thread_id, voice_channel_id)
        except discord.HTTPException as exc:
            action = "delete" if should_delete else "archive"
            logger.error("Failed to %s thread %s: %s", action, thread_id, exc)
        finally:
            await self.channel_map.unbind_voice(voice_channel_id)

    async def _require_channel(self, channel_id: int, stage: str) -> Any:
        try:
            channel = await self._resolve_channel(channel_id)
        except discord.HTTPException as exc:
            raise LifecycleError(stage) from exc
        if channel is None:
            raise LifecycleError(f"{stage} (id={channel_id})")
        return channel
