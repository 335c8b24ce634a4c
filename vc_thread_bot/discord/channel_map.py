from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from .common import SessionBinding, utcnow

logger = logging.getLogger("vc_thread_bot")


class ChannelMap:
    """Voice channel <-> thread bindings plus the agenda message of each thread.

    The three maps are guarded by independent locks. Every method copies its result
    out before returning, so callers never hold a lock while awaiting platform I/O.
    Writers go through ``bind``/``unbind_voice`` only, which keep the forward and
    reverse maps consistent with each other.
    """

    def __init__(self) -> None:
        self._voice_to_thread: dict[int, int] = {}
        self._thread_to_voice: dict[int, int] = {}
        self._thread_to_agenda: dict[int, SessionBinding] = {}

        self._voice_lock = asyncio.Lock()
        self._thread_lock = asyncio.Lock()
        self._agenda_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._voice_to_thread)

    async def thread_for_voice(self, voice_channel_id: int) -> int | None:
        async with self._voice_lock:
            return self._voice_to_thread.get(voice_channel_id)

    async def voice_for_thread(self, thread_id: int) -> int | None:
        async with self._thread_lock:
            return self._thread_to_voice.get(thread_id)

    async def agenda_for_thread(self, thread_id: int) -> SessionBinding | None:
        async with self._agenda_lock:
            return self._thread_to_agenda.get(thread_id)

    async def bind(
        self,
        voice_channel_id: int,
        thread_id: int,
        agenda_message: Any,
        started_at: datetime | None = None,
    ) -> bool:
        """Record a new binding. Returns False when the voice channel is already bound."""
        binding = SessionBinding(
            voice_channel_id=voice_channel_id,
            thread_id=thread_id,
            agenda_message=agenda_message,
            started_at=started_at or utcnow(),
        )

        # Reverse entry first so anyone who sees voice->thread can also resolve thread->voice.
        async with self._thread_lock:
            self._thread_to_voice[thread_id] = voice_channel_id
        async with self._voice_lock:
            existing = self._voice_to_thread.get(voice_channel_id)
            if existing is None or existing == thread_id:
                self._voice_to_thread[voice_channel_id] = thread_id
        if existing is not None and existing != thread_id:
            async with self._thread_lock:
                self._thread_to_voice.pop(thread_id, None)
            logger.warning(
                "Voice channel %s is already bound to thread %s; leaving thread %s unbound",
                voice_channel_id,
                existing,
                thread_id,
            )
            return False

        async with self._agenda_lock:
            self._thread_to_agenda[thread_id] = binding
        return True

    async def unbind_voice(self, voice_channel_id: int) -> SessionBinding | None:
        """Drop every entry of the binding that belongs to ``voice_channel_id``."""
        async with self._voice_lock:
            thread_id = self._voice_to_thread.pop(voice_channel_id, None)
        if thread_id is None:
            return None

        async with self._thread_lock:
            if self._thread_to_voice.get(thread_id) == voice_channel_id:
                self._thread_to_voice.pop(thread_id, None)
        async with self._agenda_lock:
            return self._thread_to_agenda.pop(thread_id, None)

    async def bindings(self) -> list[tuple[int, int]]:
        async with self._voice_lock:
            return list(self._voice_to_thread.items())
