from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet

from dotenv import load_dotenv


load_dotenv()


def _env_lookup(name: str, aliases: tuple[str, ...] = ()) -> str | None:
    for key in (name, *aliases):
        # Be tolerant to UTF-8 BOM accidentally saved in .env key names.
        for candidate in (key, f"\ufeff{key}"):
            raw = os.getenv(candidate)
            if raw is not None:
                return raw
    return None


def _env_str(name: str, default: str, aliases: tuple[str, ...] = ()) -> str:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    return raw.strip() or default


def _env_int(name: str, default: int, aliases: tuple[str, ...] = ()) -> int:
    raw = _env_lookup(name, aliases)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_id_set(name: str, aliases: tuple[str, ...] = ()) -> FrozenSet[int]:
    raw = (_env_lookup(name, aliases) or "").strip()
    if not raw:
        return frozenset()
    result: set[int] = set()
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value:
            continue
        try:
            result.add(int(value))
        except ValueError:
            continue
    return frozenset(result)


@dataclass(slots=True, frozen=True)
class Settings:
    discord_token: str

    vc_category_id: int
    thread_channel_id: int
    vc_ignored_channel_ids: FrozenSet[int] = field(default_factory=frozenset)

    # Finalization looks at this many of the most recent thread messages.
    thread_history_window: int = 5
    # A silent thread is deleted (not archived) when the window holds at most this many messages.
    thread_delete_max_messages: int = 2

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            discord_token=_env_str("DISCORD_TOKEN", "", aliases=("DISCORD_BOT_TOKEN",)),
            vc_category_id=_env_int("VC_CATEGORY_ID", 0),
            thread_channel_id=_env_int("THREAD_CHANNEL_ID", 0, aliases=("ANNOUNCEMENT_CHANNEL_ID",)),
            vc_ignored_channel_ids=_env_id_set("VC_IGNORED_CHANNEL_IDS"),
            thread_history_window=_env_int("THREAD_HISTORY_WINDOW", 5),
            thread_delete_max_messages=_env_int("THREAD_DELETE_MAX_MESSAGES", 2),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        if not self.discord_token:
            raise ValueError("DISCORD_TOKEN is required in .env")
        if self.vc_category_id <= 0:
            raise ValueError("VC_CATEGORY_ID must be a positive channel id")
        if self.thread_channel_id <= 0:
            raise ValueError("THREAD_CHANNEL_ID must be a positive channel id")
        if self.thread_channel_id in self.vc_ignored_channel_ids:
            raise ValueError("THREAD_CHANNEL_ID must not be listed in VC_IGNORED_CHANNEL_IDS")
        if self.thread_history_window < 1:
            raise ValueError("THREAD_HISTORY_WINDOW must be >= 1")
        if self.thread_delete_max_messages < 0:
            raise ValueError("THREAD_DELETE_MAX_MESSAGES must be >= 0")
