from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


RENAME_BUTTON_ID = "rename_button"
RENAME_MODAL_ID = "rename_title"
RENAME_FIELD_ID = "rename_text"

UNKNOWN_VC_NAME = "unknown"
THREAD_NAME_LIMIT = 100
CHANNEL_NAME_LIMIT = 100

# Discord component type for a text input inside a submitted modal.
TEXT_INPUT_COMPONENT_TYPE = 4

MSG_AGENDA = "{member} created a new voice channel.\nJoin the VC → {channel}"
MSG_VC_BACKREF = "VC chat → {thread}"
MSG_WELCOME = "{member} welcome to `{name}`.\nGive the channel a catchy name to bring everyone in!"
MSG_JOINED = "{member} joined."
MSG_CLOSING_SUMMARY = "The `{name}` VC has ended.\nCall duration: `{duration}`\nParticipants: {participants}"
MSG_ALREADY_DISSOLVED = "❌ That VC has already been dissolved."
MSG_OWNER_ONLY = "❌ Only the VC owner can change its name."
MSG_RENAME_MISSING = "❌ Please enter a new channel name."
MSG_RENAME_FAILED = "❌ Failed to change the VC name. Please try again later."
MSG_RENAMED = "✅ {user} changed the name."

BUTTON_RENAME_LABEL = "📝 Change channel name"
MODAL_RENAME_TITLE = "✏️ Change channel name"
FIELD_RENAME_LABEL = "What is this VC about?"
FIELD_RENAME_PLACEHOLDER = "Fortnite, word chain, karaoke, ..."


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def clip_name(text: str | None, limit: int = THREAD_NAME_LIMIT) -> str:
    cleaned = collapse_spaces(text or "")
    if not cleaned:
        return UNKNOWN_VC_NAME
    return cleaned[:limit]


def mention_user(user_id: int) -> str:
    return f"<@{user_id}>"


def mention_channel(channel_id: int) -> str:
    return f"<#{channel_id}>"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(started_at: datetime | None, ended_at: datetime | None = None) -> str:
    """Render elapsed time as ``HH:MM:SS``; unknown or negative spans render as zero."""
    if started_at is None:
        return "00:00:00"
    end = ended_at or utcnow()
    seconds = max(0, int((end - started_at).total_seconds()))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def extract_text_input(components: Any, custom_id: str) -> str | None:
    """Find the submitted value of a modal text input by its custom id.

    ``components`` is the raw ``interaction.data["components"]`` payload: a list of
    action rows, each holding its own ``components`` list.
    """
    if not isinstance(components, list):
        return None
    for row in components:
        if not isinstance(row, dict):
            continue
        children = row.get("components")
        # Newer payloads may wrap a single input in a label component instead of a row.
        if not isinstance(children, list):
            children = [row.get("component")] if isinstance(row.get("component"), dict) else []
        for child in children:
            if not isinstance(child, dict):
                continue
            if child.get("type") != TEXT_INPUT_COMPONENT_TYPE:
                continue
            if child.get("custom_id") == custom_id:
                value = child.get("value")
                return value if isinstance(value, str) else None
    return None


@dataclass(slots=True, frozen=True)
class SessionBinding:
    voice_channel_id: int
    thread_id: int
    agenda_message: Any
    started_at: datetime
