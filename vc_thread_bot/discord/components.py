from __future__ import annotations

import discord

from .common import (
    BUTTON_RENAME_LABEL,
    CHANNEL_NAME_LIMIT,
    FIELD_RENAME_LABEL,
    FIELD_RENAME_PLACEHOLDER,
    MODAL_RENAME_TITLE,
    RENAME_BUTTON_ID,
    RENAME_FIELD_ID,
    RENAME_MODAL_ID,
)


# Clicks and submissions are routed by custom id in ``on_interaction``. One rename
# view is registered as persistent in ``setup_hook``; per-message copies are stopped
# right after sending.


def build_rename_view() -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    view.add_item(
        discord.ui.Button(
            label=BUTTON_RENAME_LABEL,
            style=discord.ButtonStyle.success,
            custom_id=RENAME_BUTTON_ID,
        )
    )
    return view


def build_rename_modal() -> discord.ui.Modal:
    modal = discord.ui.Modal(title=MODAL_RENAME_TITLE, custom_id=RENAME_MODAL_ID, timeout=None)
    modal.add_item(
        discord.ui.TextInput(
            label=FIELD_RENAME_LABEL,
            placeholder=FIELD_RENAME_PLACEHOLDER,
            style=discord.TextStyle.short,
            custom_id=RENAME_FIELD_ID,
            min_length=1,
            max_length=CHANNEL_NAME_LIMIT,
            required=True,
        )
    )
    return modal
