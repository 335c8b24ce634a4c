from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest


discord = pytest.importorskip("discord")

from fakes import BOT_ID, FakeBot, FakeMessage, http_error, user  # noqa: E402
from vc_thread_bot.discord.common import RENAME_BUTTON_ID, utcnow  # noqa: E402
from vc_thread_bot.discord.errors import LifecycleError  # noqa: E402


def _start_session(bot: FakeBot, member_id: int = 42, **vc_kwargs: object):
    vc = bot.voice_channel(**vc_kwargs)
    asyncio.run(bot.create_or_mention_thread(vc.id, user(member_id)))
    return vc, bot.created_threads[-1]


def test_first_join_creates_thread_and_binding() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot, name="Karaoke night")

    agenda = bot.announcement.sent[0]
    assert "<@42>" in agenda.content
    assert f"<#{vc.id}>" in agenda.content
    assert agenda.kwargs["allowed_mentions"].users is False

    assert thread.name == "Karaoke night"
    assert vc.sent[0].content.endswith(f"<#{thread.id}>")

    welcome = thread.sent[0]
    assert "<@42>" in welcome.content and "`Karaoke night`" in welcome.content
    view = welcome.kwargs["view"]
    assert [item.custom_id for item in view.children] == [RENAME_BUTTON_ID]

    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) == thread.id
    assert asyncio.run(bot.channel_map.voice_for_thread(thread.id)) == vc.id
    binding = asyncio.run(bot.channel_map.agenda_for_thread(thread.id))
    assert binding is not None and binding.agenda_message is agenda


def test_second_join_posts_join_notice_once() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)

    asyncio.run(bot.create_or_mention_thread(vc.id, user(43)))
    assert len(bot.created_threads) == 1
    assert len(bot.announcement.sent) == 1
    assert thread.sent[-1].content == "<@43> joined."

    thread.members.append(user(43))
    sent_before = len(thread.sent)
    asyncio.run(bot.create_or_mention_thread(vc.id, user(43)))
    assert len(thread.sent) == sent_before
    assert len(bot.created_threads) == 1


def test_unknown_channel_name_falls_back() -> None:
    bot = FakeBot()
    vc = bot.voice_channel(name="")
    asyncio.run(bot.create_or_mention_thread(vc.id, user(42)))
    assert bot.created_threads[0].name == "unknown"


def test_creation_failure_is_tagged_and_leaves_no_binding() -> None:
    bot = FakeBot()
    vc = bot.voice_channel()
    vc.send_error = http_error()

    with pytest.raises(LifecycleError, match="voice channel chat") as info:
        asyncio.run(bot.create_or_mention_thread(vc.id, user(42)))

    assert isinstance(info.value.__cause__, Exception)
    # Already sent messages are not rolled back.
    assert len(bot.announcement.sent) == 1
    assert len(bot.created_threads) == 1
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) is None


def test_missing_announcement_channel_aborts() -> None:
    bot = FakeBot()
    bot.channels.pop(bot.announcement.id)
    vc = bot.voice_channel()

    with pytest.raises(LifecycleError, match="announcement channel"):
        asyncio.run(bot.create_or_mention_thread(vc.id, user(42)))
    assert not bot.created_threads


def test_rename_thread_follows_voice_channel_name() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot, name="Old")

    vc.name = "Fortnite squad"
    asyncio.run(bot.rename_thread(vc.id))

    assert thread.name == "Fortnite squad"
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) == thread.id


def test_rename_thread_ignores_unbound_channel() -> None:
    bot = FakeBot()
    vc = bot.voice_channel()
    asyncio.run(bot.rename_thread(vc.id))
    assert not bot.created_threads


def test_rename_thread_failure_is_surfaced() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)
    thread.edit_error = http_error()

    with pytest.raises(LifecycleError, match="rename the thread"):
        asyncio.run(bot.rename_thread(vc.id))


def test_finalize_silent_minimal_window_signals_delete() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot)
    thread.post(BOT_ID, "starter", bot=True)
    assert len(thread.history_messages) == 2

    assert asyncio.run(bot.finalize_agenda_message(thread.id)) is True
    assert bot.announcement.sent[0].deleted is True


def test_finalize_silent_three_bot_messages_signals_archive() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot)
    thread.post(BOT_ID, bot=True)
    thread.post(BOT_ID, bot=True)

    assert asyncio.run(bot.finalize_agenda_message(thread.id)) is False
    assert bot.announcement.sent[0].deleted is True


def test_finalize_with_human_message_edits_summary() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot, name="Board games")
    thread.post(42, "hi all")
    thread.members.extend([user(42), user(43)])

    assert asyncio.run(bot.finalize_agenda_message(thread.id)) is False

    agenda = bot.announcement.sent[0]
    assert agenda.deleted is False
    content = agenda.edits[-1]["content"]
    assert "`Board games`" in content
    assert "<@42> <@43>" in content
    assert f"<@{BOT_ID}>" not in content
    assert agenda.edits[-1]["allowed_mentions"].users is False


def test_finalize_human_message_outside_window_is_ignored() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot)
    thread.history_messages.clear()
    thread.post(42, "early words")
    for _ in range(5):
        thread.post(BOT_ID, bot=True)

    assert asyncio.run(bot.finalize_agenda_message(thread.id)) is False
    assert bot.announcement.sent[0].deleted is True


def test_finalize_without_agenda_is_noop() -> None:
    bot = FakeBot()
    assert asyncio.run(bot.finalize_agenda_message(12345)) is False


def test_finalize_summary_reports_duration() -> None:
    bot = FakeBot()
    vc = bot.voice_channel()
    thread_agenda = asyncio.run(bot.announcement.send("agenda"))
    thread = asyncio.run(thread_agenda.create_thread(name="VC"))
    asyncio.run(
        bot.channel_map.bind(vc.id, thread.id, thread_agenda, started_at=utcnow() - timedelta(hours=1, minutes=2, seconds=3))
    )
    thread.post(42)

    asyncio.run(bot.finalize_agenda_message(thread.id))
    assert "`01:02:0" in thread_agenda.content


def test_finalize_agenda_delete_failure_is_not_fatal() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot)
    bot.announcement.sent[0].delete_error = http_error()

    assert asyncio.run(bot.finalize_agenda_message(thread.id)) is True


def test_finalize_requires_bot_identity_for_summary() -> None:
    bot = FakeBot()
    _, thread = _start_session(bot)
    thread.post(42)
    bot._bot_identity = None

    with pytest.raises(LifecycleError, match="bot identity"):
        asyncio.run(bot.finalize_agenda_message(thread.id))


def test_retire_deletes_silent_thread_and_clears_binding() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)
    thread.post(BOT_ID, bot=True)

    asyncio.run(bot.retire_thread(vc.id))

    assert thread.deleted is True
    assert thread.archived is False
    assert bot.announcement.sent[0].deleted is True
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) is None
    assert asyncio.run(bot.channel_map.voice_for_thread(thread.id)) is None
    assert asyncio.run(bot.channel_map.agenda_for_thread(thread.id)) is None


def test_retire_archives_discussed_thread() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)
    thread.post(42, "good game")
    thread.members.append(user(42))

    asyncio.run(bot.retire_thread(vc.id))

    assert thread.archived is True
    assert thread.deleted is False
    assert "has ended" in bot.announcement.sent[0].content
    assert len(bot.channel_map) == 0


def test_retire_archives_when_finalize_fails() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)
    thread.history_error = http_error()

    asyncio.run(bot.retire_thread(vc.id))

    assert thread.archived is True
    assert len(bot.channel_map) == 0


def test_retire_twice_is_harmless() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)

    asyncio.run(bot.retire_thread(vc.id))
    asyncio.run(bot.retire_thread(vc.id))

    assert thread.deleted is True


def test_rejoin_after_retire_starts_fresh_session() -> None:
    bot = FakeBot()
    vc, first = _start_session(bot)
    asyncio.run(bot.retire_thread(vc.id))

    asyncio.run(bot.create_or_mention_thread(vc.id, user(42)))

    second = bot.created_threads[-1]
    assert second is not first
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) == second.id


def test_welcome_views_do_not_accumulate_across_sessions() -> None:
    bot = FakeBot()
    for _ in range(25):
        vc, _thread = _start_session(bot)
        asyncio.run(bot.retire_thread(vc.id))

    assert len(bot.sent_views) == 25
    assert bot.tracked_views() == []


def test_welcome_view_is_released_when_send_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    import vc_thread_bot.discord.mixins.lifecycle_mixin as lifecycle_mixin

    built: list[discord.ui.View] = []
    real_build = lifecycle_mixin.build_rename_view

    def _build() -> discord.ui.View:
        built.append(real_build())
        return built[-1]

    monkeypatch.setattr(lifecycle_mixin, "build_rename_view", _build)
    bot = FakeBot()
    vc = bot.voice_channel()
    real_create_thread = FakeMessage.create_thread

    async def _create_broken_thread(self: FakeMessage, *, name: str):
        thread = await real_create_thread(self, name=name)
        thread.send_error = http_error()
        return thread

    monkeypatch.setattr(FakeMessage, "create_thread", _create_broken_thread)

    with pytest.raises(LifecycleError, match="welcome message"):
        asyncio.run(bot.create_or_mention_thread(vc.id, user(42)))

    assert len(built) == 1 and built[0].is_finished()
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) is None


def test_join_after_thread_was_deleted_starts_new_session() -> None:
    bot = FakeBot()
    vc, stale = _start_session(bot)
    bot.channels.pop(stale.id)

    asyncio.run(bot.create_or_mention_thread(vc.id, user(43)))

    fresh = bot.created_threads[-1]
    assert fresh is not stale
    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) == fresh.id
    assert asyncio.run(bot.channel_map.voice_for_thread(fresh.id)) == vc.id
    assert asyncio.run(bot.channel_map.voice_for_thread(stale.id)) is None
    assert asyncio.run(bot.channel_map.agenda_for_thread(stale.id)) is None
    assert len(bot.announcement.sent) == 2


def test_join_when_bound_thread_lookup_fails_keeps_binding() -> None:
    bot = FakeBot()
    vc, thread = _start_session(bot)
    bot.channels.pop(thread.id)
    bot.fetch_error = http_error()

    with pytest.raises(LifecycleError, match="bound thread"):
        asyncio.run(bot.create_or_mention_thread(vc.id, user(43)))

    assert asyncio.run(bot.channel_map.thread_for_voice(vc.id)) == thread.id
    assert len(bot.created_threads) == 1
