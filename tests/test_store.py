"""Tests for the SQLite store."""

from datetime import datetime, timedelta

import pytest

from storage import BotStore


def test_upsert_keeps_existing_fields(store):
    store.upsert_user("+1", name="Ada", is_admin=True)
    user = store.upsert_user("+1")
    assert user.name == "Ada"
    assert user.is_admin

    user = store.upsert_user("+1", name="Ada L.", is_admin=False)
    assert user.name == "Ada L."
    assert not user.is_admin


def test_upsert_requires_address(store):
    with pytest.raises(ValueError):
        store.upsert_user("")


def test_set_blocked_unknown_user(store):
    assert store.set_blocked("+404", True) is False
    assert store.get_user("+404") is None


def test_touch_last_seen(store):
    store.upsert_user("+1")
    store.touch_last_seen("+1")
    assert store.get_user("+1").last_seen is not None


def test_list_due_pending(store):
    now = datetime(2030, 1, 1, 12, 0)
    early = store.add_scheduled_message("c", "early", now - timedelta(hours=1))
    store.add_scheduled_message("c", "future", now + timedelta(hours=1))
    on_time = store.add_scheduled_message("c", "on time", now)

    assert [m.id for m in store.list_due_pending(now)] == [early, on_time]


def test_mark_delivered_is_conditional(store):
    message_id = store.add_scheduled_message("c", "hi", datetime(2030, 1, 1))

    assert store.mark_delivered(message_id) is True
    assert store.mark_delivered(message_id) is False
    assert store.mark_delivered(9999) is False
    assert store.list_due_pending(datetime(2031, 1, 1)) == []


def test_settings(store):
    assert store.get_setting("k", "default") == "default"
    store.set_setting("k", "v1")
    store.set_setting("k", "v2")
    assert store.get_setting("k") == "v2"


def test_stats(store):
    store.upsert_user("+1")
    store.log_message("+1", "+1", "m1", "hello")
    rule = store.add_auto_reply("a", "b")
    store.add_auto_reply("c", "d")
    store.deactivate_auto_reply(rule)
    delivered = store.add_scheduled_message("c", "x", datetime(2030, 1, 1))
    store.add_scheduled_message("c", "y", datetime(2030, 1, 1))
    store.mark_delivered(delivered)

    stats = store.get_stats()
    assert (stats.total_users, stats.total_messages, stats.auto_replies, stats.scheduled_messages) == (1, 1, 1, 1)


def test_deactivate_twice(store):
    rule = store.add_auto_reply("a", "b")
    assert store.deactivate_auto_reply(rule) is True
    assert store.deactivate_auto_reply(rule) is False


def test_state_survives_reopen(tmp_path):
    path = str(tmp_path / "db" / "bot.db")
    first = BotStore(path)
    message_id = first.add_scheduled_message("c", "persist", datetime(2030, 1, 1))
    first.close()

    second = BotStore(path)
    try:
        assert [m.id for m in second.list_due_pending(datetime(2030, 1, 2))] == [message_id]
    finally:
        second.close()
