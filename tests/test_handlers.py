"""Tests for the built-in command handlers."""

import logging
from datetime import datetime

import pytest

from commands.context import CommandInvocation, MessageContext
from commands.dispatch import OutcomeKind
from commands.handlers import build_command_table, parse_timestamp, split_schedule_args
from configuration import Config

from conftest import ADMIN, USER, make_message, run


@pytest.fixture(autouse=True)
def users(store):
    store.upsert_user(ADMIN, name="Ada", is_admin=True)
    store.upsert_user(USER, name="Bob")


@pytest.fixture
def table():
    return build_command_table()


@pytest.fixture
def call(table, channel, store, config, services):
    def _call(text, sender=ADMIN, cfg=None):
        msg = make_message(text, sender=sender)
        ctx = MessageContext(msg=msg, channel=channel, store=store, config=cfg or config,
                             logger=logging.getLogger("test"), services=services)
        tokens = text.split()
        inv = CommandInvocation(token=tokens[0][1:].lower(), args=tokens[1:], invoker=sender,
                                conversation=msg.get_chat_id())
        return run(table.dispatch(inv, ctx))
    return _call


class TestCalc:
    def test_result(self, call):
        outcome = call("/calc 2 + 2 * 3", sender=USER)
        assert outcome.kind == OutcomeKind.OK
        assert outcome.messages == ["🧮 Calculation Result\n\n2 + 2 * 3 = 8"]

    def test_invalid_characters(self, call):
        outcome = call("/calc import os", sender=USER)
        assert outcome.kind == OutcomeKind.USAGE
        assert outcome.messages[0].startswith("❌ Invalid characters in expression")

    def test_invalid_expression(self, call):
        outcome = call("/calc 1/0", sender=USER)
        assert outcome.messages[0].startswith("❌ Invalid math expression")

    def test_missing_expression(self, call):
        outcome = call("/calc", sender=USER)
        assert outcome.kind == OutcomeKind.USAGE

    def test_deeply_nested_expression(self, call):
        outcome = call("/calc " + "+".join(["1"] * 1500), sender=USER)
        assert outcome.kind == OutcomeKind.USAGE
        assert outcome.messages[0].startswith("❌ Invalid math expression")


class TestScheduleParsing:
    def test_iso(self):
        assert split_schedule_args(["2030-01-01T12:00:00", "Hi", "all"]) == ("2030-01-01T12:00:00", ["Hi", "all"])

    def test_two_tokens(self):
        assert split_schedule_args(["2030-01-01", "12:00", "Hi"]) == ("2030-01-01 12:00", ["Hi"])

    def test_quoted(self):
        when, rest = split_schedule_args(["\"2030-01-01", "12:00:00\"", "Happy", "New", "Year!"])
        assert parse_timestamp(when) == datetime(2030, 1, 1, 12, 0, 0)
        assert rest == ["Happy", "New", "Year!"]

    @pytest.mark.parametrize("text", ["tomorrow", "2030-13-01 10:00", "", "\"\""])
    def test_unparsable(self, text):
        assert parse_timestamp(text) is None


class TestSchedule:
    def test_schedules_for_invoking_conversation(self, call, store):
        outcome = call("/schedule 2030-01-01 12:00:00 Happy New Year!")
        assert outcome.messages == ["✅ Message scheduled for 2030-01-01 12:00:00"]

        row = store.get_scheduled_message(outcome.metadata["scheduled_id"])
        assert row.conversation_id == ADMIN
        assert row.message == "Happy New Year!"
        assert row.scheduled_time == datetime(2030, 1, 1, 12, 0, 0)
        assert not row.delivered

    def test_invalid_date(self, call, store):
        outcome = call("/schedule someday hello")
        assert outcome.kind == OutcomeKind.USAGE
        assert outcome.messages == ["❌ Invalid date format. Use: YYYY-MM-DD HH:MM:SS"]
        assert store.get_stats().scheduled_messages == 0

    def test_missing_message(self, call):
        outcome = call("/schedule 2030-01-01 12:00")
        assert outcome.kind == OutcomeKind.USAGE

    def test_non_admin_denied(self, call, store):
        outcome = call("/schedule 2030-01-01T12:00:00 hi", sender=USER)
        assert outcome.kind == OutcomeKind.DENIED
        assert store.get_stats().scheduled_messages == 0

    def test_feature_disabled(self, call, config_data, store):
        cfg = Config.from_dict({**config_data, "features": {"scheduled_messages": False}})
        outcome = call("/schedule 2030-01-01T12:00:00 hi", cfg=cfg)
        assert outcome.messages == ["❌ Scheduled messages are disabled."]
        assert store.get_stats().scheduled_messages == 0


class TestBroadcast:
    def test_partial_failure_counted(self, call, channel):
        channel.fail_for.add("c2")
        channel.hang_for.add("c3")

        outcome = call("/broadcast Server maintenance tonight")

        assert outcome.kind == OutcomeKind.PARTIAL
        assert outcome.metadata == {"success": 1, "fail": 2}
        assert outcome.messages == ["📢 Broadcast completed!\n✅ Sent: 1\n❌ Failed: 2"]
        assert channel.texts_to("c1") == ["📢 Broadcast Message\n\nServer maintenance tonight"]

    def test_all_delivered(self, call, channel):
        outcome = call("/broadcast hi")
        assert outcome.kind == OutcomeKind.OK
        assert outcome.metadata == {"success": 3, "fail": 0}

    def test_exception_counts_as_failure(self, call, channel):
        channel.raise_for.add("c1")
        outcome = call("/broadcast hi")
        assert outcome.metadata == {"success": 2, "fail": 1}


class TestBlock:
    def test_unknown_user(self, call, store):
        outcome = call("/block +19998887777")
        assert outcome.kind == OutcomeKind.NOT_FOUND
        assert outcome.messages == ["❌ User +19998887777 not found."]
        assert store.get_user("+19998887777") is None

    def test_block_and_unblock(self, call, store):
        assert call(f"/block {USER}").messages == [f"✅ User {USER} has been blocked."]
        assert store.get_user(USER).is_blocked

        assert call(f"/unblock {USER}").messages == [f"✅ User {USER} has been unblocked."]
        assert not store.get_user(USER).is_blocked


class TestOtherCommands:
    def test_ping_sends_two_messages(self, call, channel):
        outcome = call("/ping", sender=USER)
        assert channel.texts_to(USER) == ["🏓 Pong!"]
        assert outcome.messages[0].startswith("⚡ Response time: ")
        assert outcome.messages[0].endswith("ms")

    def test_auto_reply_added(self, call, store):
        outcome = call("/auto-reply hello Hi there! How can I help?")
        assert outcome.kind == OutcomeKind.OK
        rules = store.list_active_auto_replies()
        assert [(r.trigger, r.reply) for r in rules] == [("hello", "Hi there! How can I help?")]

    def test_stats(self, call):
        outcome = call("/stats")
        assert "📊 Bot Statistics" in outcome.messages[0]
        assert "Total Users: 2" in outcome.messages[0]

    def test_admin_panel(self, call):
        assert "Welcome, Ada!" in call("/admin").messages[0]

    def test_help(self, call):
        text = call("/help", sender=USER).messages[0]
        assert "/weather [city]" in text
        assert "/broadcast [message]" in text

    def test_status(self, call):
        text = call("/status", sender=USER).messages[0]
        assert "Status: 🟢 Online" in text
        assert "Bot Version: 1.0.0" in text

    def test_time(self, call):
        assert call("/time", sender=USER).messages[0].startswith("🕐 Current Time")

    def test_weather(self, call):
        outcome = call("/weather New York", sender=USER)
        assert outcome.messages == ["🌤️ Weather for New York"]

    def test_weather_upstream_failure(self, call, services):
        services.weather_ok = False
        outcome = call("/weather Atlantis", sender=USER)
        assert outcome.kind == OutcomeKind.UPSTREAM
        assert outcome.messages[0].startswith("❌ Could not fetch weather data")

    def test_quote_and_joke(self, call):
        assert call("/quote", sender=USER).messages[0].startswith("💭")
        assert call("/joke", sender=USER).messages[0].startswith("😂")

    def test_translate(self, call):
        assert "Original: hola amigo" in call("/translate hola amigo", sender=USER).messages[0]
