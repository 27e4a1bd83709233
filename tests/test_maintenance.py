"""Tests for the cleanup, digest and health sweeps."""

import json
import os
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from configuration import Config
from scheduler import Maintenance
from scheduler.maintenance import DIGEST_SETTING, HEALTH_SETTING

from conftest import run

NOW = datetime(2030, 1, 10, 9, 0, 0)


@pytest.fixture
def maintenance(store, channel, config):
    return Maintenance(store, channel, config, clock=lambda: NOW, memory_reader=lambda: 42.0)


def _touch(path: Path, when: datetime):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    os.utime(path, (when.timestamp(), when.timestamp()))


class TestCleanup:
    def test_removes_only_old_uploads(self, maintenance, config):
        root = Path(config.STORAGE.uploads_dir)
        old = root / "images" / "image_1.png"
        fresh = root / "documents" / "document_2.pdf"
        _touch(old, NOW - timedelta(days=8))
        _touch(fresh, NOW - timedelta(days=1))

        report = run(maintenance.cleanup())

        assert report.files_removed == 1
        assert not old.exists()
        assert fresh.exists()

    def test_missing_uploads_dir(self, maintenance):
        assert run(maintenance.cleanup()).files_removed == 0

    def test_prunes_old_message_log(self, maintenance, store):
        store.log_message("u", "u", "1", "old", when=NOW - timedelta(days=31))
        store.log_message("u", "u", "2", "new", when=NOW - timedelta(days=1))

        report = run(maintenance.cleanup())

        assert report.messages_pruned == 1
        assert store.get_stats().total_messages == 1


class TestDigest:
    def test_skipped_without_operator(self, maintenance, channel, store):
        assert run(maintenance.send_digest()) is False
        assert channel.sent == []
        assert store.get_setting(DIGEST_SETTING) is None

    def test_sent_to_operator(self, store, channel, config_data):
        cfg = Config.from_dict({**config_data, "bot": {"operator_address": "ops"}})
        maintenance = Maintenance(store, channel, cfg, clock=lambda: NOW, memory_reader=lambda: 42.0)
        store.upsert_user("+1")

        assert run(maintenance.send_digest()) is True

        [(receiver, text)] = channel.sent
        assert receiver == "ops"
        assert text.startswith("📊 Weekly Bot Report")
        assert "Total Users: 1" in text
        assert "Memory Usage: 42 MB" in text
        assert store.get_setting(DIGEST_SETTING) == "2030-01-10T09:00:00"

    def test_failed_send_not_recorded(self, store, channel, config_data):
        cfg = Config.from_dict({**config_data, "bot": {"operator_address": "ops"}})
        channel.fail_for.add("ops")
        maintenance = Maintenance(store, channel, cfg, clock=lambda: NOW)

        assert run(maintenance.send_digest()) is False
        assert store.get_setting(DIGEST_SETTING) is None

    def test_recent_digest_not_resent_after_restart(self, store, channel, config_data):
        cfg = Config.from_dict({**config_data, "bot": {"operator_address": "ops"}})
        store.set_setting(DIGEST_SETTING, (NOW - timedelta(days=1)).isoformat(timespec="seconds"))
        maintenance = Maintenance(store, channel, cfg, clock=lambda: NOW)

        assert run(maintenance.send_digest()) is False
        assert channel.sent == []

    def test_digest_sent_once_interval_elapsed(self, store, channel, config_data):
        cfg = Config.from_dict({**config_data, "bot": {"operator_address": "ops"}})
        store.set_setting(DIGEST_SETTING, (NOW - timedelta(days=7)).isoformat(timespec="seconds"))
        maintenance = Maintenance(store, channel, cfg, clock=lambda: NOW, memory_reader=lambda: 1.0)

        assert run(maintenance.send_digest()) is True
        assert maintenance.last_digest_at() == NOW

    def test_unreadable_digest_setting_ignored(self, store, channel, config_data):
        cfg = Config.from_dict({**config_data, "bot": {"operator_address": "ops"}})
        store.set_setting(DIGEST_SETTING, "last tuesday")
        maintenance = Maintenance(store, channel, cfg, clock=lambda: NOW, memory_reader=lambda: 1.0)

        assert run(maintenance.send_digest()) is True


class TestHealth:
    def test_snapshot_published(self, maintenance, store, channel):
        seen = []
        maintenance.add_observer(seen.append)
        channel.ready = False

        snapshot = run(maintenance.check_health())

        assert seen == [snapshot]
        assert snapshot.timestamp == NOW
        assert snapshot.channel_ready is False
        assert snapshot.memory_mb == 42.0
        assert maintenance.last_snapshot is snapshot
        assert json.loads(store.get_setting(HEALTH_SETTING))["memory_mb"] == 42.0

    def test_async_observer_and_failing_observer(self, maintenance):
        seen = []

        def broken(snapshot):
            raise RuntimeError("observer down")

        async def recorder(snapshot):
            seen.append(snapshot.memory_mb)

        maintenance.add_observer(broken)
        maintenance.add_observer(recorder)

        run(maintenance.check_health())
        assert seen == [42.0]

    def test_memory_warning(self, store, channel, config, caplog):
        maintenance = Maintenance(store, channel, config, clock=lambda: NOW, memory_reader=lambda: 900.0)
        with caplog.at_level("WARNING", logger="Maintenance"):
            run(maintenance.check_health())
        assert any("内存占用过高" in record.getMessage() for record in caplog.records)

    def test_uptime_tracks_start(self, store, channel, config):
        maintenance = Maintenance(store, channel, config, started_at=time.monotonic() - 120)
        assert maintenance.sample().uptime_seconds >= 120
