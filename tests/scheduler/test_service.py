"""Tests for croncue/scheduler/service.py"""
from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from croncue.core.config import CronCueConfig, HeartbeatConfig, LoggingConfig, SchedulerConfig
from croncue.core.events import EventType
from croncue.scheduler.heartbeat import HEARTBEAT_PROMPT
from croncue.scheduler.service import CronService
from croncue.scheduler.store import JobStore, atomic_write
from croncue.scheduler.trigger import Trigger

MONDAY_9AM = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)


def queue_trigger(data_dir, job_id="queued", target="tui", prompt="p"):
    trigger = Trigger(job_id=job_id, job_name=job_id, target=target, prompt=prompt, fired_at=MONDAY_9AM)
    triggers_dir = data_dir / "triggers"
    triggers_dir.mkdir(parents=True, exist_ok=True)
    atomic_write(triggers_dir / trigger.filename, trigger.to_json())
    return triggers_dir / trigger.filename


class TestLayout:
    def test_creates_directories(self, tmp_path, client):
        CronService(tmp_path / "cron", client)
        assert (tmp_path / "cron" / "jobs").is_dir()
        assert (tmp_path / "cron" / "triggers").is_dir()

    def test_from_config(self, tmp_path, client):
        config = CronCueConfig(
            scheduler=SchedulerConfig(data_dir=str(tmp_path / "cron"), timezone="UTC")
        )
        service = CronService.from_config(config, client)
        assert service.data_dir == tmp_path / "cron"
        assert service.store.jobs_dir == tmp_path / "cron" / "jobs"

    def test_from_config_heartbeat_enabled(self, tmp_path, client):
        config = CronCueConfig(
            scheduler=SchedulerConfig(data_dir=str(tmp_path)),
            heartbeat=HeartbeatConfig(enabled=True, cron="0 * * * *", file="HB.md"),
        )
        service = CronService.from_config(config, client)
        job = service.store.get("heartbeat")
        assert job.schedule == "0 * * * *"
        assert job.heartbeat_file == "HB.md"

    def test_from_config_heartbeat_disabled(self, tmp_path, client):
        config = CronCueConfig(scheduler=SchedulerConfig(data_dir=str(tmp_path)))
        assert CronService.from_config(config, client).store.list() == []


class TestHeartbeat:
    def test_defaults(self, tmp_path, client):
        service = CronService(tmp_path, client)

        job = service.ensure_heartbeat()

        assert job.id == "heartbeat"
        assert job.name == "heartbeat"
        assert job.schedule == "*/5 * * * *"
        assert job.target == "tui"
        assert job.prompt == HEARTBEAT_PROMPT
        assert job.oneshot is False
        assert job.enabled is True
        assert job.metadata == {"heartbeatFile": ".croncue/HEARTBEAT.md"}

    def test_idempotent(self, tmp_path, client):
        service = CronService(tmp_path, client)

        first = service.ensure_heartbeat()
        second = service.ensure_heartbeat(cron="0 * * * *", target="telegram")

        assert second is first
        assert second.schedule == "*/5 * * * *"
        assert [j.id for j in service.store.list()] == ["heartbeat"]

    def test_idempotent_across_restarts(self, tmp_path, client):
        CronService(tmp_path, client).ensure_heartbeat(cron="0 * * * *")
        job = CronService(tmp_path, client).ensure_heartbeat()
        assert job.schedule == "0 * * * *"

    def test_custom_options(self, tmp_path, client):
        job = CronService(tmp_path, client).ensure_heartbeat(
            cron="0 * * * *", target="telegram", heartbeat_file="notes/HB.md"
        )
        assert job.target == "telegram"
        assert job.heartbeat_file == "notes/HB.md"


@pytest.mark.asyncio
class TestLifecycle:
    async def test_start_drains_pending_triggers(self, tmp_path, client):
        path = queue_trigger(tmp_path, prompt="left over")
        service = CronService(tmp_path, client)

        await service.start()
        try:
            assert client.sent_prompts == ["left over"]
            assert not path.exists()
            assert service.engine.is_running
            assert service.watcher.is_running
        finally:
            await service.stop()

        assert not service.engine.is_running
        assert not service.watcher.is_running

    async def test_default_target_from_config(self, tmp_path, client):
        queue_trigger(tmp_path / "cron", target="")
        config = CronCueConfig(
            scheduler=SchedulerConfig(data_dir=str(tmp_path / "cron"), default_target="ops")
        )
        service = CronService.from_config(config, client)

        await service.start()
        await service.stop()

        assert [t for t, _ in client.sent] == ["ops"]

    async def test_fire_then_deliver(self, tmp_path, client):
        processed = []
        service = CronService(tmp_path, client, timezone="UTC", on_trigger_processed=processed.append)
        service.store.create(name="standup reminder", schedule="0 9 * * 1-5", target="tui", prompt="remind")

        service.engine.tick(MONDAY_9AM)
        await service.watcher.drain()

        assert client.sent_prompts == ["remind"]
        assert [t.job_id for t in processed] == ["standup-reminder"]
        assert service.store.get("standup-reminder").last_fired_at == MONDAY_9AM
        assert list((tmp_path / "triggers").glob("*.json")) == []

    async def test_oneshot_end_to_end(self, tmp_path, client):
        service = CronService(tmp_path, client, timezone="UTC")
        job = service.store.create(name="once", schedule="* * * * *", target="tui", prompt="p", oneshot=True)

        service.engine.tick(MONDAY_9AM)
        await service.watcher.drain()

        assert service.store.get(job.id) is None
        assert JobStore(tmp_path / "jobs").get(job.id) is None

    async def test_from_config_writes_event_log(self, tmp_path, client, bus):
        config = CronCueConfig(
            scheduler=SchedulerConfig(data_dir=str(tmp_path / "cron")),
            logging=LoggingConfig(log_dir=str(tmp_path / "logs")),
        )
        service = CronService.from_config(config, client, bus=bus)

        service.store.create(name="daily", schedule="0 9 * * *", prompt="p")
        await asyncio.sleep(0.01)

        [log_file] = list((tmp_path / "logs").glob("events_*.jsonl"))
        assert "jobs:created" in log_file.read_text()

    async def test_lifecycle_events(self, tmp_path, client, bus):
        events = []
        bus.on("scheduler:*", events.append)
        service = CronService(tmp_path, client, bus=bus)

        await service.start()
        await service.stop()
        await asyncio.sleep(0.01)

        assert [e.type for e in events] == [EventType.SCHEDULER_START, EventType.SCHEDULER_STOP]
