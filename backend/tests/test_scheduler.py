"""정기 실행 스케줄러 테스트"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, PropertyMock

from apscheduler.triggers.cron import CronTrigger

from app.services.scheduler import JOB_ID, create_scheduler, scheduled_tick


def _make_runner(*, running: bool = False, pending: bool = True) -> MagicMock:
    runner = MagicMock()
    type(runner).is_running = PropertyMock(return_value=running)
    runner.has_pending = AsyncMock(return_value=pending)
    runner.run = AsyncMock()
    return runner


class TestScheduledTick:
    def test_runs_when_pending(self):
        runner = _make_runner()
        asyncio.run(scheduled_tick(runner))
        runner.run.assert_awaited_once()

    def test_no_pending_skips_run(self):
        runner = _make_runner(pending=False)
        asyncio.run(scheduled_tick(runner))
        runner.has_pending.assert_awaited_once()
        runner.run.assert_not_awaited()

    def test_running_skips_check(self):
        runner = _make_runner(running=True)
        asyncio.run(scheduled_tick(runner))
        runner.has_pending.assert_not_awaited()
        runner.run.assert_not_awaited()

    def test_error_not_raised(self):
        """표본 조회 실패 → 로그만 남기고 다음 주기로"""
        runner = _make_runner()
        runner.has_pending = AsyncMock(side_effect=RuntimeError("airtable down"))
        asyncio.run(scheduled_tick(runner))
        runner.run.assert_not_awaited()


class TestCreateScheduler:
    def test_job_registered(self):
        runner = _make_runner()
        scheduler = create_scheduler(runner, cron="*/30 * * * *")

        job = scheduler.get_job(JOB_ID)

        assert job is not None
        assert job.func is scheduled_tick
        assert job.args == (runner,)
        assert job.max_instances == 1
        assert job.coalesce is True
        assert isinstance(job.trigger, CronTrigger)
        assert str(job.trigger.timezone) == "Asia/Seoul"

    def test_default_cron_hourly(self):
        scheduler = create_scheduler(_make_runner())
        trigger = scheduler.get_job(JOB_ID).trigger
        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["minute"] == "0"
        assert fields["hour"] == "*"
