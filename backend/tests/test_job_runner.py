"""작업 실행기 테스트

레코드 순차 처리, 결과 집계, 신규 한도 도달 레코드만 알림.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.unit import RecordResult, RecordStatus, UnitRecord
from app.services.job_runner import JobRunner
from app.services.retry_ledger import RetryLedger


def _records(*ids: str) -> list[UnitRecord]:
    return [UnitRecord(id=i, address="강남구 역삼동 7-3", dong="", ho="201호") for i in ids]


@pytest.fixture()
def ledger(clock) -> RetryLedger:
    return RetryLedger(max_attempts=2, reset_days=7, clock=clock)


@pytest.fixture()
def store() -> MagicMock:
    mock = MagicMock()
    mock.list_records = AsyncMock(return_value=_records("rec1", "rec2", "rec3"))
    return mock


@pytest.fixture()
def notifier() -> AsyncMock:
    return AsyncMock(return_value=True)


def _processor_from(outcomes: dict[str, str], ledger: RetryLedger) -> MagicMock:
    """레코드 ID → "ok" / "fail" / "permanent" / "raise" 로 동작하는 mock 처리기"""

    async def _process(record: UnitRecord) -> RecordResult:
        outcome = outcomes[record.id]
        if outcome == "raise":
            raise RuntimeError("unexpected")
        if outcome == "ok":
            ledger.record_outcome(record.id, success=True)
            return RecordResult(record_id=record.id, status=RecordStatus.WRITTEN)
        ledger.record_outcome(record.id, success=False, permanent=outcome == "permanent")
        return RecordResult(record_id=record.id, status=RecordStatus.FAILED)

    processor = MagicMock()
    processor.process = AsyncMock(side_effect=_process)
    return processor


def _runner(store, processor, ledger, notifier) -> JobRunner:
    return JobRunner(store=store, processor=processor, ledger=ledger, notifier=notifier, record_delay=0)


class TestRun:
    def test_counts(self, store, ledger, notifier):
        processor = _processor_from({"rec1": "ok", "rec2": "fail", "rec3": "ok"}, ledger)

        result = asyncio.run(_runner(store, processor, ledger, notifier).run())

        assert (result.total, result.success, result.failed, result.skipped) == (3, 2, 1, 0)
        assert result.finished_at is not None
        assert result.success_rate == pytest.approx(66.666, rel=1e-3)
        notifier.assert_not_awaited()

    def test_sequential_order(self, store, ledger, notifier):
        processor = _processor_from({"rec1": "ok", "rec2": "ok", "rec3": "ok"}, ledger)
        asyncio.run(_runner(store, processor, ledger, notifier).run())
        processed = [call.args[0].id for call in processor.process.await_args_list]
        assert processed == ["rec1", "rec2", "rec3"]

    def test_exhausted_records_skipped(self, store, ledger, notifier):
        ledger.record_outcome("rec2", success=False, permanent=True)
        processor = _processor_from({"rec1": "ok", "rec3": "ok"}, ledger)

        result = asyncio.run(_runner(store, processor, ledger, notifier).run())

        assert result.skipped == 1
        assert result.success == 2
        assert processor.process.await_count == 2

    def test_all_exhausted(self, store, ledger, notifier):
        for record_id in ("rec1", "rec2", "rec3"):
            ledger.record_outcome(record_id, success=False, permanent=True)
        processor = _processor_from({}, ledger)

        result = asyncio.run(_runner(store, processor, ledger, notifier).run())

        assert result.skipped == 3
        processor.process.assert_not_awaited()

    def test_empty_view(self, store, ledger, notifier):
        store.list_records = AsyncMock(return_value=[])
        result = asyncio.run(_runner(store, MagicMock(), ledger, notifier).run())
        assert result.total == 0
        assert result.success_rate is None

    def test_unexpected_exception_counted(self, store, ledger, notifier):
        """처리기 밖으로 나온 예외도 실패 1건으로 집계, 나머지 계속"""
        processor = _processor_from({"rec1": "raise", "rec2": "ok", "rec3": "ok"}, ledger)
        result = asyncio.run(_runner(store, processor, ledger, notifier).run())
        assert result.failed == 1
        assert result.success == 2

    def test_store_failure_reported(self, store, ledger, notifier):
        store.list_records = AsyncMock(side_effect=RuntimeError("airtable down"))
        result = asyncio.run(_runner(store, MagicMock(), ledger, notifier).run())
        assert result.error == "airtable down"


class TestNotification:
    def test_newly_exhausted_only(self, store, ledger, notifier):
        """이번 실행에서 한도에 도달한 레코드만 알림"""
        ledger.record_outcome("rec1", success=False)  # 1/2
        processor = _processor_from({"rec1": "fail", "rec2": "fail", "rec3": "permanent"}, ledger)

        result = asyncio.run(_runner(store, processor, ledger, notifier).run())

        assert result.newly_failed == ["rec1", "rec3"]
        notified = notifier.await_args.args[0]
        assert [r.id for r in notified] == ["rec1", "rec3"]

    def test_previously_exhausted_not_notified(self, store, ledger, notifier, clock):
        ledger.record_outcome("rec2", success=False, permanent=True)
        processor = _processor_from({"rec1": "ok", "rec3": "ok"}, ledger)
        asyncio.run(_runner(store, processor, ledger, notifier).run())
        notifier.assert_not_awaited()

    def test_reset_record_can_be_notified_again(self, store, ledger, notifier, clock):
        """리셋 기간 경과 후 다시 한도 도달 → 알림"""
        ledger.record_outcome("rec1", success=False, permanent=True)
        clock.advance(days=8)
        processor = _processor_from({"rec1": "permanent", "rec2": "ok", "rec3": "ok"}, ledger)

        result = asyncio.run(_runner(store, processor, ledger, notifier).run())

        assert result.newly_failed == ["rec1"]


class TestConcurrency:
    def test_overlapping_run_skipped(self, store, ledger, notifier):
        """실행 중 두 번째 실행 → already_running"""
        gate = asyncio.Event

        async def _scenario():
            started = gate()
            release = gate()

            async def _slow(record: UnitRecord) -> RecordResult:
                started.set()
                await release.wait()
                return RecordResult(record_id=record.id, status=RecordStatus.WRITTEN)

            processor = MagicMock()
            processor.process = AsyncMock(side_effect=_slow)
            runner = _runner(store, processor, ledger, notifier)

            first = asyncio.create_task(runner.run())
            await started.wait()
            assert runner.is_running
            second = await runner.run()
            release.set()
            return await first, second

        first, second = asyncio.run(_scenario())
        assert second.already_running
        assert not first.already_running
        assert first.success == 3


class TestHasPending:
    def test_pending(self, store, ledger):
        runner = _runner(store, MagicMock(), ledger, AsyncMock())
        assert asyncio.run(runner.has_pending()) is True
        assert store.list_records.await_args.kwargs["max_records"] == 10

    def test_all_exhausted(self, store, ledger):
        for record_id in ("rec1", "rec2", "rec3"):
            ledger.record_outcome(record_id, success=False, permanent=True)
        runner = _runner(store, MagicMock(), ledger, AsyncMock())
        assert asyncio.run(runner.has_pending()) is False

    def test_empty(self, store, ledger):
        store.list_records = AsyncMock(return_value=[])
        runner = _runner(store, MagicMock(), ledger, AsyncMock())
        assert asyncio.run(runner.has_pending()) is False
