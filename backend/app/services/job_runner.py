"""집합건물 정보 수집 작업

뷰의 레코드를 순서대로 하나씩 처리하고 결과를 집계한다.
이번 실행에서 재시도 한도에 새로 도달한 레코드만 실패 알림으로 보낸다.

레코드는 병렬로 처리하지 않는다 (외부 API 호출 한도).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from app.config import settings
from app.models.unit import JobResult, UnitRecord
from app.services.datastore import UnitStore
from app.services.notifier import send_failure_notification
from app.services.processor import RecordProcessor
from app.services.retry_ledger import RetryLedger

logger = logging.getLogger(__name__)

FailureNotifier = Callable[[list[UnitRecord]], Awaitable[bool]]

# 정기 실행 전 사전 확인 표본 크기
PENDING_SAMPLE_SIZE = 10


class JobRunner:
    """작업 실행기 (동시 실행 1개로 제한)"""

    def __init__(
        self,
        store: UnitStore,
        processor: RecordProcessor,
        ledger: RetryLedger,
        notifier: FailureNotifier = send_failure_notification,
        view: str | None = None,
        record_delay: float | None = None,
    ) -> None:
        self._store = store
        self._processor = processor
        self._ledger = ledger
        self._notifier = notifier
        self._view = view
        self._record_delay = record_delay if record_delay is not None else settings.RECORD_DELAY
        self._lock = asyncio.Lock()
        self.last_result: JobResult | None = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def has_pending(self, sample_size: int = PENDING_SAMPLE_SIZE) -> bool:
        """뷰 앞쪽 표본 중 지금 처리 가능한 레코드가 있는지"""
        sample = await self._store.list_records(self._view, max_records=sample_size)
        if not sample:
            logger.debug("처리할 레코드 없음")
            return False

        processable = [r for r in sample if self._ledger.can_attempt(r.id)]
        if not processable:
            logger.debug("모든 레코드가 최대 재시도 횟수 초과 상태")
            return False

        logger.info("처리 가능한 레코드 발견: %d/%d개", len(processable), len(sample))
        return True

    async def run(self) -> JobResult:
        """작업 1회 실행

        이미 실행 중이면 기다리지 않고 already_running 결과를 돌려준다.
        """
        if self._lock.locked():
            logger.warning("이전 작업이 아직 실행 중, 이번 실행 건너뜀")
            return JobResult(already_running=True, finished_at=datetime.now(timezone.utc))

        async with self._lock:
            try:
                result = await self._run()
            except Exception as e:
                logger.error("작업 실행 중 오류: %s", e)
                result = JobResult(error=str(e))
            result.finished_at = datetime.now(timezone.utc)
            self.last_result = result
            return result

    async def _run(self) -> JobResult:
        logger.info("집합건물 정보 수집 작업 시작")
        records = await self._store.list_records(self._view)
        logger.info("뷰에서 %d개 레코드 발견", len(records))

        result = JobResult(total=len(records))
        if not records:
            logger.info("처리할 레코드가 없습니다")
            return result

        processable = [r for r in records if self._ledger.can_attempt(r.id)]
        result.skipped = len(records) - len(processable)
        if not processable:
            logger.info("모든 레코드가 재시도 제한 초과 상태입니다")
            return result
        logger.info("처리 가능한 레코드: %d/%d개", len(processable), len(records))

        exhausted_before = self._ledger.exhausted_ids()
        newly_failed: list[UnitRecord] = []

        for i, record in enumerate(processable, start=1):
            logger.info("[%d/%d] 처리 중: %s", i, len(processable), record.id)
            try:
                outcome = await self._processor.process(record)
            except Exception as e:
                logger.error("레코드 처리 중 예외 발생 %s: %s", record.id, e)
                result.failed += 1
            else:
                if outcome.skipped:
                    result.skipped += 1
                elif outcome.success:
                    result.success += 1
                else:
                    result.failed += 1

            if record.id not in exhausted_before and self._ledger.is_exhausted(record.id):
                newly_failed.append(record)

            if i < len(processable) and self._record_delay > 0:
                await asyncio.sleep(self._record_delay)

        result.newly_failed = [r.id for r in newly_failed]
        if newly_failed:
            await self._notifier(newly_failed)

        logger.info(
            "처리 결과: %d개 중 %d개 성공, %d개 실패, %d개 건너뜀",
            result.total, result.success, result.failed, result.skipped,
        )
        if result.success_rate is not None:
            logger.info("성공률: %.1f%%", result.success_rate)
        return result
