"""레코드별 재시도 이력 관리

상태 전이 (레코드 ID 기준):
  신규(항목 없음) → 재시도 중(1..MAX-1회 실패) → 한도 초과(MAX회, failed)
  → RESET_DAYS 경과 후 항목 삭제 → 신규

- 성공하면 즉시 항목 삭제
- 영구 오류(재시도해도 해결되지 않는 오류)는 한 번에 한도 초과 처리
- 프로세스 메모리에만 유지 (재시작 시 초기화)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from app.config import settings
from app.models.unit import RetryState
from app.services.datastore import DatastoreSchemaError

logger = logging.getLogger(__name__)

# 재시도해도 해결되지 않는 오류 메시지 조각
PERMANENT_ERROR_PATTERNS = (
    "Hostname/IP does not match",
    "certificate",
    "SSL",
    "CERT",
    "잘못된 주소 형식",
    "주소 없음",
    "Unknown field name",
    "Insufficient permissions",
    "Maximum execution time",
    "does not have a field",
    "Invalid permissions",
    "해당동 총층수",
)


def is_permanent_error(error: BaseException | str) -> bool:
    """영구 오류 여부

    데이터스토어 스키마 오류는 타입으로, 그 외는 메시지 조각으로 판별한다.
    """
    if isinstance(error, DatastoreSchemaError):
        return True
    message = str(error)
    return any(pattern in message for pattern in PERMANENT_ERROR_PATTERNS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetryLedger:
    """레코드 ID → RetryState

    처리 루프 하나만 접근하므로 잠금은 두지 않는다.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        reset_days: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.max_attempts = max_attempts if max_attempts is not None else settings.MAX_RETRY_ATTEMPTS
        self.reset_days = reset_days if reset_days is not None else settings.RETRY_RESET_DAYS
        self._clock = clock
        self._states: dict[str, RetryState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._states

    def get(self, record_id: str) -> RetryState | None:
        return self._states.get(record_id)

    def can_attempt(self, record_id: str) -> bool:
        """이번 실행에서 처리해도 되는지

        한도 초과 항목은 마지막 시도 후 reset_days가 지나면 삭제하고 True.
        """
        state = self._states.get(record_id)
        if state is None:
            return True

        if state.failed:
            elapsed = self._clock() - state.last_attempt
            if elapsed >= timedelta(days=self.reset_days):
                del self._states[record_id]
                logger.info("재시도 이력 초기화 (%d일 경과): %s", self.reset_days, record_id)
                return True
            return False

        return state.attempts < self.max_attempts

    def record_outcome(self, record_id: str, success: bool, permanent: bool = False) -> RetryState | None:
        """처리 결과 반영

        Args:
            record_id: 레코드 ID
            success: 성공 여부
            permanent: 영구 오류 여부 (True면 즉시 한도 초과)

        Returns:
            갱신된 상태 (성공 시 None)
        """
        if success:
            if self._states.pop(record_id, None) is not None:
                logger.info("재시도 이력 삭제 (성공): %s", record_id)
            return None

        state = self._states.setdefault(record_id, RetryState())
        state.last_attempt = self._clock()

        if permanent:
            state.attempts = self.max_attempts
            state.failed = True
            logger.warning("영구 오류로 재시도 중단: %s", record_id)
            return state

        state.attempts += 1
        if state.attempts >= self.max_attempts:
            state.failed = True
            logger.warning(
                "최대 재시도 횟수 도달: %s (%d/%d)", record_id, state.attempts, self.max_attempts
            )
        else:
            logger.info("재시도 예정: %s (%d/%d)", record_id, state.attempts, self.max_attempts)
        return state

    def attempts(self, record_id: str) -> int:
        state = self._states.get(record_id)
        return state.attempts if state else 0

    def is_exhausted(self, record_id: str) -> bool:
        """한도 초과(failed) 상태인지"""
        state = self._states.get(record_id)
        return bool(state and state.failed)

    def exhausted_ids(self) -> set[str]:
        return {record_id for record_id, state in self._states.items() if state.failed}

    def snapshot(self) -> dict[str, RetryState]:
        """현재 이력 복사본 (조회용)"""
        return {record_id: state.model_copy() for record_id, state in self._states.items()}

    def reset(self, record_id: str | None = None) -> int:
        """이력 삭제

        Args:
            record_id: 지정하면 해당 레코드만, None이면 전체

        Returns:
            삭제한 항목 수
        """
        if record_id is None:
            count = len(self._states)
            self._states.clear()
            logger.info("재시도 이력 전체 초기화: %d건", count)
            return count

        if self._states.pop(record_id, None) is None:
            return 0
        logger.info("재시도 이력 초기화: %s", record_id)
        return 1
