"""API 응답/요청 스키마

내부 모델(JobResult, RetryState 등)을 API 응답용으로 래핑.
내부 모델을 직접 노출하지 않아 향후 변경 자유도를 확보한다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.models.unit import JobResult, RetryState


# ── 헬스 체크 ──────────────────────────────────────────────────


class HealthFeatures(BaseModel):
    retry_limit: int
    retry_reset_days: int
    schedule: str
    scheduler_enabled: bool
    api_delay: float  # 초
    record_delay: float  # 초


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    version: str
    timestamp: datetime
    job_running: bool = False
    features: HealthFeatures


# ── 작업 실행 ──────────────────────────────────────────────────


class JobResultResponse(BaseModel):
    """작업 실행 결과"""

    total: int
    success: int
    failed: int
    skipped: int
    newly_failed: list[str] = Field(default_factory=list)
    success_rate: float | None = None  # %
    error: str | None = None
    started_at: datetime
    finished_at: datetime | None = None


class JobRunResponse(BaseModel):
    message: str
    result: JobResultResponse


def job_result_to_response(result: JobResult) -> JobResultResponse:
    return JobResultResponse(
        total=result.total,
        success=result.success,
        failed=result.failed,
        skipped=result.skipped,
        newly_failed=result.newly_failed,
        success_rate=round(result.success_rate, 1) if result.success_rate is not None else None,
        error=result.error,
        started_at=result.started_at,
        finished_at=result.finished_at,
    )


# ── 단일 레코드 테스트 ──────────────────────────────────────────


class RecordTestRequest(BaseModel):
    """단일 주소 즉시 수집 요청"""

    address: str = Field(..., description="지번 주소 (예: 강남구 역삼동 123-4)")
    dong: str = Field("", description="동 (예: 102동)")
    ho: str = Field("", description="호수 (예: 1층201호)")
    write: bool = Field(False, description="True면 record_id 레코드에 결과 기록")
    record_id: str | None = Field(None, description="기록할 에어테이블 레코드 ID")


class RecordTestResponse(BaseModel):
    """단일 주소 수집 결과"""

    address: str
    dong: str
    ho: str
    attributes: dict[str, Any]
    written: bool = False


# ── 재시도 이력 ────────────────────────────────────────────────


class RetryEntry(BaseModel):
    record_id: str
    attempts: int
    last_attempt: datetime
    failed: bool


class RetryStatusResponse(BaseModel):
    max_attempts: int
    reset_days: int
    total: int
    exhausted: int
    entries: list[RetryEntry]


class RetryResetRequest(BaseModel):
    record_id: str | None = Field(None, description="비우면 전체 초기화")


class RetryResetResponse(BaseModel):
    removed: int
    record_id: str | None = None


def retry_states_to_entries(states: dict[str, RetryState]) -> list[RetryEntry]:
    return [
        RetryEntry(
            record_id=record_id,
            attempts=state.attempts,
            last_attempt=state.last_attempt,
            failed=state.failed,
        )
        for record_id, state in states.items()
    ]
