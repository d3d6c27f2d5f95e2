"""작업 실행/재시도 이력 API 라우터

엔드포인트:
- POST /run-job       수동 작업 실행 (GET도 허용)
- POST /test-record   단일 주소 즉시 수집 (재시도 이력 미반영)
- GET  /retry-status  재시도 이력 조회
- POST /retry-reset   재시도 이력 초기화 (단건/전체)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_job_runner, get_ledger, get_processor, get_store
from app.api.schemas import (
    JobRunResponse,
    RecordTestRequest,
    RecordTestResponse,
    RetryResetRequest,
    RetryResetResponse,
    RetryStatusResponse,
    job_result_to_response,
    retry_states_to_entries,
)
from app.models.unit import UnitRecord
from app.services.address_parser import AddressParseError
from app.services.crawler.code_lookup import CodeLookupError
from app.services.datastore import DatastoreError, UnitStore
from app.services.job_runner import JobRunner
from app.services.processor import RecordProcessingError, RecordProcessor
from app.services.retry_ledger import RetryLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


# ── /run-job ──────────────────────────────────────────────────


@router.api_route("/run-job", methods=["GET", "POST"], response_model=JobRunResponse)
async def run_job(runner: JobRunner = Depends(get_job_runner)):
    """수동 작업 실행

    이미 실행 중이면 409.
    """
    if runner.is_running:
        raise HTTPException(status_code=409, detail="집합건물 작업이 이미 실행 중입니다")

    logger.info("수동 작업 실행 요청")
    result = await runner.run()
    if result.already_running:
        raise HTTPException(status_code=409, detail="집합건물 작업이 이미 실행 중입니다")
    if result.error:
        raise HTTPException(status_code=500, detail=f"집합건물 작업 실행 실패: {result.error}")

    return JobRunResponse(message="집합건물 작업 완료", result=job_result_to_response(result))


# ── /test-record ──────────────────────────────────────────────


@router.post("/test-record", response_model=RecordTestResponse)
async def collect_test_record(
    request: RecordTestRequest,
    processor: RecordProcessor = Depends(get_processor),
    store: UnitStore = Depends(get_store),
):
    """단일 주소 즉시 수집

    write=True와 record_id를 함께 주면 해당 레코드에 결과를 기록한다.
    """
    if request.write and not request.record_id:
        raise HTTPException(status_code=400, detail="write=True이면 record_id가 필요합니다")

    record = UnitRecord(
        id=request.record_id or "TEST-RECORD",
        address=request.address,
        dong=request.dong,
        ho=request.ho,
    )

    try:
        attributes = await processor.collect(record)
    except AddressParseError as e:
        raise HTTPException(status_code=400, detail=f"주소 파싱 실패: {e}") from e
    except CodeLookupError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    except RecordProcessingError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    written = False
    if request.write:
        try:
            await store.update_record(record.id, attributes)
        except DatastoreError as e:
            raise HTTPException(status_code=502, detail=f"에어테이블 업데이트 실패: {e}") from e
        written = True

    return RecordTestResponse(
        address=request.address,
        dong=request.dong,
        ho=request.ho,
        attributes=attributes,
        written=written,
    )


# ── /retry-status, /retry-reset ───────────────────────────────


@router.get("/retry-status", response_model=RetryStatusResponse)
def retry_status(ledger: RetryLedger = Depends(get_ledger)):
    """재시도 이력 조회"""
    states = ledger.snapshot()
    return RetryStatusResponse(
        max_attempts=ledger.max_attempts,
        reset_days=ledger.reset_days,
        total=len(states),
        exhausted=sum(1 for state in states.values() if state.failed),
        entries=retry_states_to_entries(states),
    )


@router.post("/retry-reset", response_model=RetryResetResponse)
def retry_reset(
    request: RetryResetRequest | None = None,
    ledger: RetryLedger = Depends(get_ledger),
):
    """재시도 이력 초기화 (record_id 없으면 전체)"""
    record_id = request.record_id if request else None
    removed = ledger.reset(record_id)
    return RetryResetResponse(removed=removed, record_id=record_id)
