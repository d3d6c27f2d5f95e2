"""FastAPI 애플리케이션 엔트리포인트

실행: uvicorn app.main:app
앱 시작 시 정기 실행 스케줄러를 함께 띄운다 (SCHEDULER_ENABLED).
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI

from app.api.dependencies import get_job_runner
from app.api.jobs import router as jobs_router
from app.api.schemas import HealthFeatures, HealthResponse
from app.config import settings
from app.logging_config import setup_logging
from app.services.job_runner import JobRunner
from app.services.scheduler import create_scheduler

logger = logging.getLogger(__name__)

SERVICE_NAME = "multi-unit-building-service"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = create_scheduler(get_job_runner())
        scheduler.start()
        logger.info("집합건물 서비스 시작, 스케줄: %s", settings.JOB_CRON)
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("스케줄러 종료")


app = FastAPI(
    title="집합건물 정보 수집 서비스",
    version=VERSION,
    description="에어테이블 집합건물 레코드 → 건축물대장·Vworld 수집 → 병합 → 업데이트",
    lifespan=lifespan,
)

app.include_router(jobs_router)


@app.get("/health", response_model=HealthResponse)
def health_check(runner: JobRunner = Depends(get_job_runner)):
    """헬스 체크"""
    return HealthResponse(
        service=SERVICE_NAME,
        version=VERSION,
        timestamp=datetime.now(timezone.utc),
        job_running=runner.is_running,
        features=HealthFeatures(
            retry_limit=settings.MAX_RETRY_ATTEMPTS,
            retry_reset_days=settings.RETRY_RESET_DAYS,
            schedule=settings.JOB_CRON,
            scheduler_enabled=settings.SCHEDULER_ENABLED,
            api_delay=settings.API_DELAY,
            record_delay=settings.RECORD_DELAY,
        ),
    )
