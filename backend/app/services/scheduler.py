"""정기 실행 스케줄러

JOB_CRON(기본 매시 정각)마다 뷰 앞쪽 표본을 확인하고,
처리 가능한 레코드가 있을 때만 작업을 실행한다.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.services.job_runner import JobRunner

logger = logging.getLogger(__name__)

JOB_ID = "multi_unit_job"


async def scheduled_tick(runner: JobRunner) -> None:
    """정기 실행 1회 (예외를 던지지 않음)"""
    logger.debug("정기 작업 확인 중...")
    if runner.is_running:
        logger.info("이전 작업 실행 중, 정기 실행 건너뜀")
        return

    try:
        if not await runner.has_pending():
            return
        logger.info("처리 가능한 집합건물 레코드 발견, 작업 실행 중...")
        await runner.run()
    except Exception as e:
        logger.error("정기 작업 확인 중 오류 발생: %s", e)


def create_scheduler(runner: JobRunner, cron: str | None = None) -> AsyncIOScheduler:
    """스케줄러 생성 (시작은 호출 측에서)"""
    cron = cron or settings.JOB_CRON
    scheduler = AsyncIOScheduler(timezone="Asia/Seoul")
    scheduler.add_job(
        scheduled_tick,
        CronTrigger.from_crontab(cron, timezone="Asia/Seoul"),
        args=[runner],
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("스케줄러 작업 등록: %s (%s)", JOB_ID, cron)
    return scheduler
