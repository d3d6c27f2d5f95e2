"""집합건물 정보 수집 CLI

에어테이블 뷰의 레코드를 수집/병합해 업데이트한다.

사용법:
    PYTHONPATH=backend python scripts/run_job.py --once
    PYTHONPATH=backend python scripts/run_job.py --test "강남구 역삼동 123-4" --dong 102동 --ho 1층201호
    PYTHONPATH=backend python scripts/run_job.py            # 스케줄러로 계속 실행
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# PYTHONPATH 자동 설정
backend_dir = str(Path(__file__).resolve().parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from app.config import settings  # noqa: E402
from app.logging_config import setup_logging  # noqa: E402
from app.models.unit import JobResult, UnitRecord  # noqa: E402
from app.services.datastore import AirtableStore  # noqa: E402
from app.services.job_runner import JobRunner  # noqa: E402
from app.services.processor import RecordProcessor  # noqa: E402
from app.services.retry_ledger import RetryLedger  # noqa: E402
from app.services.scheduler import create_scheduler  # noqa: E402

logger = logging.getLogger("run_job")


def print_result(result: JobResult) -> None:
    """결과 요약 출력"""
    elapsed = ""
    if result.finished_at and result.started_at:
        dt = (result.finished_at - result.started_at).total_seconds()
        elapsed = f" ({dt:.1f}초)"

    print(f"\n{'='*50}")
    print(f"집합건물 작업 완료{elapsed}")
    print(f"{'='*50}")
    print(f"  전체       : {result.total}")
    print(f"  성공       : {result.success}")
    print(f"  실패       : {result.failed}")
    print(f"  건너뜀     : {result.skipped}")
    if result.success_rate is not None:
        print(f"  성공률     : {result.success_rate:.1f}%")
    if result.newly_failed:
        print(f"  한도 도달  : {', '.join(result.newly_failed)}")
    if result.error:
        print(f"  에러       : {result.error}")
    print()


async def run_once(runner: JobRunner) -> int:
    result = await runner.run()
    print_result(result)
    return 1 if result.error else 0


async def run_test(processor: RecordProcessor, address: str, dong: str, ho: str) -> int:
    """단일 주소 수집 결과 출력 (에어테이블 미기록)"""
    record = UnitRecord(id="CLI-TEST", address=address, dong=dong, ho=ho)
    try:
        attributes = await processor.collect(record)
    except Exception as e:
        logger.error("수집 실패: %s", e)
        return 1
    print(json.dumps(attributes, ensure_ascii=False, indent=2))
    return 0


async def run_forever(runner: JobRunner) -> None:
    scheduler = create_scheduler(runner)
    scheduler.start()
    logger.info("스케줄러 실행 중 (%s), Ctrl+C로 종료", settings.JOB_CRON)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)


def main() -> None:
    parser = argparse.ArgumentParser(description="집합건물 정보 수집")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="작업 1회 실행 후 종료")
    mode.add_argument("--test", metavar="ADDRESS", help="단일 주소 수집 결과 출력")
    parser.add_argument("--dong", default="", help="--test용 동 (예: 102동)")
    parser.add_argument("--ho", default="", help="--test용 호수 (예: 1층201호)")
    parser.add_argument("-v", "--verbose", action="store_true", help="DEBUG 로그")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else settings.LOG_LEVEL, settings.LOG_DIR)

    ledger = RetryLedger()
    store = AirtableStore()
    processor = RecordProcessor(ledger=ledger, store=store)

    if args.test:
        sys.exit(asyncio.run(run_test(processor, args.test, args.dong, args.ho)))

    runner = JobRunner(store=store, processor=processor, ledger=ledger)
    if args.once:
        sys.exit(asyncio.run(run_once(runner)))

    try:
        asyncio.run(run_forever(runner))
    except KeyboardInterrupt:
        logger.info("종료")


if __name__ == "__main__":
    main()
