"""FastAPI 의존성 주입

서비스 인스턴스를 싱글톤으로 관리한다.
.env 없어도 기본값으로 동작 (테스트 환경).
"""

from functools import lru_cache

from app.services.datastore import AirtableStore, UnitStore
from app.services.job_runner import JobRunner
from app.services.processor import RecordProcessor
from app.services.retry_ledger import RetryLedger


@lru_cache()
def get_ledger() -> RetryLedger:
    """싱글톤 RetryLedger (프로세스 수명 동안 유지)"""
    return RetryLedger()


@lru_cache()
def get_store() -> UnitStore:
    """싱글톤 에어테이블 저장소"""
    return AirtableStore()


@lru_cache()
def get_processor() -> RecordProcessor:
    """싱글톤 RecordProcessor 인스턴스"""
    return RecordProcessor(ledger=get_ledger(), store=get_store())


@lru_cache()
def get_job_runner() -> JobRunner:
    """싱글톤 JobRunner 인스턴스"""
    return JobRunner(
        store=get_store(),
        processor=get_processor(),
        ledger=get_ledger(),
    )
