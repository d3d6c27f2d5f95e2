"""집합건물 레코드 1건 처리

주소 파싱 → 코드 조회 → PNU → 외부 API 병렬 수집 → 병합 → 검증 → 에어테이블 업데이트

레코드 단위 실패는 모두 이 경계에서 잡아 재시도 이력에 반영하고
RecordResult로 돌려준다. 예외가 JobRunner까지 전파되지 않는다.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from app.models.unit import (
    HousePrice,
    LandCharacteristics,
    RecordResult,
    RecordStatus,
    RegistryBundle,
    UnitRecord,
)
from app.services.address_parser import (
    AddressParseError,
    AddressParseFailure,
    ResolvedCodes,
    build_pnu,
    parse_address,
)
from app.services.crawler.code_lookup import CodeLookupClient
from app.services.crawler.public_api import BuildingRegistryClient
from app.services.crawler.vworld_client import VworldClient
from app.services.datastore import UnitStore
from app.services.registry.merger import (
    F_EXCLUSIVE_AREA,
    F_HOUSE_PRICE,
    F_LAND_SHARE,
    F_SUPPLY_AREA,
    F_USAGE,
    F_ZONE,
    DataMerger,
)
from app.services.retry_ledger import RetryLedger, is_permanent_error

logger = logging.getLogger(__name__)

# 하나라도 값이 있어야 의미 있는 결과로 본다
_MEANINGFUL_NUMERIC_FIELDS = (F_HOUSE_PRICE, F_LAND_SHARE, F_EXCLUSIVE_AREA, F_SUPPLY_AREA)
_MEANINGFUL_TEXT_FIELDS = (F_ZONE, F_USAGE)


class RecordProcessingError(Exception):
    """수집은 끝났지만 결과를 쓸 수 없는 경우"""


class NoBuildingDataError(RecordProcessingError):
    """총괄표제부·표제부 모두 항목 없음"""


class EmptyMergeError(RecordProcessingError):
    """병합 결과가 비어 있음"""


class DegenerateResultError(RecordProcessingError):
    """기본값(0) 필드만 있고 의미 있는 값이 없음"""


def has_meaningful_data(attributes: dict[str, Any]) -> bool:
    """가격, 대지지분, 면적, 용도지역, 주용도 중 하나라도 있는지"""
    for field in _MEANINGFUL_NUMERIC_FIELDS:
        value = attributes.get(field)
        if isinstance(value, (int, float)) and value > 0:
            return True
    return any(attributes.get(field) for field in _MEANINGFUL_TEXT_FIELDS)


class RecordProcessor:
    """레코드 1건 처리기"""

    def __init__(
        self,
        ledger: RetryLedger,
        store: UnitStore,
        code_client: CodeLookupClient | None = None,
        registry_client: BuildingRegistryClient | None = None,
        vworld_client: VworldClient | None = None,
        merger: DataMerger | None = None,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._code_client = code_client or CodeLookupClient()
        self._registry_client = registry_client or BuildingRegistryClient()
        self._vworld_client = vworld_client or VworldClient()
        self._merger = merger or DataMerger()

    async def process(self, record: UnitRecord) -> RecordResult:
        """레코드 처리 + 재시도 이력 반영 (예외를 던지지 않음)"""
        if not self._ledger.can_attempt(record.id):
            logger.info("레코드 건너뜀 (최대 재시도 횟수 초과): %s", record.id)
            return RecordResult(record_id=record.id, status=RecordStatus.SKIPPED)

        logger.info(
            "레코드 처리 시작 (시도 %d/%d): %s - %s %s %s",
            self._ledger.attempts(record.id) + 1, self._ledger.max_attempts,
            record.id, record.address, record.dong, record.ho,
        )
        start = time.monotonic()

        try:
            attributes = await self.collect(record)
            logger.info("업데이트 예정 필드: %s", ", ".join(attributes))
            await self._store.update_record(record.id, attributes)
        except Exception as e:
            permanent = is_permanent_error(e)
            logger.error("레코드 처리 실패 %s: %s", record.id, e)
            self._ledger.record_outcome(record.id, success=False, permanent=permanent)
            return RecordResult(
                record_id=record.id,
                status=RecordStatus.FAILED,
                error=str(e),
                permanent=permanent,
            )

        self._ledger.record_outcome(record.id, success=True)
        logger.info(
            "에어테이블 업데이트 성공: %s (총 %.0fms)",
            record.id, (time.monotonic() - start) * 1000,
        )
        return RecordResult(record_id=record.id, status=RecordStatus.WRITTEN, attributes=attributes)

    async def collect(self, record: UnitRecord) -> dict[str, Any]:
        """수집 + 병합 + 검증 (쓰기·재시도 이력 없음)

        Returns:
            에어테이블에 쓸 필드 (None 값 제외)

        Raises:
            AddressParseError: 주소 파싱 실패
            CodeLookupError: 코드 조회 최종 실패
            RecordProcessingError: 건물 데이터 없음 / 빈 병합 / 무의미한 결과
        """
        parsed = parse_address(record.address)
        if isinstance(parsed, AddressParseFailure):
            raise AddressParseError(parsed)

        codes = await self._code_client.resolve(parsed)
        pnu = build_pnu(codes)
        if pnu:
            logger.info("생성된 PNU: %s", pnu)
        else:
            logger.warning("PNU 생성 불가, PNU 기반 조회 생략: %s", record.id)

        bundle = await self.fetch_bundle(codes, pnu, record.dong, record.ho)

        if not bundle.recap.has_items and not bundle.title.has_items:
            raise NoBuildingDataError(f"건축물대장 데이터 없음: {record.address}")

        merged = self._merger.merge(bundle, record.dong, record.ho)
        if not merged:
            raise EmptyMergeError(f"처리된 데이터 없음: {record.id}")

        attributes = {key: value for key, value in merged.items() if value is not None}
        if not has_meaningful_data(attributes):
            raise DegenerateResultError(f"유효한 데이터 없음 (기본값만 존재): {record.id}")
        return attributes

    async def fetch_bundle(
        self,
        codes: ResolvedCodes,
        pnu: str | None,
        dong: str,
        ho: str,
    ) -> RegistryBundle:
        """외부 API 병렬 수집

        전유부 → 주택가격은 fetch_house_price 안에서 순차로 진행된다.
        PNU가 없으면 토지특성·대지지분은 조회하지 않는다.
        """
        logger.info("API 데이터 수집 시작...")
        start = time.monotonic()

        recap, title, area, house_price, land, land_share = await asyncio.gather(
            self._registry_client.fetch_recap_title(codes),
            self._registry_client.fetch_title(codes),
            self._registry_client.fetch_area(codes, dong, ho),
            self._registry_client.fetch_house_price(codes, dong, ho),
            self._fetch_land(pnu),
            self._fetch_land_share(pnu, dong, ho),
        )

        logger.info("API 데이터 수집 완료 (%.0fms)", (time.monotonic() - start) * 1000)
        return RegistryBundle(
            recap=recap,
            title=title,
            area=area,
            land=land,
            house_price=house_price or HousePrice(),
            land_share=land_share,
        )

    async def _fetch_land(self, pnu: str | None) -> LandCharacteristics:
        if not pnu:
            return LandCharacteristics()
        return await self._vworld_client.fetch_land_characteristics(pnu)

    async def _fetch_land_share(self, pnu: str | None, dong: str, ho: str) -> float | None:
        if not pnu:
            return None
        return await self._vworld_client.fetch_land_share(pnu, dong, ho)
