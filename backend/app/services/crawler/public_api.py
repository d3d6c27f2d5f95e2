"""건축물대장 API 클라이언트 (data.go.kr BldRgstHubService)

- 총괄표제부 (getBrRecapTitleInfo): 아파트 단지 등 여러 동 전체 개요
- 표제부 (getBrTitleInfo): 동별 개요 (구조, 층수, 승강기, 세대수 ...)
- 전유공용면적 (getBrExposPubuseAreaInfo): 호실별 전유/공용 면적
- 전유부 (getBrExposInfo): 호실별 관리건축물대장 PK (mgmBldrgstPk)
- 주택가격 (getBrHsprcInfo): 호실별 공시 주택가격

모든 조회는 best-effort: 네트워크 오류, 비정상 응답은 경고 로그 후
빈 RegistryResult를 반환한다. 호출 측은 개별 조회 실패와 무관하게 진행한다.
※ API 키: PUBLIC_DATA_API_KEY 환경변수로 관리
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import settings
from app.models.unit import HousePrice, RegistryResult
from app.services.address_parser import ResolvedCodes
from app.services.crawler.throttle import RequestThrottle
from app.services.registry.matcher import designator_matches, filter_unit_items
from app.services.registry.strategies import UnitQuery, unit_queries

logger = logging.getLogger(__name__)

_BASE = "https://apis.data.go.kr/1613000/BldRgstHubService"

ENDPOINTS = {
    "recap_title": f"{_BASE}/getBrRecapTitleInfo",
    "title": f"{_BASE}/getBrTitleInfo",
    "area": f"{_BASE}/getBrExposPubuseAreaInfo",
    "expos": f"{_BASE}/getBrExposInfo",
    "house_price": f"{_BASE}/getBrHsprcInfo",
}

# 원 단위로 내려온 가격의 판별 기준 (이보다 크면 만원으로 환산)
_WON_THRESHOLD = 1_000_000

# 주택가격 페이지 크기 / 최대 페이지 수 (대단지 10,000행)
_PRICE_PAGE_SIZE = 100
_PRICE_MAX_PAGES = 100


class BuildingRegistryClient:
    """건축물대장 API 클라이언트

    모든 메서드는 호출 전 요청 간격을 지키고, 응답을 RegistryResult로 정규화한다.
    """

    def __init__(
        self,
        api_key: str | None = None,
        throttle: RequestThrottle | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.PUBLIC_DATA_API_KEY
        self._throttle = throttle or RequestThrottle(settings.API_DELAY)
        self._timeout = timeout or settings.REQUEST_TIMEOUT
        self._transport = transport

    async def _get(self, url: str, params: dict[str, Any]) -> Any:
        """공통 GET 요청 (JSON 응답)"""
        await self._throttle.wait()
        params = {**params, "serviceKey": self._api_key, "_type": "json"}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    @staticmethod
    def _parse_items(data: Any) -> RegistryResult:
        """응답 JSON → RegistryResult

        response.body.items.item 이 목록/단일 객체/빈 문자열로 오는 경우를 모두 처리한다.
        """
        if not isinstance(data, dict):
            return RegistryResult()
        response = data.get("response")
        body = response.get("body") if isinstance(response, dict) else None
        if not isinstance(body, dict):
            return RegistryResult()

        items_obj = body.get("items")
        raw_items = items_obj.get("item") if isinstance(items_obj, dict) else None
        if isinstance(raw_items, dict):
            items = [raw_items]
        elif isinstance(raw_items, list):
            items = [item for item in raw_items if isinstance(item, dict)]
        else:
            items = []

        return RegistryResult(total_count=_to_int(body.get("totalCount")), items=items)

    async def _fetch(self, name: str, params: dict[str, Any]) -> RegistryResult:
        """best-effort 조회 (실패 시 빈 결과)"""
        try:
            data = await self._get(ENDPOINTS[name], params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("건축물대장 %s 조회 실패: %s", name, e)
            return RegistryResult()
        return self._parse_items(data)

    async def _fetch_unit(
        self,
        name: str,
        codes: ResolvedCodes,
        dong: str,
        ho: str,
    ) -> tuple[RegistryResult, UnitQuery] | None:
        """동/호 조회 전략을 순서대로 시도, 첫 번째로 결과가 있는 조회 반환"""
        for query in unit_queries(dong, ho):
            result = await self._fetch(name, {**codes.registry_params(), **query.params()})
            logger.info(
                "%s 조회 [%s] 동='%s' 호='%s' → totalCount=%d",
                name, query.name, query.dong or "", query.ho or "", result.total_count,
            )
            if result.has_items:
                return result, query
        return None

    # === 총괄표제부 ===

    async def fetch_recap_title(self, codes: ResolvedCodes) -> RegistryResult:
        """총괄표제부 조회 (totalCount > 0 이면 단지형)"""
        params = {**codes.registry_params(), "numOfRows": 10, "pageNo": 1}
        return await self._fetch("recap_title", params)

    # === 표제부 ===

    async def fetch_title(self, codes: ResolvedCodes) -> RegistryResult:
        """표제부 조회 (동별 항목)"""
        params = {**codes.registry_params(), "numOfRows": 50, "pageNo": 1}
        return await self._fetch("title", params)

    # === 전유공용면적 ===

    async def fetch_area(
        self, codes: ResolvedCodes, dong: str, ho: str
    ) -> RegistryResult | None:
        """전유공용면적 조회 (원본 → 숫자만 → 필터없음 3단계)

        Returns:
            면적 항목. 어느 단계에서도 항목이 없으면 None.
            필터없음 단계에서 대상 호실을 추리지 못하면 전체 항목을 그대로 반환.
        """
        found = await self._fetch_unit("area", codes, dong, ho)
        if found is None:
            logger.warning("모든 단계에서 면적 정보 조회 실패")
            return None

        result, query = found
        if not query.post_filter:
            return result

        matched = filter_unit_items(result.items, dong, ho)
        if matched:
            logger.info("면적 항목 호실 매칭: %d/%d건", len(matched), len(result.items))
            return RegistryResult(total_count=len(matched), items=matched)
        logger.info("면적 항목 호실 매칭 실패, 전체 %d건 사용", len(result.items))
        return result

    # === 전유부 ===

    async def fetch_expos(
        self, codes: ResolvedCodes, dong: str, ho: str
    ) -> RegistryResult:
        """전유부 조회 (면적과 같은 3단계)"""
        found = await self._fetch_unit("expos", codes, dong, ho)
        if found is None:
            return RegistryResult()
        result, query = found
        if query.post_filter:
            matched = filter_unit_items(result.items, dong, ho)
            return RegistryResult(total_count=len(matched), items=matched)
        return result

    # === 주택가격 ===

    async def fetch_house_price(
        self, codes: ResolvedCodes, dong: str, ho: str
    ) -> HousePrice:
        """전유부 → 관리건축물대장 PK → 주택가격 (순차)

        Returns:
            최신 주택가격 (찾지 못하면 0/0)
        """
        expos = await self.fetch_expos(codes, dong, ho)
        pk = find_unit_pk(expos.items, dong, ho)
        if not pk:
            logger.info("전유부에서 관리건축물대장 PK를 찾지 못함: 동='%s' 호='%s'", dong, ho)
            return HousePrice()

        rows = await self._fetch_price_rows(codes, pk)
        price = select_latest_price(rows, pk)
        logger.info(
            "주택가격 [%s]: %d만원 (%d년)", pk, price.price_manwon, price.base_year
        )
        return price

    async def _fetch_price_rows(self, codes: ResolvedCodes, pk: str) -> list[dict]:
        """주택가격 전체 페이지 조회 후 해당 PK 항목만 반환

        단지 전체의 호실별·연도별 가격이 한 번에 내려오므로 totalCount를
        다 읽을 때까지 페이지를 넘긴다.
        """
        rows: list[dict] = []
        seen = 0
        for page in range(1, _PRICE_MAX_PAGES + 1):
            params = {**codes.registry_params(), "numOfRows": _PRICE_PAGE_SIZE, "pageNo": page}
            result = await self._fetch("house_price", params)
            if not result.has_items:
                break
            seen += len(result.items)
            rows.extend(
                item for item in result.items
                if str(item.get("mgmBldrgstPk") or "").strip() == pk
            )
            if seen >= result.total_count:
                break
        else:
            logger.warning("주택가격 페이지 상한(%d) 도달: %s", _PRICE_MAX_PAGES, pk)
        return rows


# --- 모듈 수준 유틸리티 ---


def find_unit_pk(items: list[dict], dong: str, ho: str) -> str | None:
    """전유부 항목 중 대상 호실의 mgmBldrgstPk"""
    for item in items:
        if not designator_matches(item.get("hoNm"), ho, required=True):
            continue
        if not designator_matches(item.get("dongNm"), dong):
            continue
        pk = str(item.get("mgmBldrgstPk") or "").strip()
        if pk:
            return pk
    return None


def select_latest_price(items: list[dict], pk: str) -> HousePrice:
    """주택가격 항목 중 해당 PK의 최신 가격 (만원)

    기준일(crtnDay, YYYYMMDD)을 문자열로 비교해 가장 최근 항목을 고른다.
    가격이 원 단위(1,000,000 초과)면 만원으로 환산.
    """
    candidates = [
        item for item in items
        if str(item.get("mgmBldrgstPk") or "").strip() == pk
    ]
    if not candidates:
        return HousePrice()

    latest = max(candidates, key=lambda item: str(item.get("crtnDay") or "").zfill(8))
    price = _to_int(latest.get("hsprc"))
    if price > _WON_THRESHOLD:
        price = round(price / 10_000)

    year = _to_int(str(latest.get("crtnDay") or "")[:4])
    if price > 0 and year > 0:
        return HousePrice(price_manwon=price, base_year=year)
    return HousePrice()


def _to_int(value: Any) -> int:
    """문자열/숫자 → int (실패 시 0)"""
    if value is None or value == "":
        return 0
    try:
        return int(float(str(value).replace(",", "").strip()))
    except (ValueError, TypeError):
        return 0
