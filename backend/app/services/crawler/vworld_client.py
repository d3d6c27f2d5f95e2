"""Vworld 부동산정보 API 클라이언트

토지특성 (getLandCharacteristics, XML): PNU → 용도지역, 토지면적
대지지분 (buldRlnmList, JSON): PNU + 동/호 → 대지권 비율

두 조회 모두 best-effort: 실패 시 빈 결과(None)를 반환한다.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from app.config import settings
from app.models.unit import LandCharacteristics
from app.services.crawler.throttle import RequestThrottle
from app.services.registry.strategies import land_share_attempts

logger = logging.getLogger(__name__)

LAND_CHARACTERISTICS_URL = "https://api.vworld.kr/ned/data/getLandCharacteristics"
LAND_SHARE_URL = "https://api.vworld.kr/ned/data/buldRlnmList"

# 대지지분 응답은 두 가지 형태로 온다: {목록키: {totalCount, 목록키: [...]}}
_LAND_SHARE_LIST_KEYS = ("ldaregVOList", "buldRlnmVOList")
_LAND_SHARE_RATE_KEYS = ("ldaQotaRate", "landShareRate")


class VworldClient:
    """Vworld 토지특성/대지지분 클라이언트"""

    def __init__(
        self,
        api_key: str | None = None,
        throttle: RequestThrottle | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.VWORLD_API_KEY
        self._throttle = throttle or RequestThrottle(settings.API_DELAY)
        self._timeout = timeout or settings.REQUEST_TIMEOUT
        self._transport = transport

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        """공통 GET 요청"""
        await self._throttle.wait()
        params = {**params, "key": self._api_key}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.get(url, params=params)
        response.raise_for_status()
        return response

    # === 토지특성 ===

    async def fetch_land_characteristics(self, pnu: str) -> LandCharacteristics:
        """PNU 기준 토지특성 조회

        Args:
            pnu: 필지고유번호 (19자리)

        Returns:
            LandCharacteristics (실패 시 모든 필드 None)
        """
        params = {
            "domain": settings.VWORLD_DOMAIN,
            "pnu": pnu,
            "stdrYear": settings.LAND_CHARACTERISTICS_YEAR,
            "format": "xml",
            "numOfRows": 10,
            "pageNo": 1,
        }
        logger.info("Vworld 토지특성 조회: %s", pnu)
        try:
            response = await self._get(LAND_CHARACTERISTICS_URL, params)
            result = self._parse_land_characteristics(response.text)
        except (httpx.HTTPError, ET.ParseError) as e:
            logger.warning("Vworld 토지특성 조회 실패 (PNU: %s): %s", pnu, e)
            return LandCharacteristics()

        logger.info("토지특성: 용도지역=%s, 토지면적=%s", result.zone, result.land_area)
        return result

    @staticmethod
    def _parse_land_characteristics(xml_text: str) -> LandCharacteristics:
        """XML 응답의 첫 번째 field → LandCharacteristics"""
        root = ET.fromstring(xml_text)
        field = root.find(".//fields/field")
        if field is None:
            return LandCharacteristics()

        row = {child.tag: (child.text or "").strip() for child in field}
        zone = row.get("prposArea1Nm") or None
        return LandCharacteristics(zone=zone, land_area=_to_float(row.get("lndpclAr")))

    # === 대지지분 ===

    async def fetch_land_share(self, pnu: str, dong: str, ho: str) -> float | None:
        """동/호 표기 변형을 차례로 시도해 대지지분 조회

        Returns:
            대지지분 (비율 "X/Y"의 X). 모든 시도 실패 시 None.
        """
        logger.info("Vworld 대지지분 조회: PNU=%s, 동='%s', 호='%s'", pnu, dong, ho)
        for try_dong, try_ho in land_share_attempts(dong, ho):
            share = await self._try_land_share(pnu, try_dong, try_ho)
            if share is not None:
                logger.info("대지지분 성공: 동='%s', 호='%s', 지분=%s", try_dong, try_ho, share)
                return share

        logger.warning("모든 동/호 변형으로 대지지분 조회 실패: %s", pnu)
        return None

    async def _try_land_share(self, pnu: str, dong: str, ho: str) -> float | None:
        """단일 (동, 호) 조합 대지지분 조회"""
        params: dict[str, Any] = {
            "pnu": pnu,
            "format": "json",
            "numOfRows": 10,
            "pageNo": 1,
        }
        if dong.strip():
            params["buldDongNm"] = dong.strip()
        if ho.strip():
            params["buldHoNm"] = ho.strip()

        try:
            response = await self._get(LAND_SHARE_URL, params)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("대지지분 시도 중 오류 (동='%s', 호='%s'): %s", dong, ho, e)
            return None
        return self._parse_land_share(data)

    @staticmethod
    def _parse_land_share(data: Any) -> float | None:
        """응답 JSON → 첫 번째로 해석 가능한 대지지분"""
        if not isinstance(data, dict):
            return None

        for key in _LAND_SHARE_LIST_KEYS:
            container = data.get(key)
            if not isinstance(container, dict):
                continue
            if _to_float(container.get("totalCount")) in (None, 0):
                return None
            raw_items = container.get(key)
            items = [raw_items] if isinstance(raw_items, dict) else raw_items
            if not isinstance(items, list):
                return None
            for item in items:
                share = _parse_share_rate(item)
                if share is not None:
                    return share
            return None
        return None


# --- 모듈 수준 유틸리티 ---


def _parse_share_rate(item: Any) -> float | None:
    """대지권 비율 "X/Y" → X"""
    if not isinstance(item, dict):
        return None
    for key in _LAND_SHARE_RATE_KEYS:
        rate = str(item.get(key) or "").strip()
        if rate:
            return _to_float(rate.split("/")[0])
    return None


def _to_float(value: Any) -> float | None:
    """문자열 → float (실패 시 None)"""
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except (ValueError, TypeError):
        return None
