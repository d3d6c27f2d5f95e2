"""시군구코드/법정동코드 조회 클라이언트

Google Apps Script 웹앱에 파싱된 주소를 POST하면 코드표에서 찾은
시군구코드·법정동코드를 돌려준다.

요청:  [{"시군구": "강남구", "법정동": "역삼동", "번": "0007", "지": "0003"}]
응답:  [{"시군구코드": 11680, "법정동코드": 10100, ...}]

코드 없이는 어떤 건축물대장 조회도 의미가 없으므로,
재시도를 모두 소진하면 CodeLookupError로 레코드 처리를 중단시킨다.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from app.config import settings
from app.services.address_parser import ParsedAddress, ResolvedCodes

logger = logging.getLogger(__name__)


class CodeLookupError(Exception):
    """코드 조회 최종 실패"""


class CodeLookupClient:
    """시군구/법정동 코드 조회 (고정 간격 재시도)"""

    def __init__(
        self,
        url: str | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url if url is not None else settings.CODE_LOOKUP_URL
        self._max_retries = max_retries if max_retries is not None else settings.CODE_LOOKUP_MAX_RETRIES
        self._retry_delay = retry_delay if retry_delay is not None else settings.CODE_LOOKUP_RETRY_DELAY
        self._timeout = timeout or settings.REQUEST_TIMEOUT
        self._transport = transport

    async def _post(self, payload: list[dict[str, str]]) -> Any:
        """코드 조회 POST (Apps Script는 302 리다이렉트 후 응답)"""
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await client.post(url=self._url, json=payload)
        response.raise_for_status()
        return response.json()

    async def resolve(self, parsed: ParsedAddress) -> ResolvedCodes:
        """파싱된 주소 → ResolvedCodes

        Raises:
            CodeLookupError: 재시도를 모두 소진했을 때
        """
        payload = [{
            "시군구": parsed.sigungu,
            "법정동": parsed.bjdong,
            "번": parsed.bun,
            "지": parsed.ji,
        }]

        for attempt in range(1, self._max_retries + 1):
            try:
                data = await self._post(payload)
                codes = self._extract_codes(data)
                if codes:
                    sigungu_cd, bjdong_cd = codes
                    logger.info(
                        "코드 조회 성공: %s %s → %s/%s",
                        parsed.sigungu, parsed.bjdong, sigungu_cd, bjdong_cd,
                    )
                    return ResolvedCodes.from_parsed(parsed, sigungu_cd, bjdong_cd)
                logger.warning(
                    "코드 조회 응답에 코드 없음 (시도 %d/%d): %s %s",
                    attempt, self._max_retries, parsed.sigungu, parsed.bjdong,
                )
            except (httpx.HTTPError, ValueError) as e:
                logger.error("코드 조회 호출 실패 (시도 %d/%d): %s", attempt, self._max_retries, e)

            if attempt < self._max_retries:
                await asyncio.sleep(self._retry_delay)

        raise CodeLookupError(f"코드 조회 최종 실패: {parsed.sigungu} {parsed.bjdong}")

    @staticmethod
    def _extract_codes(data: Any) -> tuple[str, str] | None:
        """응답 → (시군구코드, 법정동코드). 둘 중 하나라도 없으면 None."""
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        first = data[0]
        sigungu_cd = first.get("시군구코드")
        bjdong_cd = first.get("법정동코드")
        if sigungu_cd is None or bjdong_cd is None:
            return None
        return str(sigungu_cd), str(bjdong_cd)
