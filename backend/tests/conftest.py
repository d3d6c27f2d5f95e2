"""공용 테스트 픽스처

외부 API 호출 없이 수집/병합 흐름을 검증하기 위한 샘플 데이터.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.services.address_parser import ParsedAddress, ResolvedCodes


class FakeClock:
    """RetryLedger용 수동 시계"""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def parsed() -> ParsedAddress:
    """'강남구 역삼동 7-3' 파싱 결과"""
    return ParsedAddress(sigungu="강남구", bjdong="역삼동", bun="0007", ji="0003")


@pytest.fixture()
def codes(parsed: ParsedAddress) -> ResolvedCodes:
    return ResolvedCodes.from_parsed(parsed, sigungu_cd="11680", bjdong_cd="10100")
