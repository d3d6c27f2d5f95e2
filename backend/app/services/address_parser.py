"""지번 주소 → 건축물대장 조회 파라미터 변환

에어테이블 '지번 주소'(단일 문자열)에서 시군구/법정동/본번/부번을 추출하고,
코드 조회 결과와 합쳐 PNU(필지고유번호)를 만든다.

처리 형식:
1. 본번-부번: "강남구 역삼동 7-3"        → 번="0007", 지="0003"
2. 본번만:    "강남구 역삼동 7"          → 번="0007", 지="0000"
3. 건물 동 포함: "강남구 역삼동 102동 7-3" → 동 토큰 제거 후 1번과 동일

사용:
    from app.services.address_parser import parse_address, build_pnu
    parsed = parse_address(record.address)
    if isinstance(parsed, AddressParseFailure):
        ...
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ERROR_NO_ADDRESS = "주소 없음"
ERROR_INVALID_FORMAT = "잘못된 주소 형식"
_MISSING_INPUT = "입력값 없음"

# 토지구분 (1: 일반, 2: 산)
LAND_CATEGORY_GENERAL = "1"


@dataclass(frozen=True)
class ParsedAddress:
    """지번 주소 파싱 결과"""

    sigungu: str  # "강남구"
    bjdong: str  # "역삼동"
    bun: str  # "0007" (4자리)
    ji: str = "0000"  # "0003" (4자리, 없으면 0000)


@dataclass(frozen=True)
class AddressParseFailure:
    """주소 파싱 실패 (error: 실패 사유, raw: 원본 주소)"""

    error: str
    raw: str


@dataclass(frozen=True)
class ResolvedCodes:
    """파싱 결과 + 시군구코드/법정동코드"""

    sigungu: str
    bjdong: str
    bun: str
    ji: str
    sigungu_cd: str  # "11680"
    bjdong_cd: str  # "10100"

    @classmethod
    def from_parsed(
        cls, parsed: ParsedAddress, sigungu_cd: str, bjdong_cd: str
    ) -> ResolvedCodes:
        return cls(
            sigungu=parsed.sigungu,
            bjdong=parsed.bjdong,
            bun=parsed.bun,
            ji=parsed.ji,
            sigungu_cd=sigungu_cd,
            bjdong_cd=bjdong_cd,
        )

    def registry_params(self) -> dict[str, str]:
        """건축물대장 API 공통 파라미터"""
        return {
            "sigunguCd": self.sigungu_cd,
            "bjdongCd": self.bjdong_cd,
            "bun": self.bun,
            "ji": self.ji,
        }


class AddressParseError(Exception):
    """주소 파싱 실패 (레코드 처리 중단용)"""

    def __init__(self, failure: AddressParseFailure) -> None:
        self.failure = failure
        super().__init__(f"{failure.error}: {failure.raw}")


# ── 정규식 패턴 ───────────────────────────────────────────

_RE_SPACES = re.compile(r"\s+")

# 시군구와 지번 사이에 끼어 있는 건물 동 토큰: "102동", "A102동"
_RE_BUILDING_DONG = re.compile(r"\s+[A-Za-z]*[0-9]+동\s+")

# {시군구} {법정동} {본번}-{부번}
_RE_LOT_WITH_SUB = re.compile(r"^(\S+(?:구|시|군))\s+(\S+)\s+([0-9]+)-([0-9]+)$")

# {시군구} {법정동} {본번}
_RE_LOT_MAIN_ONLY = re.compile(r"^(\S+(?:구|시|군))\s+(\S+)\s+([0-9]+)$")


def parse_address(address: object) -> ParsedAddress | AddressParseFailure:
    """지번 주소 → ParsedAddress

    모든 입력에 대해 예외 없이 ParsedAddress 또는 AddressParseFailure를 반환한다.

    Args:
        address: 에어테이블 '지번 주소' 값 (문자열이 아닐 수도 있음)

    Returns:
        ParsedAddress 또는 AddressParseFailure
    """
    if not isinstance(address, str) or not address.strip():
        raw = str(address) if address else _MISSING_INPUT
        return AddressParseFailure(error=ERROR_NO_ADDRESS, raw=raw)

    text = _RE_SPACES.sub(" ", address.strip())
    text = _RE_BUILDING_DONG.sub(" ", text, count=1)

    match = _RE_LOT_WITH_SUB.match(text)
    if match:
        return ParsedAddress(
            sigungu=match.group(1),
            bjdong=match.group(2),
            bun=match.group(3).zfill(4),
            ji=match.group(4).zfill(4),
        )

    match = _RE_LOT_MAIN_ONLY.match(text)
    if match:
        return ParsedAddress(
            sigungu=match.group(1),
            bjdong=match.group(2),
            bun=match.group(3).zfill(4),
        )

    return AddressParseFailure(error=ERROR_INVALID_FORMAT, raw=text)


def build_pnu(codes: ResolvedCodes | None) -> str | None:
    """PNU(필지고유번호) 생성

    시군구코드 + 법정동코드 + 토지구분(1) + 본번 + 부번.
    네 값 중 하나라도 비어 있으면 None.
    """
    if codes is None:
        return None
    if not (codes.sigungu_cd and codes.bjdong_cd and codes.bun and codes.ji):
        return None
    return f"{codes.sigungu_cd}{codes.bjdong_cd}{LAND_CATEGORY_GENERAL}{codes.bun}{codes.ji}"
