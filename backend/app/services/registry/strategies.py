"""동/호 조회 전략

건축물대장 전유부/전유공용면적 API는 동/호를 정확히 일치하는 문자열로만 필터링한다.
입력 표기가 API 표기와 다르면 0건이 나오므로 다음 순서로 재조회한다.

1. 원본 동/호 그대로
2. 동/호 숫자만 추출
3. 동/호 파라미터 없이 (조회 건수 확대, 클라이언트 측에서 호실 추림)

대지지분(Vworld)은 동/호 표기 변형의 조합을 모두 시도한 뒤
마지막으로 동 파라미터 없이 한 번 더 시도한다.

각 전략은 (동, 호) → 조회 조건 순수 함수이며, 호출 측이 순서대로 평가하다가
첫 번째로 결과가 있는 조회에서 멈춘다.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from app.services.registry.matcher import (
    DONG_SUFFIX,
    HO_SUFFIX,
    designator_variants,
    extract_numbers,
)

FILTERED_PAGE_SIZE = 50
UNFILTERED_PAGE_SIZE = 100

# 동이 비어 있을 때 대지지분 조회에 쓰는 자리표시 동
BLANK_DONG_PLACEHOLDER = "0000"


@dataclass(frozen=True)
class UnitQuery:
    """동/호 조회 조건 (dong/ho가 None이면 파라미터 생략)"""

    name: str
    dong: str | None
    ho: str | None
    num_of_rows: int = FILTERED_PAGE_SIZE
    post_filter: bool = False  # 응답에서 대상 호실을 직접 추려야 하는지

    def params(self) -> dict[str, str | int]:
        params: dict[str, str | int] = {"numOfRows": self.num_of_rows, "pageNo": 1}
        if self.dong is not None:
            params["dongNm"] = self.dong
        if self.ho is not None:
            params["hoNm"] = self.ho
        return params


UnitQueryStrategy = Callable[[str, str], UnitQuery | None]


def raw_designators(dong: str, ho: str) -> UnitQuery | None:
    """1단계: 원본 동/호"""
    return UnitQuery(name="원본", dong=dong or "", ho=ho or "")


def digits_only(dong: str, ho: str) -> UnitQuery | None:
    """2단계: 숫자만 추출한 동/호 (동/호 모두 숫자가 없으면 생략)"""
    if not (dong or ho):
        return None
    numeric_dong = extract_numbers(dong)
    numeric_ho = extract_numbers(ho)
    if not (numeric_dong or numeric_ho):
        return None
    return UnitQuery(name="숫자만", dong=numeric_dong, ho=numeric_ho)


def unfiltered(dong: str, ho: str) -> UnitQuery | None:
    """3단계: 동/호 필터 없이 조회 후 클라이언트 측 매칭"""
    return UnitQuery(
        name="필터없음",
        dong=None,
        ho=None,
        num_of_rows=UNFILTERED_PAGE_SIZE,
        post_filter=True,
    )


UNIT_QUERY_STRATEGIES: tuple[UnitQueryStrategy, ...] = (
    raw_designators,
    digits_only,
    unfiltered,
)


def unit_queries(
    dong: str | None,
    ho: str | None,
    strategies: tuple[UnitQueryStrategy, ...] = UNIT_QUERY_STRATEGIES,
) -> list[UnitQuery]:
    """전략 순서대로 조회 조건 생성 (생략된 단계, 직전과 같은 조건은 제외)"""
    dong = (dong or "").strip()
    ho = (ho or "").strip()
    queries: list[UnitQuery] = []
    for strategy in strategies:
        query = strategy(dong, ho)
        if query is None:
            continue
        if any(q.dong == query.dong and q.ho == query.ho for q in queries):
            continue
        queries.append(query)
    return queries


def land_share_attempts(dong: str | None, ho: str | None) -> list[tuple[str, str]]:
    """대지지분 조회용 (동, 호) 조합 목록

    동 변형 × 호 변형, 동이 비어 있으면 "0000" 동을 추가,
    마지막에 동 없이 첫 번째 호 변형으로 한 번 더.
    """
    dong_variants = designator_variants(dong, DONG_SUFFIX)
    if not (dong or "").strip():
        dong_variants.append(BLANK_DONG_PLACEHOLDER)
    ho_variants = designator_variants(ho, HO_SUFFIX)

    attempts = [(d, h) for d in dong_variants for h in ho_variants]
    last_resort = ("", ho_variants[0])
    if last_resort not in attempts:
        attempts.append(last_resort)
    return attempts
