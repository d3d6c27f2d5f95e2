"""동/호 표기 정규화 및 매칭

에어테이블 입력값과 건축물대장 API 응답의 동/호 표기가 제각각이다.
("102동" / "102", "1층201호" / "201호" / "201")
이 모듈은 표기를 숫자열로 정규화해 비교하고,
정확 일치 필터만 지원하는 API에 차례로 던져볼 표기 변형 목록을 만든다.

매칭 규칙:
1. 입력 동/호가 비어 있으면 와일드카드 (항상 일치)
2. 단, 필수 항목(required=True)으로 비교할 때 입력이 비어 있으면 불일치
3. 그 외에는 마지막 숫자열이 같으면 일치

사용:
    designator_matches(item.get("dongNm"), "102동")           # "102" == "102"
    designator_matches(item.get("hoNm"), ho, required=True)
    designator_variants("1층201호", HO_SUFFIX)  # ["1층201호", "201", "1층201"]
"""

from __future__ import annotations

import re

DONG_SUFFIX = "동"
HO_SUFFIX = "호"

_RE_NON_DIGIT = re.compile(r"[^0-9]")
_RE_DIGIT_RUN = re.compile(r"[0-9]+")


def extract_numbers(value: str | None) -> str:
    """숫자만 남김 ("B-102동" → "102", "1층201호" → "1201")"""
    if not value or not isinstance(value, str):
        return ""
    return _RE_NON_DIGIT.sub("", value)


def normalize_designator(value: object) -> str:
    """동/호 표기 → 마지막 숫자열

    "1층201호" → "201", "102동" → "102", "201" → "201", "" → ""
    """
    if value is None:
        return ""
    runs = _RE_DIGIT_RUN.findall(str(value))
    return runs[-1] if runs else ""


def extract_unit_number(value: str | None, suffix: str = HO_SUFFIX) -> str:
    """접미사 바로 앞 숫자 우선 추출, 없으면 숫자 전체

    "1층201호" → "201", "201" → "201", "지하101" → "101"
    """
    if not value or not isinstance(value, str):
        return ""
    match = re.search(rf"([0-9]+){re.escape(suffix)}$", value.strip())
    if match:
        return match.group(1)
    return extract_numbers(value)


def designator_matches(
    api_value: object,
    input_value: str | None,
    *,
    required: bool = False,
) -> bool:
    """API 항목의 동/호가 입력 동/호와 일치하는지

    Args:
        api_value: API 응답 항목의 dongNm/hoNm
        input_value: 에어테이블 입력 동/호
        required: True면 입력이 비어 있을 때 불일치로 판정

    Returns:
        일치 여부
    """
    if not input_value or not str(input_value).strip():
        return not required
    expected = normalize_designator(input_value)
    actual = normalize_designator(api_value)
    if not expected and not actual:
        # 숫자 없는 표기("A동", "가동")는 접미사를 뗀 문자 그대로 비교
        return _strip_suffix(input_value) == _strip_suffix(api_value)
    return expected == actual


def _strip_suffix(value: object) -> str:
    text = str(value or "").strip()
    for suffix in (DONG_SUFFIX, HO_SUFFIX):
        text = text.removesuffix(suffix)
    return text.strip()


def designator_variants(value: str | None, suffix: str) -> list[str]:
    """정확 일치 필터용 표기 변형 목록 (순서 유지, 중복 제거)

    원본(trim) → 숫자 추출 → 접미사 제거 순.
    입력이 비어 있으면 [""] (빈 값 조회).
    """
    original = (value or "").strip()
    if not original:
        return [""]

    candidates = [
        original,
        extract_unit_number(original, suffix),
        original.removesuffix(suffix),
    ]
    variants: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in variants:
            variants.append(candidate)
    return variants


def filter_unit_items(
    items: list[dict],
    dong: str | None,
    ho: str | None,
) -> list[dict]:
    """동/호 필터 없이 받은 항목 목록에서 대상 호실만 추림

    호 일치(필수) + 동 일치(입력 있을 때)로 먼저 찾고,
    동 표기가 달라 하나도 없으면 호만으로 다시 찾는다.
    호만 일치한 항목이 여러 동에 걸쳐 있으면 빈 목록 (호실 특정 불가).
    입력에 층("1층201호")이 있으면 flrNo가 있는 항목은 층도 맞아야 한다.
    그래도 없으면 빈 목록.
    """
    if not ho or not ho.strip():
        return []

    floor = _extract_floor(ho)

    def _floor_ok(item: dict) -> bool:
        if floor is None:
            return True
        flr_no = normalize_designator(item.get("flrNo"))
        return not flr_no or flr_no == floor

    by_ho = [
        item for item in items
        if designator_matches(item.get("hoNm"), ho, required=True) and _floor_ok(item)
    ]
    by_dong = [item for item in by_ho if designator_matches(item.get("dongNm"), dong)]
    if by_dong:
        return by_dong

    # 호만 일치하는 항목이 여러 동에 걸쳐 있으면 어느 호실인지 알 수 없음
    dong_names = {str(item.get("dongNm") or "").strip() for item in by_ho}
    if len(dong_names) > 1:
        return []
    return by_ho


_RE_FLOOR = re.compile(r"(?:지하|지|B)?([0-9]+)층")


def _extract_floor(ho: str) -> str | None:
    """호수 표기의 층 번호 ("1층201호" → "1", "201호" → None)"""
    match = _RE_FLOOR.search(ho)
    return match.group(1) if match else None
