"""건축물대장·Vworld 응답 병합

레코드 1건에 대해 수집한 RegistryBundle을 에어테이블 필드 맵으로 합친다.

기준 데이터 선택:
- 총괄표제부 totalCount > 0 → COMPLEX: 단지 개요는 총괄표제부, 동 정보는 입력 동과
  일치하는 표제부 항목 (동 입력이 없으면 주건축물)
- 그 외 → SINGLE: 첫 번째 표제부 항목이 모든 개요의 기준 (건물 1개)

공통:
- 전유/공용 면적 합산 (주건축물만). 전유면적이 없으면 면적 필드는 쓰지 않는다.
- 토지특성 (용도지역, 토지면적) 있으면 그대로
- 주택가격·기준년도·대지지분은 항상 기록 (없으면 0)

필드가 결과에 없으면 "기존 값 유지"를 뜻한다. 빈 문자열은 절대 쓰지 않는다.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from app.models.unit import (
    BuildingKind,
    HousePrice,
    LandCharacteristics,
    RegistryBundle,
    RegistryResult,
)
from app.services.registry.matcher import designator_matches

logger = logging.getLogger(__name__)

# ── 에어테이블 필드명 ─────────────────────────────────────────

F_SITE_AREA = "대지면적(㎡)"
F_TOTAL_AREA = "연면적(㎡)"
F_FAR_AREA = "용적률산정용연면적(㎡)"
F_BUILDING_AREA = "건축면적(㎡)"
F_COVERAGE_RATIO = "건폐율(%)"
F_FLOOR_AREA_RATIO = "용적률(%)"
F_BUILDING_NAME = "건물명"
F_PARKING = "총주차대수"
F_APPROVAL_DATE = "사용승인일"
F_TOTAL_HOUSEHOLDS = "총 세대/가구/호"
F_MAIN_BUILDINGS = "주건물수"
F_HEIGHT = "높이(m)"
F_STRUCTURE = "주구조"
F_ROOF = "지붕"
F_USAGE = "주용도"
F_FLOORS = "총층수"
F_DONG_HOUSEHOLDS = "해당동 세대/가구/호"
F_ELEVATORS = "해당동 승강기수"
F_ROAD_ADDRESS = "도로명주소"
F_EXCLUSIVE_AREA = "전용면적(㎡)"
F_SUPPLY_AREA = "공급면적(㎡)"
F_ZONE = "용도지역"
F_LAND_AREA = "토지면적(㎡)"
F_HOUSE_PRICE = "주택가격(만원)"
F_PRICE_YEAR = "주택가격기준년도"
F_LAND_SHARE = "대지지분(㎡)"

# 항상 기록하는 필드 (없으면 0)
REQUIRED_ZERO_FIELDS = (F_HOUSE_PRICE, F_PRICE_YEAR, F_LAND_SHARE)

MAIN_BUILDING = "주건축물"
EXCLUSIVE = "전유"
COMMON = "공용"

# 총괄표제부/표제부 공통 개요 필드: (API 필드, 에어테이블 필드)
_OUTLINE_FLOAT_FIELDS = (
    ("platArea", F_SITE_AREA),
    ("totArea", F_TOTAL_AREA),
    ("vlRatEstmTotArea", F_FAR_AREA),
    ("archArea", F_BUILDING_AREA),
    ("bcRat", F_COVERAGE_RATIO),
    ("vlRat", F_FLOOR_AREA_RATIO),
)

# 동 단위 문자열 필드
_BUILDING_TEXT_FIELDS = (
    ("strctCdNm", F_STRUCTURE),
    ("roofCdNm", F_ROOF),
    ("mainPurpsCdNm", F_USAGE),
)

_PARKING_FIELDS = ("indrMechUtcnt", "oudrMechUtcnt", "indrAutoUtcnt", "oudrAutoUtcnt")
_ELEVATOR_FIELDS = ("rideUseElvtCnt", "emgenUseElvtCnt")


class DataMerger:
    """RegistryBundle → 에어테이블 필드 맵 (순수 함수, 내부 상태 없음)"""

    @staticmethod
    def decide_kind(recap: RegistryResult) -> BuildingKind:
        """총괄표제부 totalCount > 0 이면 COMPLEX"""
        return BuildingKind.COMPLEX if recap.total_count > 0 else BuildingKind.SINGLE

    def merge(self, bundle: RegistryBundle, dong: str = "", ho: str = "") -> dict[str, Any]:
        """수집 결과 병합

        Args:
            bundle: 외부 API 수집 결과
            dong: 입력 동
            ho: 입력 호수

        Returns:
            에어테이블 필드 → 값
        """
        result: dict[str, Any] = {}
        kind = self.decide_kind(bundle.recap)

        if kind == BuildingKind.COMPLEX:
            logger.info("총괄표제부 데이터 처리 중 (아파트 등)")
            self._merge_complex(bundle.recap, bundle.title, dong, result)
        else:
            logger.info("총괄표제부 없음, 표제부 데이터 처리 중 (빌라, 다세대 등)")
            self._merge_single(bundle.title, result)

        self._merge_area(bundle.area, result)
        self._merge_land(bundle.land, result)
        self._merge_price(bundle.house_price, bundle.land_share, result)
        return result

    # --- 기준 데이터별 병합 ---

    def _merge_complex(
        self,
        recap: RegistryResult,
        title: RegistryResult,
        dong: str,
        result: dict[str, Any],
    ) -> None:
        """COMPLEX: 총괄표제부(단지) + 일치하는 표제부(동)"""
        if recap.items:
            complex_item = recap.items[0]
            _copy_floats(complex_item, _OUTLINE_FLOAT_FIELDS, result)
            _set_text(result, F_BUILDING_NAME, complex_item.get("bldNm"))
            _set_value(result, F_PARKING, _positive(_safe_int(complex_item.get("totPkngCnt"))))
            _set_value(result, F_APPROVAL_DATE, format_date_iso(complex_item.get("useAprDay")))
            result[F_TOTAL_HOUSEHOLDS] = _household_composite(complex_item)
            _set_value(result, F_MAIN_BUILDINGS, _positive(_safe_int(complex_item.get("mainBldCnt"))))

        building = select_building(title.items, dong)
        if building is not None:
            self._copy_building(building, result)
            # 동별 사용승인일이 있으면 단지 사용승인일을 덮어쓴다
            _set_value(result, F_APPROVAL_DATE, format_date_iso(building.get("useAprDay")))

        if title.items and F_ROAD_ADDRESS not in result:
            _set_text(result, F_ROAD_ADDRESS, title.items[0].get("newPlatPlc"))

    def _merge_single(self, title: RegistryResult, result: dict[str, Any]) -> None:
        """SINGLE: 첫 번째 표제부 항목이 단지/동 정보 모두의 기준"""
        if not title.items:
            return
        main = title.items[0]

        _set_text(result, F_ROAD_ADDRESS, main.get("newPlatPlc"))
        _set_text(result, F_BUILDING_NAME, main.get("bldNm"))
        _copy_floats(main, _OUTLINE_FLOAT_FIELDS, result)
        _set_value(result, F_APPROVAL_DATE, format_date_iso(main.get("useAprDay")))
        self._copy_building(main, result)

        # 건물이 하나뿐이므로 해당동 = 총
        result[F_TOTAL_HOUSEHOLDS] = result[F_DONG_HOUSEHOLDS]

        parking = sum(_safe_int(main.get(key)) or 0 for key in _PARKING_FIELDS)
        if parking > 0:
            result[F_PARKING] = parking

        result[F_MAIN_BUILDINGS] = 1

    @staticmethod
    def _copy_building(item: dict[str, Any], result: dict[str, Any]) -> None:
        """동 단위 필드 (높이, 구조, 층수, 세대수, 승강기)"""
        _set_value(result, F_HEIGHT, _positive(_safe_float(item.get("heit"))))
        for api_key, field in _BUILDING_TEXT_FIELDS:
            _set_text(result, field, item.get(api_key))

        above = _count_str(item.get("grndFlrCnt"))
        below = _count_str(item.get("ugrndFlrCnt"))
        result[F_FLOORS] = f"-{below}/{above}"
        result[F_DONG_HOUSEHOLDS] = _household_composite(item)

        elevators = sum(_safe_int(item.get(key)) or 0 for key in _ELEVATOR_FIELDS)
        if elevators > 0:
            result[F_ELEVATORS] = elevators

    # --- 공통 후처리 ---

    @staticmethod
    def _merge_area(area: RegistryResult | None, result: dict[str, Any]) -> None:
        """전유/공용 면적 합산 (주건축물만)"""
        if area is None or not area.items:
            logger.info("면적 정보 없음")
            return

        exclusive, common = sum_unit_areas(area.items)
        if exclusive is None:
            logger.info("전유면적 없음 (공용=%s㎡)", common)
            return

        result[F_EXCLUSIVE_AREA] = exclusive
        result[F_SUPPLY_AREA] = round(exclusive + common, 4)
        logger.info(
            "최종 면적 정보: 전용=%s㎡, 공용=%s㎡, 공급=%s㎡",
            exclusive, common, result[F_SUPPLY_AREA],
        )

    @staticmethod
    def _merge_land(land: LandCharacteristics, result: dict[str, Any]) -> None:
        if land.zone:
            result[F_ZONE] = land.zone
        if land.land_area:
            result[F_LAND_AREA] = land.land_area

    @staticmethod
    def _merge_price(
        price: HousePrice | None,
        land_share: float | None,
        result: dict[str, Any],
    ) -> None:
        price = price or HousePrice()
        result[F_HOUSE_PRICE] = price.price_manwon
        result[F_PRICE_YEAR] = price.base_year
        result[F_LAND_SHARE] = land_share if land_share is not None else 0


# --- 모듈 수준 유틸리티 ---


def select_building(items: list[dict[str, Any]], dong: str) -> dict[str, Any] | None:
    """표제부 항목 중 대상 동

    동 입력이 있으면 동 번호 일치 항목, 없으면 주건축물 항목.
    """
    if dong and dong.strip():
        return next((item for item in items if designator_matches(item.get("dongNm"), dong)), None)
    return next((item for item in items if item.get("mainAtchGbCdNm") == MAIN_BUILDING), None)


def sum_unit_areas(items: list[dict[str, Any]]) -> tuple[float | None, float]:
    """주건축물 전유/공용 면적 합

    Returns:
        (전유면적 합, 0 이하이면 None / 공용면적 합)
    """
    exclusive = 0.0
    common = 0.0
    for item in items:
        if item.get("mainAtchGbCdNm") != MAIN_BUILDING:
            continue
        area = _safe_float(item.get("area")) or 0.0
        kind = item.get("exposPubuseGbCdNm")
        if kind == EXCLUSIVE:
            exclusive += area
        elif kind == COMMON:
            common += area

    exclusive = round(exclusive, 4)
    common = round(common, 4)
    return (exclusive if exclusive > 0 else None), common


def format_date_iso(value: Any) -> str | None:
    """YYYYMMDD → ISO-8601 (UTC 자정). 형식이 맞지 않으면 None.

    "20150630" → "2015-06-30T00:00:00.000Z"
    """
    if value is None:
        return None
    text = str(value).strip()
    if len(text) != 8 or text == "00000000" or not text.isdigit():
        return None
    try:
        parsed = datetime.strptime(text, "%Y%m%d")
    except ValueError:
        logger.warning("잘못된 날짜 형식: %s", text)
        return None
    return parsed.strftime("%Y-%m-%dT00:00:00.000Z")


def _household_composite(item: dict[str, Any]) -> str:
    """세대/가구/호 복합 문자열 ("120/0/0")"""
    return "/".join(
        _count_str(item.get(key)) for key in ("hhldCnt", "fmlyCnt", "hoCnt")
    )


def _count_str(value: Any) -> str:
    if value is None or str(value).strip() == "":
        return "0"
    return str(value).strip()


def _copy_floats(
    item: dict[str, Any],
    fields: tuple[tuple[str, str], ...],
    result: dict[str, Any],
) -> None:
    for api_key, field in fields:
        _set_value(result, field, _positive(_safe_float(item.get(api_key))))


def _set_value(result: dict[str, Any], field: str, value: Any) -> None:
    if value is not None:
        result[field] = value


def _set_text(result: dict[str, Any], field: str, value: Any) -> None:
    if value is None:
        return
    text = str(value).strip()
    if text:
        result[field] = text


def _safe_float(value: Any) -> float | None:
    """문자열 → float (실패 시 None)"""
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except (ValueError, TypeError):
        return None


def _safe_int(value: Any) -> int | None:
    """문자열 → int (실패 시 None)"""
    number = _safe_float(value)
    return int(number) if number is not None else None


def _positive(number: float | int | None) -> float | int | None:
    """0 이하는 값 없음(None)으로 (대장 미기재 항목이 0으로 내려옴)"""
    if number is None or number <= 0:
        return None
    return number
