"""집합건물 레코드 데이터 모델

에어테이블 레코드(UnitRecord), 건축물대장/Vworld 응답 정규화 결과,
레코드 처리 결과와 작업 실행 결과를 담는 Pydantic 모델.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class UnitRecord(BaseModel):
    """처리 대상 집합건물 레코드 (에어테이블 뷰에서 매 실행마다 새로 조회)"""

    id: str  # 에어테이블 레코드 ID
    address: str = ""  # 지번 주소 (예: "강남구 역삼동 123-4")
    dong: str = ""  # 동 (예: "102동", 없으면 "")
    ho: str = ""  # 호수 (예: "1층201호")


class BuildingKind(str, Enum):
    """병합 기준 데이터 구분"""

    COMPLEX = "COMPLEX"  # 총괄표제부 있음 (아파트 단지 등)
    SINGLE = "SINGLE"  # 표제부만 있음 (빌라, 다세대 등)


class RegistryResult(BaseModel):
    """건축물대장 API 응답 정규화 결과 (평탄한 item 목록)"""

    total_count: int = 0
    items: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def has_items(self) -> bool:
        return bool(self.items)


class LandCharacteristics(BaseModel):
    """Vworld 토지특성"""

    zone: str | None = None  # 용도지역 (prposArea1Nm)
    land_area: float | None = None  # 토지면적 ㎡ (lndpclAr)


class HousePrice(BaseModel):
    """주택가격 (가격 없으면 0/0)"""

    price_manwon: int = 0  # 주택가격 (만원)
    base_year: int = 0  # 기준년도


class RegistryBundle(BaseModel):
    """레코드 1건에 대한 외부 API 수집 결과 묶음 (DataMerger 입력)"""

    recap: RegistryResult = Field(default_factory=RegistryResult)  # 총괄표제부
    title: RegistryResult = Field(default_factory=RegistryResult)  # 표제부
    area: RegistryResult | None = None  # 전유공용면적 (None = 어느 단계에서도 데이터 없음)
    land: LandCharacteristics = Field(default_factory=LandCharacteristics)
    house_price: HousePrice = Field(default_factory=HousePrice)
    land_share: float | None = None  # 대지지분 (None = 조회 실패)


class RecordStatus(str, Enum):
    """레코드 처리 결과"""

    WRITTEN = "WRITTEN"  # 에어테이블 업데이트 성공
    FAILED = "FAILED"  # 실패 (재시도 이력 증가)
    SKIPPED = "SKIPPED"  # 재시도 한도 초과로 건너뜀


class RecordResult(BaseModel):
    """레코드 1건 처리 결과"""

    record_id: str
    status: RecordStatus
    error: str = ""
    permanent: bool = False
    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status == RecordStatus.WRITTEN

    @property
    def skipped(self) -> bool:
        return self.status == RecordStatus.SKIPPED


class RetryState(BaseModel):
    """레코드별 재시도 이력"""

    attempts: int = 0
    last_attempt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    failed: bool = False


class JobResult(BaseModel):
    """작업 1회 실행 결과"""

    total: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    newly_failed: list[str] = Field(default_factory=list)  # 이번 실행에서 한도에 도달한 레코드 ID
    already_running: bool = False
    error: str | None = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @property
    def processable(self) -> int:
        return self.total - self.skipped

    @property
    def success_rate(self) -> float | None:
        """처리 가능 레코드 대비 성공률 (%)"""
        if self.processable <= 0:
            return None
        return self.success / self.processable * 100
