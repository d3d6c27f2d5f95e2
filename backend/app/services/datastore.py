"""집합건물 레코드 저장소

처리 대상 레코드 조회(뷰 기준)와 병합 결과 부분 업데이트를
통일된 인터페이스로 추상화한다. 운영 구현은 에어테이블 REST API.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx

from app.config import settings
from app.models.unit import UnitRecord

logger = logging.getLogger(__name__)

AIRTABLE_API = "https://api.airtable.com/v0"

# 에어테이블 필드명
FIELD_ADDRESS = "지번 주소"
FIELD_DONG = "동"
FIELD_HO = "호수"

# 테이블 스키마와 맞지 않아 재시도해도 해결되지 않는 오류 유형
_SCHEMA_ERROR_TYPES = {
    "UNKNOWN_FIELD_NAME",
    "INVALID_VALUE_FOR_COLUMN",
    "INVALID_PERMISSIONS",
    "INVALID_PERMISSIONS_OR_MODEL_NOT_FOUND",
    "CANNOT_UPDATE_COMPUTED_FIELD",
}


class DatastoreError(Exception):
    """저장소 호출 실패"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class DatastoreSchemaError(DatastoreError):
    """테이블 스키마/권한 불일치 (필드 없음, 타입 불일치, 권한 없음)"""

    def __init__(self, message: str, error_type: str = "", status_code: int | None = None) -> None:
        self.error_type = error_type
        super().__init__(message, status_code=status_code)


class UnitStore(ABC):
    """집합건물 레코드 저장소 추상 클래스"""

    @abstractmethod
    async def list_records(
        self, view: str | None = None, max_records: int | None = None
    ) -> list[UnitRecord]:
        """뷰의 레코드 목록 (뷰 정렬 순서 유지)

        Args:
            view: 뷰 이름 (None이면 설정값)
            max_records: 최대 조회 건수 (None이면 전체)
        """
        ...

    @abstractmethod
    async def update_record(self, record_id: str, fields: dict[str, Any]) -> None:
        """부분 업데이트 (전달한 필드만 변경)

        Raises:
            DatastoreSchemaError: 필드/권한 불일치
            DatastoreError: 그 외 실패
        """
        ...


class AirtableStore(UnitStore):
    """에어테이블 REST API 저장소"""

    PAGE_SIZE = 100

    def __init__(
        self,
        access_token: str | None = None,
        base_id: str | None = None,
        table: str | None = None,
        view: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._access_token = access_token if access_token is not None else settings.AIRTABLE_ACCESS_TOKEN
        self._base_id = base_id if base_id is not None else settings.AIRTABLE_BASE_ID
        self._table = table if table is not None else settings.AIRTABLE_TABLE
        self._view = view if view is not None else settings.AIRTABLE_VIEW
        self._timeout = timeout or settings.REQUEST_TIMEOUT
        self._transport = transport

    @property
    def table_url(self) -> str:
        return f"{AIRTABLE_API}/{self._base_id}/{quote(self._table, safe='')}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def list_records(
        self, view: str | None = None, max_records: int | None = None
    ) -> list[UnitRecord]:
        params: dict[str, Any] = {"view": view or self._view, "pageSize": self.PAGE_SIZE}
        if max_records is not None:
            params["maxRecords"] = max_records

        records: list[UnitRecord] = []
        async with self._client() as client:
            while True:
                response = await client.get(self.table_url, params=params)
                data = _check_response(response)
                records.extend(_to_unit_record(raw) for raw in data.get("records", []))

                offset = data.get("offset")
                if not offset or (max_records is not None and len(records) >= max_records):
                    break
                params["offset"] = offset

        if max_records is not None:
            records = records[:max_records]
        logger.info("에어테이블 레코드 조회: %d건 (뷰: %s)", len(records), params["view"])
        return records

    async def update_record(self, record_id: str, fields: dict[str, Any]) -> None:
        payload = {"fields": {key: value for key, value in fields.items() if value is not None}}
        async with self._client() as client:
            response = await client.patch(f"{self.table_url}/{record_id}", json=payload)
        _check_response(response)
        logger.info("에어테이블 업데이트 완료: %s (%d개 필드)", record_id, len(payload["fields"]))


# --- 모듈 수준 유틸리티 ---


def _to_unit_record(raw: dict[str, Any]) -> UnitRecord:
    fields = raw.get("fields") or {}
    return UnitRecord(
        id=raw["id"],
        address=_as_text(fields.get(FIELD_ADDRESS)),
        dong=_as_text(fields.get(FIELD_DONG)),
        ho=_as_text(fields.get(FIELD_HO)),
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _check_response(response: httpx.Response) -> dict[str, Any]:
    """응답 상태 확인 → JSON 본문

    Raises:
        DatastoreSchemaError: 스키마/권한 오류 (403, 404, 422 중 해당 유형)
        DatastoreError: 그 외 HTTP 오류
    """
    if response.is_success:
        try:
            return response.json()
        except ValueError as e:
            raise DatastoreError(f"에어테이블 응답 파싱 실패: {e}", response.status_code) from e

    error_type, message = _parse_error(response)
    detail = f"에어테이블 오류 {response.status_code} {error_type}: {message}"
    if error_type in _SCHEMA_ERROR_TYPES:
        raise DatastoreSchemaError(detail, error_type=error_type, status_code=response.status_code)
    raise DatastoreError(detail, status_code=response.status_code)


def _parse_error(response: httpx.Response) -> tuple[str, str]:
    """에어테이블 오류 본문 → (유형, 메시지)

    {"error": {"type": ..., "message": ...}} 또는 {"error": "NOT_FOUND"}
    """
    try:
        body = response.json()
    except ValueError:
        return "", response.text[:200]

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("type") or ""), str(error.get("message") or "")
    if isinstance(error, str):
        return error, ""
    return "", response.text[:200]
