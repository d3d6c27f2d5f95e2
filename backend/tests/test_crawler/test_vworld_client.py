"""Vworld 토지특성/대지지분 클라이언트 단위 테스트 (mock 기반)"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.models.unit import LandCharacteristics
from app.services.crawler.throttle import RequestThrottle
from app.services.crawler.vworld_client import (
    LAND_CHARACTERISTICS_URL,
    LAND_SHARE_URL,
    VworldClient,
)

PNU = "1168010100100070003"

SAMPLE_LAND_XML = """<?xml version="1.0" encoding="UTF-8"?>
<response>
    <fields>
        <field>
            <pnu>1168010100100070003</pnu>
            <prposArea1Nm>제2종일반주거지역</prposArea1Nm>
            <lndpclAr>512.3</lndpclAr>
            <stdrYear>2024</stdrYear>
        </field>
        <field>
            <prposArea1Nm>일반상업지역</prposArea1Nm>
            <lndpclAr>1.0</lndpclAr>
        </field>
    </fields>
    <totalCount>2</totalCount>
</response>"""


def _response(*, text: str = "", json_data=None) -> httpx.Response:
    request = httpx.Request("GET", "https://api.vworld.kr/test")
    if json_data is not None:
        return httpx.Response(200, json=json_data, request=request)
    return httpx.Response(200, text=text, request=request)


def _share(rate: str, key: str = "ldaregVOList", rate_key: str = "ldaQotaRate") -> dict:
    return {key: {"totalCount": "1", key: [{rate_key: rate}]}}


EMPTY_SHARE = {"ldaregVOList": {"totalCount": "0", "ldaregVOList": []}}


@pytest.fixture
def client():
    return VworldClient(api_key="test_key", throttle=RequestThrottle(0))


class TestLandCharacteristics:
    def test_parse_xml(self):
        """첫 번째 field 사용"""
        result = VworldClient._parse_land_characteristics(SAMPLE_LAND_XML)
        assert result == LandCharacteristics(zone="제2종일반주거지역", land_area=512.3)

    def test_parse_xml_no_field(self):
        result = VworldClient._parse_land_characteristics("<response><fields/></response>")
        assert result == LandCharacteristics()

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_fetch(self, mock_get, client):
        mock_get.return_value = _response(text=SAMPLE_LAND_XML)

        result = asyncio.run(client.fetch_land_characteristics(PNU))

        assert result.zone == "제2종일반주거지역"
        url, params = mock_get.call_args.args
        assert url == LAND_CHARACTERISTICS_URL
        assert params["pnu"] == PNU
        assert params["format"] == "xml"
        assert "stdrYear" in params

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_broken_xml(self, mock_get, client):
        mock_get.return_value = _response(text="<response><fields>")
        assert asyncio.run(client.fetch_land_characteristics(PNU)) == LandCharacteristics()

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_http_error(self, mock_get, client):
        mock_get.side_effect = httpx.ConnectError("refused")
        assert asyncio.run(client.fetch_land_characteristics(PNU)) == LandCharacteristics()


class TestParseLandShare:
    def test_ldareg_shape(self):
        assert VworldClient._parse_land_share(_share("23.45/1500.2")) == 23.45

    def test_buld_rlnm_shape(self):
        data = _share("12.5/800", key="buldRlnmVOList", rate_key="landShareRate")
        assert VworldClient._parse_land_share(data) == 12.5

    def test_single_item_dict(self):
        data = {"ldaregVOList": {"totalCount": 1, "ldaregVOList": {"ldaQotaRate": "7/100"}}}
        assert VworldClient._parse_land_share(data) == 7.0

    def test_zero_total(self):
        assert VworldClient._parse_land_share(EMPTY_SHARE) is None

    @pytest.mark.parametrize("data", [None, {}, {"ldaregVOList": "x"}, _share("")])
    def test_unparseable(self, data):
        assert VworldClient._parse_land_share(data) is None


class TestFetchLandShare:
    """동/호 변형 순차 시도"""

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_first_variant(self, mock_get, client):
        mock_get.return_value = _response(json_data=_share("23.45/1500"))

        share = asyncio.run(client.fetch_land_share(PNU, "102동", "201호"))

        assert share == 23.45
        url, params = mock_get.call_args.args
        assert url == LAND_SHARE_URL
        assert params["buldDongNm"] == "102동"
        assert params["buldHoNm"] == "201호"

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_later_variant(self, mock_get, client):
        """원본 실패 → 숫자 변형에서 성공"""
        mock_get.side_effect = [
            _response(json_data=EMPTY_SHARE),
            _response(json_data=_share("10/500")),
        ]

        share = asyncio.run(client.fetch_land_share(PNU, "102동", "201호"))

        assert share == 10.0
        params = mock_get.call_args.args[1]
        assert params["buldDongNm"] == "102동"
        assert params["buldHoNm"] == "201"

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_blank_dong_param_omitted(self, mock_get, client):
        mock_get.return_value = _response(json_data=_share("5/100"))
        asyncio.run(client.fetch_land_share(PNU, "", "201호"))
        params = mock_get.call_args.args[1]
        assert "buldDongNm" not in params

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_all_fail(self, mock_get, client):
        """모든 변형 실패 → None, 마지막은 동 없이"""
        mock_get.return_value = _response(json_data=EMPTY_SHARE)

        assert asyncio.run(client.fetch_land_share(PNU, "102동", "201호")) is None
        assert mock_get.call_count == 5
        assert "buldDongNm" not in mock_get.call_args.args[1]

    @patch.object(VworldClient, "_get", new_callable=AsyncMock)
    def test_errors_continue(self, mock_get, client):
        mock_get.side_effect = [httpx.ReadTimeout("timeout"), _response(json_data=_share("3/10"))]
        assert asyncio.run(client.fetch_land_share(PNU, "102동", "201호")) == 3.0
