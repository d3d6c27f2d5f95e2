"""동/호 조회 전략 테스트"""

from app.services.registry.strategies import (
    BLANK_DONG_PLACEHOLDER,
    UNFILTERED_PAGE_SIZE,
    UnitQuery,
    digits_only,
    land_share_attempts,
    raw_designators,
    unfiltered,
    unit_queries,
)


class TestUnitQueries:
    """원본 → 숫자만 → 필터없음"""

    def test_three_stages(self) -> None:
        queries = unit_queries("102동", "1층201호")
        assert [q.name for q in queries] == ["원본", "숫자만", "필터없음"]
        assert (queries[0].dong, queries[0].ho) == ("102동", "1층201호")
        assert (queries[1].dong, queries[1].ho) == ("102", "1201")
        assert queries[2].post_filter is True
        assert queries[2].num_of_rows == UNFILTERED_PAGE_SIZE

    def test_digit_stage_skipped_when_same(self) -> None:
        """숫자만 입력이면 2단계가 1단계와 같아 생략"""
        queries = unit_queries("102", "201")
        assert [q.name for q in queries] == ["원본", "필터없음"]

    def test_blank_designators(self) -> None:
        queries = unit_queries("", "")
        assert [q.name for q in queries] == ["원본", "필터없음"]

    def test_custom_strategies(self) -> None:
        queries = unit_queries("102동", "201호", strategies=(unfiltered,))
        assert len(queries) == 1
        assert queries[0].post_filter

    def test_strategy_functions(self) -> None:
        assert raw_designators("", "201호") == UnitQuery(name="원본", dong="", ho="201호")
        assert digits_only("가동", "나호") is None
        assert digits_only("", "") is None


class TestUnitQueryParams:
    def test_filtered_params(self) -> None:
        params = UnitQuery(name="원본", dong="102동", ho="201호").params()
        assert params == {"numOfRows": 50, "pageNo": 1, "dongNm": "102동", "hoNm": "201호"}

    def test_blank_dong_param_kept(self) -> None:
        """빈 문자열 동은 파라미터로 보냄 (None만 생략)"""
        params = UnitQuery(name="원본", dong="", ho="201호").params()
        assert params["dongNm"] == ""

    def test_unfiltered_params(self) -> None:
        params = unfiltered("102동", "201호").params()
        assert "dongNm" not in params
        assert "hoNm" not in params
        assert params["numOfRows"] == 100


class TestLandShareAttempts:
    def test_dong_and_ho_variants(self) -> None:
        attempts = land_share_attempts("102동", "201호")
        assert attempts == [
            ("102동", "201호"),
            ("102동", "201"),
            ("102", "201호"),
            ("102", "201"),
            ("", "201호"),
        ]

    def test_blank_dong_adds_placeholder(self) -> None:
        attempts = land_share_attempts("", "201호")
        assert attempts == [
            ("", "201호"),
            ("", "201"),
            (BLANK_DONG_PLACEHOLDER, "201호"),
            (BLANK_DONG_PLACEHOLDER, "201"),
        ]

    def test_last_resort_without_dong(self) -> None:
        """마지막 시도는 동 없이"""
        attempts = land_share_attempts("A동", "301")
        assert attempts[-1] == ("", "301")
