"""재시도 이력 상태 전이 테스트"""

import pytest

from app.services.datastore import DatastoreError, DatastoreSchemaError
from app.services.retry_ledger import RetryLedger, is_permanent_error


@pytest.fixture()
def ledger(clock) -> RetryLedger:
    return RetryLedger(max_attempts=5, reset_days=7, clock=clock)


class TestRetryTransitions:
    """신규 → 재시도 중 → 한도 초과 → (리셋) 신규"""

    def test_fresh_record(self, ledger: RetryLedger) -> None:
        assert ledger.can_attempt("rec1")
        assert ledger.attempts("rec1") == 0
        assert "rec1" not in ledger

    def test_exhausted_after_max_failures(self, ledger: RetryLedger) -> None:
        for i in range(4):
            ledger.record_outcome("rec1", success=False)
            assert ledger.can_attempt("rec1"), f"{i + 1}회 실패 후에는 재시도 가능"
        ledger.record_outcome("rec1", success=False)

        assert not ledger.can_attempt("rec1")
        assert ledger.is_exhausted("rec1")
        assert ledger.attempts("rec1") == 5

    def test_success_deletes_entry(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        ledger.record_outcome("rec1", success=False)
        assert ledger.record_outcome("rec1", success=True) is None
        assert "rec1" not in ledger
        assert ledger.can_attempt("rec1")

    def test_permanent_failure_exhausts_immediately(self, ledger: RetryLedger) -> None:
        state = ledger.record_outcome("rec1", success=False, permanent=True)
        assert state.attempts == 5
        assert state.failed
        assert not ledger.can_attempt("rec1")

    def test_permanent_after_some_failures(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        ledger.record_outcome("rec1", success=False, permanent=True)
        assert not ledger.can_attempt("rec1")


class TestReset:
    def test_reset_after_window(self, ledger: RetryLedger, clock) -> None:
        """마지막 시도 후 reset_days 경과 → 항목 삭제, 재시도 가능"""
        ledger.record_outcome("rec1", success=False, permanent=True)
        clock.advance(days=6, hours=23)
        assert not ledger.can_attempt("rec1")

        clock.advance(hours=1)
        assert ledger.can_attempt("rec1")
        assert "rec1" not in ledger

    def test_retrying_entry_not_reset_by_time(self, ledger: RetryLedger, clock) -> None:
        """한도 미만 항목은 시간이 지나도 그대로"""
        ledger.record_outcome("rec1", success=False)
        clock.advance(days=30)
        assert ledger.can_attempt("rec1")
        assert ledger.attempts("rec1") == 1

    def test_manual_reset_single(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        ledger.record_outcome("rec2", success=False)
        assert ledger.reset("rec1") == 1
        assert ledger.reset("rec1") == 0
        assert "rec2" in ledger

    def test_manual_reset_all(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        ledger.record_outcome("rec2", success=False, permanent=True)
        assert ledger.reset() == 2
        assert len(ledger) == 0

    def test_snapshot_is_copy(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        snapshot = ledger.snapshot()
        snapshot["rec1"].attempts = 99
        assert ledger.attempts("rec1") == 1

    def test_exhausted_ids(self, ledger: RetryLedger) -> None:
        ledger.record_outcome("rec1", success=False)
        ledger.record_outcome("rec2", success=False, permanent=True)
        assert ledger.exhausted_ids() == {"rec2"}


class TestPermanentError:
    """영구 오류 판별"""

    def test_certificate_error_scenario(self, ledger: RetryLedger) -> None:
        """'certificate' 포함 오류 → 영구, 1회 시도 후 재시도 불가"""
        error = Exception("unable to verify the first certificate")
        assert is_permanent_error(error)

        ledger.record_outcome("rec1", success=False, permanent=is_permanent_error(error))
        assert not ledger.can_attempt("rec1")

    @pytest.mark.parametrize(
        "message",
        [
            "잘못된 주소 형식: 엉터리",
            "주소 없음: 입력값 없음",
            "Unknown field name: \"전용면적\"",
            "Field \"해당동 총층수\" cannot accept the provided value",
            "SSL: WRONG_VERSION_NUMBER",
            "Hostname/IP does not match certificate's altnames",
        ],
    )
    def test_denylist(self, message: str) -> None:
        assert is_permanent_error(Exception(message))

    def test_transient_errors(self) -> None:
        assert not is_permanent_error(Exception("ReadTimeout"))
        assert not is_permanent_error(DatastoreError("에어테이블 오류 503"))

    def test_schema_error_by_type(self) -> None:
        """스키마 오류는 메시지와 무관하게 영구"""
        assert is_permanent_error(DatastoreSchemaError("에어테이블 오류 422", error_type="X"))

    def test_string_input(self) -> None:
        assert is_permanent_error("Insufficient permissions to update")
