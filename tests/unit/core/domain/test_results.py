"""
core/domain/results.py, errors.py 테스트

예외 분류와 결과 봉투 직렬화
"""

from decimal import Decimal

from core.domain.errors import LedgerRejected, LedgerTransportError, PreconditionError
from core.domain.results import (
    HolderResult,
    OperationError,
    OperationResult,
    RedemptionReport,
)
from core.types import ErrorKind, RedemptionStep


class TestOperationError:
    """OperationError.from_exception 테스트"""

    def test_precondition(self) -> None:
        error = OperationError.from_exception(PreconditionError("bad state"))

        assert error.kind == ErrorKind.PRECONDITION
        assert error.message == "bad state"

    def test_transport(self) -> None:
        error = OperationError.from_exception(LedgerTransportError("connection refused"))

        assert error.kind == ErrorKind.TRANSPORT

    def test_ledger_rejected_keeps_result_code(self) -> None:
        """원장 결과 코드 보존"""
        error = OperationError.from_exception(LedgerRejected("tecNO_PERMISSION", "Clawback"))

        assert error.kind == ErrorKind.LEDGER_REJECTED
        assert error.result_code == "tecNO_PERMISSION"
        assert "Clawback" in error.message

    def test_value_error_is_precondition(self) -> None:
        """잘못된 입력(ValueError) → PRECONDITION"""
        error = OperationError.from_exception(ValueError("amount must be positive"))

        assert error.kind == ErrorKind.PRECONDITION

    def test_unexpected_is_transport(self) -> None:
        error = OperationError.from_exception(ConnectionResetError())

        assert error.kind == ErrorKind.TRANSPORT
        assert error.message == "ConnectionResetError"


class TestOperationResult:
    """OperationResult 봉투 테스트"""

    def test_ok_envelope(self) -> None:
        result = OperationResult.ok({"address": "rA"})

        assert result.to_dict() == {"success": True, "data": {"address": "rA"}}
        assert result.error_kind is None

    def test_fail_envelope(self) -> None:
        result = OperationResult.fail(LedgerRejected("tecPATH_DRY", "Payment"))

        envelope = result.to_dict()
        assert envelope["success"] is False
        assert envelope["error"]["kind"] == "LEDGER_REJECTED"
        assert envelope["error"]["resultCode"] == "tecPATH_DRY"
        assert "data" not in envelope

    def test_warning_envelope(self) -> None:
        warning = OperationError(kind=ErrorKind.PARTIAL_BATCH, message="1 of 2 holders failed")

        envelope = OperationResult.ok({}, warning=warning).to_dict()

        assert envelope["warning"] == {"kind": "PARTIAL_BATCH", "message": "1 of 2 holders failed"}


class TestRedemptionReport:
    """RedemptionReport 집계 테스트"""

    def test_totals_count_successful_only(self) -> None:
        """합계는 성공한 보유자만"""
        report = RedemptionReport(
            currency_id="ABC",
            issuer_address="rIssuer",
            treasury_address="rTreasury",
            payout_per_token=Decimal("0.012"),
            results=(
                HolderResult(
                    holder="rA",
                    success=True,
                    token_balance=Decimal("700"),
                    tokens_redeemed=Decimal("700"),
                    cash_paid=Decimal("8.4"),
                ),
                HolderResult(
                    holder="rB",
                    success=False,
                    token_balance=Decimal("300"),
                    tokens_redeemed=Decimal("300"),
                    clawback_tx_hash="ABCD",
                    failed_step=RedemptionStep.PAYMENT,
                    error=OperationError(kind=ErrorKind.LEDGER_REJECTED, message="x", result_code="tecUNFUNDED_PAYMENT"),
                ),
            ),
        )

        assert report.holders_processed == 2
        assert report.holders_failed == 1
        assert report.partial_failure is True
        assert report.total_tokens_redeemed == Decimal("700")
        assert report.total_xrp_paid == Decimal("8.4")
        assert [r.holder for r in report.unpaid_holders] == ["rB"]

        data = report.to_dict()
        assert data["holdersSuccessful"] == 1
        assert data["results"][1]["failedStep"] == "payment"
        assert data["results"][1]["error"]["resultCode"] == "tecUNFUNDED_PAYMENT"

    def test_empty(self) -> None:
        report = RedemptionReport("ABC", "rIssuer", "rTreasury", Decimal("1"))

        assert report.holders_processed == 0
        assert report.partial_failure is False
        assert report.to_dict()["totalXrpPaid"] == "0"

    def test_treasury_reclaim_outside_totals(self) -> None:
        """미판매분 회수량은 보유자 합계에 섞이지 않음"""
        report = RedemptionReport(
            currency_id="ABC",
            issuer_address="rIssuer",
            treasury_address="rTreasury",
            payout_per_token=Decimal("0.012"),
            results=(
                HolderResult(
                    holder="rA",
                    success=True,
                    token_balance=Decimal("300"),
                    tokens_redeemed=Decimal("300"),
                    cash_paid=Decimal("3.6"),
                ),
            ),
            treasury_reclaimed=Decimal("700"),
            treasury_clawback_tx_hash="FFFF",
        )

        assert report.holders_processed == 1
        assert report.total_tokens_redeemed == Decimal("300")
        assert report.total_xrp_paid == report.total_tokens_redeemed * report.payout_per_token
        assert report.partial_failure is False

        data = report.to_dict()
        assert data["treasuryReclaimed"] == "700"
        assert data["treasuryClawbackTxHash"] == "FFFF"
        assert "treasuryReclaimError" not in data

    def test_treasury_reclaim_error_is_partial_failure(self) -> None:
        report = RedemptionReport(
            "ABC",
            "rIssuer",
            "rTreasury",
            Decimal("1"),
            treasury_reclaim_error=OperationError(kind=ErrorKind.TRANSPORT, message="timeout"),
        )

        assert report.holders_failed == 0
        assert report.partial_failure is True
        assert report.to_dict()["treasuryReclaimError"]["kind"] == "TRANSPORT"
