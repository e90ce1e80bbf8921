"""
워크플로우 결과 모델

호출자 대상 연산은 모두 OperationResult로 감싸서 반환.
실패는 자유 텍스트가 아닌 ErrorKind로 분류되어 호출자가 분기 가능.

모든 금액/수량은 Decimal 타입 사용.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from core.domain.errors import LedgerRejected, WorkflowError
from core.types import ErrorKind, OfferSide, RedemptionStep


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# 결과 봉투 (Envelope)
# =============================================================================

@dataclass(frozen=True)
class OperationError:
    """구조화된 실패 정보

    Attributes:
        kind: 실패 분류
        message: 사람이 읽을 메시지
        result_code: 원장 결과 코드 (LEDGER_REJECTED인 경우)
    """

    kind: ErrorKind
    message: str
    result_code: str | None = None

    @classmethod
    def from_exception(cls, error: Exception) -> "OperationError":
        """예외 → OperationError 변환

        ValueError는 잘못된 입력(PRECONDITION), 그 외 WorkflowError 계열이 아닌
        예외는 TRANSPORT로 분류 (원장/네트워크 경계에서 올라온 예상 밖 에러)
        """
        if isinstance(error, LedgerRejected):
            return cls(
                kind=ErrorKind.LEDGER_REJECTED,
                message=error.message,
                result_code=error.result_code,
            )
        if isinstance(error, WorkflowError):
            return cls(kind=error.kind, message=error.message)
        if isinstance(error, ValueError):
            return cls(kind=ErrorKind.PRECONDITION, message=str(error))
        return cls(kind=ErrorKind.TRANSPORT, message=str(error) or type(error).__name__)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        result: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.result_code is not None:
            result["resultCode"] = self.result_code
        return result


@dataclass(frozen=True)
class OperationResult:
    """호출자 대상 연산 결과

    success=True이면 data, False이면 error가 채워짐.
    warning은 성공이지만 부분 실패가 있는 경우 (예: 일부 보유자 상환 실패).
    """

    success: bool
    data: Any = None
    error: OperationError | None = None
    warning: OperationError | None = None

    @classmethod
    def ok(cls, data: Any, warning: OperationError | None = None) -> "OperationResult":
        """성공 결과 생성"""
        return cls(success=True, data=data, warning=warning)

    @classmethod
    def fail(cls, error: Exception | OperationError, data: Any = None) -> "OperationResult":
        """실패 결과 생성"""
        if isinstance(error, Exception):
            error = OperationError.from_exception(error)
        return cls(success=False, data=data, error=error)

    @property
    def error_kind(self) -> ErrorKind | None:
        """실패 분류 (성공이면 None)"""
        return self.error.kind if self.error else None

    def to_dict(self) -> dict[str, Any]:
        """{success, data?, error?} 봉투로 변환"""
        envelope: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            envelope["data"] = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        if self.error is not None:
            envelope["error"] = self.error.to_dict()
        if self.warning is not None:
            envelope["warning"] = self.warning.to_dict()
        return envelope


# =============================================================================
# 토큰화 / 마켓 결과
# =============================================================================

@dataclass(frozen=True)
class MintResult:
    """토큰 발행 결과

    Attributes:
        instrument_code: 상품 코드
        currency_id: 원장 통화 식별자
        total_supply: 총 발행량
        issuer_address: 발행자 주소
        treasury_address: 재무 계정 주소
        trust_set_tx_hash: 신뢰선 트랜잭션 해시 (이미 존재해 건너뛴 경우 None)
        payment_tx_hash: 발행 지급 트랜잭션 해시 (이미 발행되어 건너뛴 경우 None)
        already_minted: 이전 실행에서 이미 발행 완료된 상태였는지 여부
    """

    instrument_code: str
    currency_id: str
    total_supply: Decimal
    issuer_address: str
    treasury_address: str
    trust_set_tx_hash: str | None = None
    payment_tx_hash: str | None = None
    already_minted: bool = False
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "instrumentCode": self.instrument_code,
            "currencyId": self.currency_id,
            "totalSupply": str(self.total_supply),
            "issuer": self.issuer_address,
            "treasury": self.treasury_address,
            "trustSetTxHash": self.trust_set_tx_hash,
            "paymentTxHash": self.payment_tx_hash,
            "alreadyMinted": self.already_minted,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class OfferResult:
    """오퍼 제출 결과"""

    side: OfferSide
    account: str
    currency_id: str
    issuer_address: str
    token_amount: Decimal
    price_per_token: Decimal
    settlement_total: Decimal
    tx_hash: str
    executed_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "type": self.side.value,
            "account": self.account,
            "currencyId": self.currency_id,
            "issuer": self.issuer_address,
            "tokenAmount": str(self.token_amount),
            "pricePerToken": str(self.price_per_token),
            "totalXrp": str(self.settlement_total),
            "txHash": self.tx_hash,
            "executedAt": self.executed_at.isoformat(),
        }


@dataclass(frozen=True)
class OrderBookEntry:
    """정규화된 호가 항목

    price_per_token = settlement_amount / token_amount
    """

    account: str
    token_amount: Decimal
    settlement_amount: Decimal
    price_per_token: Decimal
    sequence: int

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "account": self.account,
            "tokenAmount": str(self.token_amount),
            "xrpAmount": str(self.settlement_amount),
            "pricePerToken": str(self.price_per_token),
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class OrderBook:
    """양방향 호가창

    asks: 가격 오름차순 (최우선 매도호가가 첫 번째)
    bids: 가격 내림차순 (최우선 매수호가가 첫 번째)
    """

    currency_id: str
    issuer_address: str
    asks: list[OrderBookEntry]
    bids: list[OrderBookEntry]
    retrieved_at: datetime = field(default_factory=_now)

    @property
    def best_ask(self) -> OrderBookEntry | None:
        """최우선 매도호가"""
        return self.asks[0] if self.asks else None

    @property
    def best_bid(self) -> OrderBookEntry | None:
        """최우선 매수호가"""
        return self.bids[0] if self.bids else None

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "currencyId": self.currency_id,
            "issuer": self.issuer_address,
            "asks": [entry.to_dict() for entry in self.asks],
            "bids": [entry.to_dict() for entry in self.bids],
            "askCount": len(self.asks),
            "bidCount": len(self.bids),
            "retrievedAt": self.retrieved_at.isoformat(),
        }


@dataclass(frozen=True)
class CancelSummary:
    """계정 전체 오퍼 취소 결과 (오퍼 단위 best-effort)"""

    address: str
    cancelled_sequences: list[int]
    failed_sequences: list[int]

    @property
    def cancelled_count(self) -> int:
        return len(self.cancelled_sequences)

    @property
    def failed_count(self) -> int:
        return len(self.failed_sequences)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "address": self.address,
            "cancelledCount": self.cancelled_count,
            "failedCount": self.failed_count,
            "cancelledSequences": list(self.cancelled_sequences),
            "failedSequences": list(self.failed_sequences),
        }


# =============================================================================
# 상환 결과
# =============================================================================

@dataclass(frozen=True)
class HolderSnapshot:
    """상환 시점 보유자 스냅샷 (저장하지 않음)"""

    address: str
    token_balance: Decimal


@dataclass(frozen=True)
class HolderResult:
    """보유자 단위 상환 결과

    실패 시 failed_step과 error가 채워짐.
    clawback 성공 후 payment 실패한 경우 clawback_tx_hash가 남아 있으므로
    운영자가 미지급분을 식별할 수 있음.
    """

    holder: str
    success: bool
    token_balance: Decimal
    tokens_redeemed: Decimal = Decimal("0")
    cash_paid: Decimal = Decimal("0")
    orders_cancelled: int = 0
    clawback_tx_hash: str | None = None
    payment_tx_hash: str | None = None
    failed_step: RedemptionStep | None = None
    error: OperationError | None = None

    @property
    def is_unpaid_clawback(self) -> bool:
        """토큰은 회수됐지만 지급은 실패한 상태"""
        return not self.success and self.clawback_tx_hash is not None

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        result: dict[str, Any] = {
            "holder": self.holder,
            "success": self.success,
            "tokenBalance": str(self.token_balance),
            "tokensRedeemed": str(self.tokens_redeemed),
            "xrpPaid": str(self.cash_paid),
            "ordersCancelled": self.orders_cancelled,
            "clawbackTxHash": self.clawback_tx_hash,
            "paymentTxHash": self.payment_tx_hash,
        }
        if self.failed_step is not None:
            result["failedStep"] = self.failed_step.value
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


@dataclass(frozen=True)
class RedemptionReport:
    """상환 실행 보고서 (실행마다 새로 생성, 반환 후 불변)

    합계는 성공한 보유자만 집계하므로
    total_xrp_paid == total_tokens_redeemed * payout_per_token (drop 내림 범위 내).
    재무 계정의 미판매분은 보유자가 아니므로 results/합계에 포함하지 않고
    treasury_* 필드에 따로 기록.
    """

    currency_id: str
    issuer_address: str
    treasury_address: str
    payout_per_token: Decimal
    results: tuple[HolderResult, ...] = ()
    treasury_reclaimed: Decimal = Decimal("0")
    treasury_clawback_tx_hash: str | None = None
    treasury_reclaim_error: OperationError | None = None
    executed_at: datetime = field(default_factory=_now)

    @property
    def holders_processed(self) -> int:
        return len(self.results)

    @property
    def holders_successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def holders_failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_tokens_redeemed(self) -> Decimal:
        return sum((r.tokens_redeemed for r in self.results if r.success), Decimal("0"))

    @property
    def total_xrp_paid(self) -> Decimal:
        return sum((r.cash_paid for r in self.results if r.success), Decimal("0"))

    @property
    def partial_failure(self) -> bool:
        """일부 보유자 실패 또는 미판매분 회수 실패"""
        return self.holders_failed > 0 or self.treasury_reclaim_error is not None

    @property
    def unpaid_holders(self) -> list[HolderResult]:
        """토큰 회수 후 지급 실패한 보유자 목록"""
        return [r for r in self.results if r.is_unpaid_clawback]

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        result: dict[str, Any] = {
            "type": "redemption_all",
            "currencyId": self.currency_id,
            "issuer": self.issuer_address,
            "treasury": self.treasury_address,
            "xrpPayoutPerToken": str(self.payout_per_token),
            "holdersProcessed": self.holders_processed,
            "holdersSuccessful": self.holders_successful,
            "holdersFailed": self.holders_failed,
            "totalTokensRedeemed": str(self.total_tokens_redeemed),
            "totalXrpPaid": str(self.total_xrp_paid),
            "results": [r.to_dict() for r in self.results],
            "treasuryReclaimed": str(self.treasury_reclaimed),
            "treasuryClawbackTxHash": self.treasury_clawback_tx_hash,
            "executedAt": self.executed_at.isoformat(),
        }
        if self.treasury_reclaim_error is not None:
            result["treasuryReclaimError"] = self.treasury_reclaim_error.to_dict()
        return result
