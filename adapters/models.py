"""
어댑터 공통 데이터 모델

원장 RPC 응답/요청을 표준화한 도메인 모델.
모든 금액/수량은 Decimal 타입 사용 (XRP는 drops가 아닌 XRP 단위).
"""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Union

from core.constants import LedgerConstants
from core.domain.errors import LedgerRejected
from core.types import AccountFlag, TransactionType


@dataclass(frozen=True)
class TokenAmount:
    """발행 토큰 수량

    Attributes:
        currency: 통화 식별자 (3자리 표준 코드 또는 40자리 hex)
        issuer: 발행자 주소 (Clawback에서는 보유자 주소)
        value: 수량
    """

    currency: str
    issuer: str
    value: Decimal


@dataclass(frozen=True)
class XrpAmount:
    """네이티브 XRP 수량 (XRP 단위)"""

    value: Decimal


Amount = Union[TokenAmount, XrpAmount]


def quantize_xrp(value: Decimal) -> Decimal:
    """XRP 수량을 drop 단위(소수 6자리)로 내림

    원장은 drop 미만 단위를 표현할 수 없으므로 지급 직전에 적용
    """
    return value.quantize(LedgerConstants.XRP_QUANTUM, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class Balance:
    """잔고 정보

    Attributes:
        currency: 통화 (네이티브면 XRP)
        value: 잔고
        issuer: 발행자 주소 (네이티브면 None)
    """

    currency: str
    value: Decimal
    issuer: str | None = None

    @property
    def is_native(self) -> bool:
        """네이티브 XRP 여부"""
        return self.issuer is None and self.currency == LedgerConstants.NATIVE_CURRENCY


@dataclass(frozen=True)
class TrustLine:
    """신뢰선 (조회한 계정 관점)

    Attributes:
        currency: 통화 식별자
        counterparty: 상대 계정 주소
        limit: 조회 계정이 설정한 한도
        balance: 부호 있는 잔고 (조회 계정 관점)
    """

    currency: str
    counterparty: str
    limit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class Offer:
    """원장 오퍼 (원시 형태)

    taker_gets: 오퍼 생성자가 내놓는 것
    taker_pays: 오퍼 생성자가 받고자 하는 것
    """

    account: str
    sequence: int
    taker_gets: Amount
    taker_pays: Amount


@dataclass(frozen=True)
class RawOrderBook:
    """원시 호가창

    asks: 토큰을 내놓고 XRP를 원하는 오퍼
    bids: XRP를 내놓고 토큰을 원하는 오퍼
    """

    asks: list[Offer]
    bids: list[Offer]


@dataclass(frozen=True)
class AccountSettings:
    """계정 플래그 상태 (발행자 설정 멱등성 확인용)"""

    default_ripple: bool = False
    allow_clawback: bool = False

    def has(self, flag: AccountFlag) -> bool:
        """플래그 설정 여부"""
        if flag == AccountFlag.DEFAULT_RIPPLE:
            return self.default_ripple
        return self.allow_clawback


@dataclass(frozen=True)
class SubmitResult:
    """트랜잭션 제출 결과

    Attributes:
        tx_type: 트랜잭션 유형
        accepted: 검증된 원장에서 tesSUCCESS로 적용되었는지 여부
        result_code: 원장 결과 코드
        tx_hash: 트랜잭션 해시
    """

    tx_type: str
    accepted: bool
    result_code: str
    tx_hash: str | None = None

    def raise_for_result(self) -> "SubmitResult":
        """거부된 경우 LedgerRejected 발생, 아니면 자신 반환

        Raises:
            LedgerRejected: accepted=False
        """
        if not self.accepted:
            raise LedgerRejected(
                result_code=self.result_code,
                tx_type=self.tx_type,
                tx_hash=self.tx_hash,
            )
        return self


@dataclass(frozen=True)
class TransactionRequest:
    """트랜잭션 요청

    session.submit에 전달되는 원장 중립 요청.
    유형별 필수 필드는 팩토리 메서드로 채움.

    Attributes:
        tx_type: 트랜잭션 유형
        account: 서명 계정 주소
        amount: Payment/Clawback 수량
        destination: Payment 수신 주소
        limit_amount: TrustSet 한도
        taker_gets: OfferCreate 내놓는 수량
        taker_pays: OfferCreate 받고자 하는 수량
        offer_sequence: OfferCancel 대상 시퀀스
        set_flag: AccountSet 설정 플래그
    """

    tx_type: TransactionType
    account: str
    amount: Amount | None = None
    destination: str | None = None
    limit_amount: TokenAmount | None = None
    taker_gets: Amount | None = None
    taker_pays: Amount | None = None
    offer_sequence: int | None = None
    set_flag: AccountFlag | None = None

    def __post_init__(self) -> None:
        """유효성 검증"""
        if not self.account:
            raise ValueError("account is required")

        if self.tx_type == TransactionType.PAYMENT:
            if self.amount is None or self.destination is None:
                raise ValueError("amount and destination are required for Payment")
            if self.amount.value <= Decimal("0"):
                raise ValueError("payment amount must be positive")

        elif self.tx_type == TransactionType.CLAWBACK:
            if not isinstance(self.amount, TokenAmount):
                raise ValueError("token amount is required for Clawback")
            if self.amount.value <= Decimal("0"):
                raise ValueError("clawback amount must be positive")

        elif self.tx_type == TransactionType.TRUST_SET:
            if self.limit_amount is None:
                raise ValueError("limit_amount is required for TrustSet")

        elif self.tx_type == TransactionType.OFFER_CREATE:
            if self.taker_gets is None or self.taker_pays is None:
                raise ValueError("taker_gets and taker_pays are required for OfferCreate")
            if self.taker_gets.value <= Decimal("0") or self.taker_pays.value <= Decimal("0"):
                raise ValueError("offer amounts must be positive")

        elif self.tx_type == TransactionType.OFFER_CANCEL:
            if self.offer_sequence is None:
                raise ValueError("offer_sequence is required for OfferCancel")

        elif self.tx_type == TransactionType.ACCOUNT_SET:
            if self.set_flag is None:
                raise ValueError("set_flag is required for AccountSet")

    @classmethod
    def account_set(cls, account: str, flag: AccountFlag) -> "TransactionRequest":
        """계정 플래그 설정"""
        return cls(tx_type=TransactionType.ACCOUNT_SET, account=account, set_flag=flag)

    @classmethod
    def trust_set(
        cls,
        account: str,
        currency: str,
        issuer: str,
        limit: Decimal,
    ) -> "TransactionRequest":
        """신뢰선 설정 (account가 issuer를 limit만큼 신뢰)"""
        return cls(
            tx_type=TransactionType.TRUST_SET,
            account=account,
            limit_amount=TokenAmount(currency=currency, issuer=issuer, value=limit),
        )

    @classmethod
    def payment(cls, account: str, destination: str, amount: Amount) -> "TransactionRequest":
        """지급 (토큰 또는 XRP)"""
        return cls(
            tx_type=TransactionType.PAYMENT,
            account=account,
            destination=destination,
            amount=amount,
        )

    @classmethod
    def offer_create(
        cls,
        account: str,
        taker_gets: Amount,
        taker_pays: Amount,
    ) -> "TransactionRequest":
        """지정가 오퍼 생성"""
        return cls(
            tx_type=TransactionType.OFFER_CREATE,
            account=account,
            taker_gets=taker_gets,
            taker_pays=taker_pays,
        )

    @classmethod
    def offer_cancel(cls, account: str, offer_sequence: int) -> "TransactionRequest":
        """오퍼 취소"""
        return cls(
            tx_type=TransactionType.OFFER_CANCEL,
            account=account,
            offer_sequence=offer_sequence,
        )

    @classmethod
    def clawback(
        cls,
        issuer: str,
        holder: str,
        currency: str,
        value: Decimal,
    ) -> "TransactionRequest":
        """토큰 회수

        Clawback의 Amount.issuer 필드에는 보유자 주소가 들어감
        """
        return cls(
            tx_type=TransactionType.CLAWBACK,
            account=issuer,
            amount=TokenAmount(currency=currency, issuer=holder, value=value),
        )
