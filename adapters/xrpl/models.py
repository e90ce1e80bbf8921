"""
XRPL 응답/요청 <-> 공통 모델 변환

xrpl-py 모델과 rippled JSON 응답을 adapters.models의 표준 모델로 변환.
모든 금액/수량은 문자열에서 Decimal로 변환 (XRP는 drops → XRP 단위).
"""

from decimal import Decimal
from typing import Any

from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.transactions import (
    AccountSet,
    AccountSetAsfFlag,
    Clawback,
    OfferCancel,
    OfferCreate,
    Payment,
    Transaction,
    TrustSet,
)
from xrpl.utils import drops_to_xrp, xrp_to_drops

from adapters.models import (
    AccountSettings,
    Amount,
    Balance,
    Offer,
    TokenAmount,
    TransactionRequest,
    TrustLine,
    XrpAmount,
    quantize_xrp,
)
from core.constants import LedgerConstants
from core.types import AccountFlag, TransactionType


# AccountRoot Flags (https://xrpl.org/docs/references/protocol/ledger-data/ledger-entry-types/accountroot)
LSF_DEFAULT_RIPPLE = 0x00800000
LSF_ALLOW_TRUSTLINE_CLAWBACK = 0x80000000

_ASF_FLAGS: dict[AccountFlag, AccountSetAsfFlag] = {
    AccountFlag.DEFAULT_RIPPLE: AccountSetAsfFlag.ASF_DEFAULT_RIPPLE,
    AccountFlag.ALLOW_CLAWBACK: AccountSetAsfFlag.ASF_ALLOW_TRUSTLINE_CLAWBACK,
}


# =============================================================================
# 요청 → xrpl-py 모델
# =============================================================================

def to_xrpl_amount(amount: Amount) -> str | IssuedCurrencyAmount:
    """Amount → XRPL Amount (XRP는 drops 문자열)"""
    if isinstance(amount, XrpAmount):
        return xrp_to_drops(quantize_xrp(amount.value))
    return IssuedCurrencyAmount(
        currency=amount.currency,
        issuer=amount.issuer,
        value=format_value(amount.value),
    )


def format_value(value: Decimal) -> str:
    """토큰 수량 문자열 (지수 표기 없이)"""
    return format(value.normalize(), "f")


def build_transaction(request: TransactionRequest) -> Transaction:
    """TransactionRequest → xrpl-py Transaction 모델

    Args:
        request: 원장 중립 요청

    Returns:
        서명 전 Transaction (Fee/Sequence는 submit_and_wait에서 autofill)
    """
    if request.tx_type == TransactionType.ACCOUNT_SET:
        assert request.set_flag is not None
        return AccountSet(
            account=request.account,
            set_flag=_ASF_FLAGS[request.set_flag],
        )

    if request.tx_type == TransactionType.TRUST_SET:
        assert request.limit_amount is not None
        return TrustSet(
            account=request.account,
            limit_amount=to_xrpl_amount(request.limit_amount),
        )

    if request.tx_type == TransactionType.PAYMENT:
        assert request.amount is not None and request.destination is not None
        return Payment(
            account=request.account,
            destination=request.destination,
            amount=to_xrpl_amount(request.amount),
        )

    if request.tx_type == TransactionType.OFFER_CREATE:
        assert request.taker_gets is not None and request.taker_pays is not None
        return OfferCreate(
            account=request.account,
            taker_gets=to_xrpl_amount(request.taker_gets),
            taker_pays=to_xrpl_amount(request.taker_pays),
        )

    if request.tx_type == TransactionType.OFFER_CANCEL:
        assert request.offer_sequence is not None
        return OfferCancel(
            account=request.account,
            offer_sequence=request.offer_sequence,
        )

    if request.tx_type == TransactionType.CLAWBACK:
        assert isinstance(request.amount, TokenAmount)
        return Clawback(
            account=request.account,
            amount=to_xrpl_amount(request.amount),
        )

    raise ValueError(f"Unsupported transaction type: {request.tx_type}")


# =============================================================================
# 응답 → 공통 모델
# =============================================================================

def parse_amount(data: str | dict[str, Any]) -> Amount:
    """XRPL Amount → Amount

    XRPL Amount 형식:
    - XRP: "10000000" (drops 문자열)
    - 토큰: {"currency": "USD", "issuer": "r...", "value": "100"}
    """
    if isinstance(data, str):
        return XrpAmount(value=drops_to_xrp(data))
    return TokenAmount(
        currency=data["currency"],
        issuer=data["issuer"],
        value=Decimal(data["value"]),
    )


def parse_trust_line(data: dict[str, Any]) -> TrustLine:
    """account_lines 항목 → TrustLine

    account_lines 응답 항목 예시:
    {
        "account": "rHolder...",
        "balance": "-300",
        "currency": "48414C414C303100000000000000000000000000",
        "limit": "0",
        "limit_peer": "1000000",
        "no_ripple": false,
        "quality_in": 0,
        "quality_out": 0
    }
    """
    return TrustLine(
        currency=data["currency"],
        counterparty=data["account"],
        limit=Decimal(data.get("limit", "0")),
        balance=Decimal(data["balance"]),
    )


def parse_account_offer(account: str, data: dict[str, Any]) -> Offer:
    """account_offers 항목 → Offer

    account_offers 응답 항목 예시:
    {
        "flags": 0,
        "quality": "0.1",
        "seq": 12,
        "taker_gets": {"currency": "...", "issuer": "r...", "value": "100"},
        "taker_pays": "10000000"
    }
    """
    return Offer(
        account=account,
        sequence=int(data["seq"]),
        taker_gets=parse_amount(data["taker_gets"]),
        taker_pays=parse_amount(data["taker_pays"]),
    )


def parse_book_offer(data: dict[str, Any]) -> Offer:
    """book_offers 항목 → Offer

    book_offers 응답 항목 예시 (Offer ledger entry):
    {
        "Account": "rSeller...",
        "Sequence": 7,
        "TakerGets": {"currency": "...", "issuer": "r...", "value": "100"},
        "TakerPays": "10000000",
        "quality": "100000"
    }
    """
    return Offer(
        account=data["Account"],
        sequence=int(data["Sequence"]),
        taker_gets=parse_amount(data["TakerGets"]),
        taker_pays=parse_amount(data["TakerPays"]),
    )


def parse_native_balance(account_data: dict[str, Any]) -> Balance:
    """account_info.account_data → XRP Balance"""
    return Balance(
        currency=LedgerConstants.NATIVE_CURRENCY,
        value=drops_to_xrp(str(account_data["Balance"])),
    )


def parse_token_balance(line: TrustLine) -> Balance:
    """보유 계정 관점 TrustLine → 토큰 Balance"""
    return Balance(currency=line.currency, value=line.balance, issuer=line.counterparty)


def parse_account_settings(account_data: dict[str, Any]) -> AccountSettings:
    """account_info.account_data.Flags → AccountSettings"""
    flags = int(account_data.get("Flags", 0))
    return AccountSettings(
        default_ripple=bool(flags & LSF_DEFAULT_RIPPLE),
        allow_clawback=bool(flags & LSF_ALLOW_TRUSTLINE_CLAWBACK),
    )
