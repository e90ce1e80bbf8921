"""
XRPL 모델 변환 테스트

TransactionRequest → xrpl-py 모델, rippled 응답 → 공통 모델
"""

from decimal import Decimal

import pytest
from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.transactions import (
    AccountSet,
    AccountSetAsfFlag,
    Clawback,
    OfferCancel,
    OfferCreate,
    Payment,
    TrustSet,
)
from xrpl.wallet import Wallet

from adapters.models import TokenAmount, TransactionRequest, XrpAmount
from adapters.xrpl.models import (
    LSF_ALLOW_TRUSTLINE_CLAWBACK,
    LSF_DEFAULT_RIPPLE,
    build_transaction,
    format_value,
    parse_account_offer,
    parse_account_settings,
    parse_amount,
    parse_book_offer,
    parse_native_balance,
    parse_trust_line,
    to_xrpl_amount,
)
from core.types import AccountFlag


HEX_CURRENCY = "48414C414C303100000000000000000000000000"


@pytest.fixture(scope="module")
def alice() -> str:
    return Wallet.create().address


@pytest.fixture(scope="module")
def bob() -> str:
    return Wallet.create().address


class TestToXrplAmount:
    """Amount → XRPL Amount 테스트"""

    def test_xrp_in_drops(self) -> None:
        assert to_xrpl_amount(XrpAmount(Decimal("1.5"))) == "1500000"

    def test_xrp_below_drop_rounds_down(self) -> None:
        assert to_xrpl_amount(XrpAmount(Decimal("0.0000019"))) == "1"

    def test_token(self, alice: str) -> None:
        amount = to_xrpl_amount(TokenAmount(HEX_CURRENCY, alice, Decimal("1000")))

        assert isinstance(amount, IssuedCurrencyAmount)
        assert amount.currency == HEX_CURRENCY
        assert amount.value == "1000"

    @pytest.mark.parametrize(
        "value, expected",
        [("1E+3", "1000"), ("0.500", "0.5"), ("0.00000001", "0.00000001")],
    )
    def test_format_value_no_exponent(self, value: str, expected: str) -> None:
        assert format_value(Decimal(value)) == expected


class TestBuildTransaction:
    """build_transaction 테스트"""

    def test_account_set(self, alice: str) -> None:
        tx = build_transaction(TransactionRequest.account_set(alice, AccountFlag.ALLOW_CLAWBACK))

        assert isinstance(tx, AccountSet)
        assert tx.set_flag == AccountSetAsfFlag.ASF_ALLOW_TRUSTLINE_CLAWBACK

    def test_trust_set(self, alice: str, bob: str) -> None:
        tx = build_transaction(TransactionRequest.trust_set(bob, "USD", alice, Decimal("1000000")))

        assert isinstance(tx, TrustSet)
        assert tx.limit_amount.issuer == alice
        assert tx.limit_amount.value == "1000000"

    def test_xrp_payment(self, alice: str, bob: str) -> None:
        tx = build_transaction(TransactionRequest.payment(alice, bob, XrpAmount(Decimal("3.6"))))

        assert isinstance(tx, Payment)
        assert tx.amount == "3600000"
        assert tx.destination == bob

    def test_offer_create_sell(self, alice: str, bob: str) -> None:
        """매도: TakerGets=토큰, TakerPays=XRP"""
        tx = build_transaction(
            TransactionRequest.offer_create(
                bob,
                taker_gets=TokenAmount("USD", alice, Decimal("100")),
                taker_pays=XrpAmount(Decimal("10")),
            )
        )

        assert isinstance(tx, OfferCreate)
        assert isinstance(tx.taker_gets, IssuedCurrencyAmount)
        assert tx.taker_pays == "10000000"

    def test_offer_cancel(self, alice: str) -> None:
        tx = build_transaction(TransactionRequest.offer_cancel(alice, 12))

        assert isinstance(tx, OfferCancel)
        assert tx.offer_sequence == 12

    def test_clawback_holder_in_issuer_field(self, alice: str, bob: str) -> None:
        """Clawback Amount.issuer는 보유자 주소"""
        tx = build_transaction(TransactionRequest.clawback(alice, bob, "USD", Decimal("300")))

        assert isinstance(tx, Clawback)
        assert tx.account == alice
        assert tx.amount.issuer == bob


class TestParse:
    """응답 파싱 테스트"""

    def test_parse_amount(self) -> None:
        assert parse_amount("2500000") == XrpAmount(Decimal("2.5"))
        assert parse_amount({"currency": "USD", "issuer": "rI", "value": "1.25"}) == TokenAmount(
            "USD", "rI", Decimal("1.25")
        )

    def test_parse_trust_line_issuer_view(self) -> None:
        line = parse_trust_line(
            {"account": "rHolder", "balance": "-300", "currency": HEX_CURRENCY, "limit": "0", "limit_peer": "1000000"}
        )

        assert line.counterparty == "rHolder"
        assert line.balance == Decimal("-300")
        assert line.limit == Decimal("0")

    def test_parse_account_offer(self) -> None:
        offer = parse_account_offer(
            "rSeller",
            {
                "seq": 12,
                "taker_gets": {"currency": "USD", "issuer": "rI", "value": "100"},
                "taker_pays": "10000000",
            },
        )

        assert offer.account == "rSeller"
        assert offer.sequence == 12
        assert offer.taker_pays == XrpAmount(Decimal("10"))

    def test_parse_book_offer(self) -> None:
        offer = parse_book_offer(
            {
                "Account": "rBuyer",
                "Sequence": 7,
                "TakerGets": "1000000",
                "TakerPays": {"currency": "USD", "issuer": "rI", "value": "10"},
            }
        )

        assert offer.account == "rBuyer"
        assert offer.taker_gets == XrpAmount(Decimal("1"))
        assert isinstance(offer.taker_pays, TokenAmount)

    def test_parse_native_balance(self) -> None:
        balance = parse_native_balance({"Balance": "100000000"})

        assert balance.is_native is True
        assert balance.value == Decimal("100")

    def test_parse_account_settings(self) -> None:
        both = parse_account_settings({"Flags": LSF_DEFAULT_RIPPLE | LSF_ALLOW_TRUSTLINE_CLAWBACK})
        none = parse_account_settings({})

        assert both.default_ripple is True and both.allow_clawback is True
        assert none.default_ripple is False and none.allow_clawback is False
