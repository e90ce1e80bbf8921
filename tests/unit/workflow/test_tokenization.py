"""
workflow/tokenization.py 테스트

발행자 설정/발행 멱등성 및 중간 실패 후 재실행
"""

from decimal import Decimal

import pytest

from adapters.mock.ledger_client import MockLedgerClient
from core.domain.errors import LedgerRejected, LedgerTransportError, PreconditionError
from core.types import AccountFlag, LedgerAccount, TransactionType
from workflow.tokenization import TokenizationEngine


CURRENCY = "48414C414C303100000000000000000000000000"


class TestConfigureIssuer:
    """TokenizationEngine.configure_issuer 테스트"""

    @pytest.mark.asyncio
    async def test_sets_required_flags(self, ledger: MockLedgerClient) -> None:
        """DefaultRipple + Clawback 허용 설정"""
        issuer = ledger.add_account()

        async with ledger.session() as session:
            tx_hashes = await TokenizationEngine().configure_issuer(session, issuer)
            settings = await session.get_account_settings(issuer.address)

        assert len(tx_hashes) == 2
        assert settings.default_ripple is True
        assert settings.allow_clawback is True

    @pytest.mark.asyncio
    async def test_idempotent(self, ledger: MockLedgerClient) -> None:
        """이미 설정된 플래그는 다시 제출하지 않음"""
        issuer = ledger.add_account()
        engine = TokenizationEngine()

        async with ledger.session() as session:
            await engine.configure_issuer(session, issuer)
            second = await engine.configure_issuer(session, issuer)

        assert second == []
        assert len(ledger.submitted_of(TransactionType.ACCOUNT_SET)) == 2

    @pytest.mark.asyncio
    async def test_partially_configured(self, ledger: MockLedgerClient) -> None:
        """빠진 플래그만 제출"""
        issuer = ledger.add_account()
        ledger.set_flag(issuer.address, AccountFlag.DEFAULT_RIPPLE)

        async with ledger.session() as session:
            await TokenizationEngine().configure_issuer(session, issuer)

        requests = ledger.submitted_of(TransactionType.ACCOUNT_SET)
        assert [r.set_flag for r in requests] == [AccountFlag.ALLOW_CLAWBACK]

    @pytest.mark.asyncio
    async def test_without_clawback(self, ledger: MockLedgerClient) -> None:
        """enable_clawback=False"""
        issuer = ledger.add_account()

        async with ledger.session() as session:
            await TokenizationEngine(enable_clawback=False).configure_issuer(session, issuer)

        requests = ledger.submitted_of(TransactionType.ACCOUNT_SET)
        assert [r.set_flag for r in requests] == [AccountFlag.DEFAULT_RIPPLE]

    @pytest.mark.asyncio
    async def test_rejected(self, ledger: MockLedgerClient) -> None:
        """AccountSet 거부 → LedgerRejected"""
        issuer = ledger.add_account()
        ledger.reject(TransactionType.ACCOUNT_SET)

        async with ledger.session() as session:
            with pytest.raises(LedgerRejected):
                await TokenizationEngine().configure_issuer(session, issuer)


class TestMint:
    """TokenizationEngine.mint 테스트"""

    @pytest.mark.asyncio
    async def test_mint_total_supply(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        """재무 계정이 총 발행량 보유"""
        async with ledger.session() as session:
            result = await TokenizationEngine().mint(
                session, issuer, treasury, CURRENCY, Decimal("1000"), instrument_code="HALAL01"
            )

        assert ledger.token_balance(treasury.address, issuer.address, CURRENCY) == Decimal("1000")
        assert result.trust_set_tx_hash is not None
        assert result.payment_tx_hash is not None
        assert result.already_minted is False
        assert result.instrument_code == "HALAL01"

    @pytest.mark.asyncio
    async def test_second_mint_is_noop(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        """다시 호출해도 추가 지급 없음"""
        engine = TokenizationEngine()

        async with ledger.session() as session:
            await engine.mint(session, issuer, treasury, CURRENCY, Decimal("1000"))
            second = await engine.mint(session, issuer, treasury, CURRENCY, Decimal("1000"))

        assert second.already_minted is True
        assert len(ledger.submitted_of(TransactionType.PAYMENT)) == 1
        assert ledger.token_balance(treasury.address, issuer.address, CURRENCY) == Decimal("1000")

    @pytest.mark.asyncio
    async def test_resume_after_payment_failure(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        """신뢰선 후 지급 실패 → 재실행 시 지급만 수행"""
        engine = TokenizationEngine()
        ledger.fail_transport(TransactionType.PAYMENT, account=issuer.address)

        async with ledger.session() as session:
            with pytest.raises(LedgerTransportError):
                await engine.mint(session, issuer, treasury, CURRENCY, Decimal("1000"))
            result = await engine.mint(session, issuer, treasury, CURRENCY, Decimal("1000"))

        assert result.trust_set_tx_hash is None
        assert result.payment_tx_hash is not None
        assert len(ledger.submitted_of(TransactionType.TRUST_SET)) == 1

    @pytest.mark.asyncio
    async def test_only_remaining_supply_paid(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        """이미 유통 중인 수량은 제외하고 지급"""
        holder = ledger.add_account()
        ledger.set_trust_line(treasury.address, issuer.address, CURRENCY, limit=Decimal("1000"))
        ledger.set_trust_line(holder.address, issuer.address, CURRENCY, balance=Decimal("400"))

        async with ledger.session() as session:
            await TokenizationEngine().mint(session, issuer, treasury, CURRENCY, Decimal("1000"))

        payment = ledger.submitted_of(TransactionType.PAYMENT)[0]
        assert payment.amount is not None
        assert payment.amount.value == Decimal("600")

    @pytest.mark.asyncio
    async def test_trust_set_rejected(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        """TrustSet 거부 → 발행 중단"""
        ledger.reject(TransactionType.TRUST_SET, result_code="tecNO_LINE_INSUF_RESERVE")

        async with ledger.session() as session:
            with pytest.raises(LedgerRejected) as exc_info:
                await TokenizationEngine().mint(session, issuer, treasury, CURRENCY, Decimal("1000"))

        assert exc_info.value.result_code == "tecNO_LINE_INSUF_RESERVE"
        assert ledger.submitted_of(TransactionType.PAYMENT) == []

    @pytest.mark.asyncio
    async def test_same_account_rejected(self, ledger: MockLedgerClient, issuer: LedgerAccount) -> None:
        """발행자와 재무 계정이 같으면 PreconditionError"""
        async with ledger.session() as session:
            with pytest.raises(PreconditionError):
                await TokenizationEngine().mint(session, issuer, issuer, CURRENCY, Decimal("1000"))

    @pytest.mark.asyncio
    async def test_non_positive_supply(
        self,
        ledger: MockLedgerClient,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
    ) -> None:
        async with ledger.session() as session:
            with pytest.raises(PreconditionError):
                await TokenizationEngine().mint(session, issuer, treasury, CURRENCY, Decimal("0"))
