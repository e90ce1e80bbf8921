"""
workflow/wallet_registry.py 테스트

역할 바인딩 최초 생성, 재사용, 생성 경쟁 처리
"""

import asyncio
import logging

import pytest

from adapters.mock.ledger_client import MockLedgerClient
from adapters.mock.workflow_store import MockWorkflowStore
from core.domain.errors import LedgerTransportError, PreconditionError
from core.types import LedgerAccount, WalletRole
from workflow.wallet_registry import WalletRoleRegistry


class LateWinnerStore(MockWorkflowStore):
    """조회와 저장 사이에 다른 프로세스가 먼저 바인딩을 저장한 상황"""

    def __init__(self, winner: LedgerAccount):
        super().__init__()
        self.winner = winner

    async def save_role_binding(self, role: str, account: LedgerAccount) -> LedgerAccount:
        self.state.role_bindings.setdefault(role, self.winner)
        return await super().save_role_binding(role, account)


class TestEnsure:
    """WalletRoleRegistry.ensure 테스트"""

    @pytest.mark.asyncio
    async def test_creates_on_first_request(
        self,
        ledger: MockLedgerClient,
        store: MockWorkflowStore,
    ) -> None:
        """최초 요청 시 계정 생성 + 저장"""
        registry = WalletRoleRegistry(ledger, store)

        account = await registry.ensure(WalletRole.ISSUER)

        assert account.address in ledger.state.accounts
        assert store.state.role_bindings["ISSUER"] == account
        assert ledger.state.sessions_opened == ledger.state.sessions_closed == 1

    @pytest.mark.asyncio
    async def test_returns_existing_binding(
        self,
        ledger: MockLedgerClient,
        store: MockWorkflowStore,
    ) -> None:
        """두 번째 요청은 원장 호출 없이 기존 바인딩 반환"""
        registry = WalletRoleRegistry(ledger, store)

        first = await registry.ensure(WalletRole.ISSUER)
        second = await registry.ensure(WalletRole.ISSUER)

        assert first == second
        assert ledger.state.account_counter == 1
        assert ledger.state.sessions_opened == 1

    @pytest.mark.asyncio
    async def test_uses_given_session(
        self,
        ledger: MockLedgerClient,
        store: MockWorkflowStore,
    ) -> None:
        """열린 세션이 주어지면 새 세션을 열지 않음"""
        registry = WalletRoleRegistry(ledger, store)

        async with ledger.session() as session:
            await registry.ensure(WalletRole.TREASURY, session)

        assert ledger.state.sessions_opened == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_fund_once(
        self,
        ledger: MockLedgerClient,
        store: MockWorkflowStore,
    ) -> None:
        """같은 역할 동시 요청 → 계정 1개만 생성"""
        registry = WalletRoleRegistry(ledger, store)

        accounts = await asyncio.gather(*(registry.ensure(WalletRole.ISSUER) for _ in range(5)))

        assert len({a.address for a in accounts}) == 1
        assert ledger.state.account_counter == 1
        assert store.state.binding_attempts == 1

    @pytest.mark.asyncio
    async def test_race_loser_returns_winner(
        self,
        ledger: MockLedgerClient,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """경쟁에서 진 쪽은 에러 없이 승자의 바인딩 반환"""
        winner = ledger.add_account()
        registry = WalletRoleRegistry(ledger, LateWinnerStore(winner))

        with caplog.at_level(logging.WARNING, logger="workflow.wallet_registry"):
            account = await registry.ensure(WalletRole.ISSUER)

        assert account == winner
        assert ledger.state.account_counter == 2
        assert "ISSUER" in caplog.text
        assert winner.seed not in caplog.text

    @pytest.mark.asyncio
    async def test_faucet_unavailable(self, store: MockWorkflowStore) -> None:
        """faucet 없는 네트워크에서 최초 생성 → PreconditionError"""
        registry = WalletRoleRegistry(MockLedgerClient(allow_faucet=False), store)

        with pytest.raises(PreconditionError):
            await registry.ensure(WalletRole.ISSUER)

        assert store.state.role_bindings == {}

    @pytest.mark.asyncio
    async def test_connect_failure(self, ledger: MockLedgerClient, store: MockWorkflowStore) -> None:
        """원장 연결 실패 → 바인딩 없음"""
        ledger.state.connect_fails = True
        registry = WalletRoleRegistry(ledger, store)

        with pytest.raises(LedgerTransportError):
            await registry.ensure(WalletRole.ISSUER)

        assert await registry.get(WalletRole.ISSUER) is None


class TestEnsureAll:
    """WalletRoleRegistry.ensure_all 테스트"""

    @pytest.mark.asyncio
    async def test_distinct_accounts(self, ledger: MockLedgerClient, store: MockWorkflowStore) -> None:
        """ISSUER와 TREASURY는 서로 다른 계정"""
        issuer, treasury = await WalletRoleRegistry(ledger, store).ensure_all()

        assert issuer.address != treasury.address
        assert set(store.state.role_bindings) == {"ISSUER", "TREASURY"}
