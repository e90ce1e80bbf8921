"""
Mock 원장 클라이언트

테스트용 메모리 내 원장.
ILedgerClient, ILedgerSession Protocol 준수.

신뢰선 잔고는 보유자 관점(양수)으로 저장하고,
발행자 관점으로 조회하면 부호를 뒤집어(음수) 반환 (실제 원장과 동일).
오퍼는 서로 체결되지 않음 (호가창에 그대로 남음).
"""

import asyncio
import hashlib
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import AsyncIterator

from adapters.models import (
    AccountSettings,
    Balance,
    Offer,
    RawOrderBook,
    SubmitResult,
    TokenAmount,
    TransactionRequest,
    TrustLine,
    XrpAmount,
)
from core.constants import Defaults, LedgerConstants
from core.domain.errors import LedgerTransportError, PreconditionError
from core.types import AccountFlag, LedgerAccount, TransactionType


# (보유자, 발행자, 통화)
LineKey = tuple[str, str, str]


@dataclass
class MockTrustLine:
    """보유자 관점 신뢰선"""

    limit: Decimal
    balance: Decimal = Decimal("0")


@dataclass
class FailureRule:
    """트랜잭션 실패 주입 규칙

    account가 None이면 모든 계정에 적용.
    times가 None이면 무제한.
    """

    tx_type: TransactionType
    account: str | None = None
    result_code: str = "tecNO_PERMISSION"
    transport: bool = False
    times: int | None = 1

    def matches(self, request: TransactionRequest) -> bool:
        if self.times is not None and self.times <= 0:
            return False
        if request.tx_type != self.tx_type:
            return False
        return self.account is None or self.account == request.account


@dataclass
class MockLedgerState:
    """Mock 원장 상태 (메모리 내 저장)"""

    # 계정 (address -> seed)
    accounts: dict[str, str] = field(default_factory=dict)

    # XRP 잔고 (address -> XRP)
    xrp_balances: dict[str, Decimal] = field(default_factory=dict)

    # 계정 플래그
    settings: dict[str, AccountSettings] = field(default_factory=dict)

    # 신뢰선 ((holder, issuer, currency) -> MockTrustLine)
    trust_lines: dict[LineKey, MockTrustLine] = field(default_factory=dict)

    # 오픈 오퍼 ((account, sequence) -> Offer)
    offers: dict[tuple[str, int], Offer] = field(default_factory=dict)

    # 계정별 다음 시퀀스
    sequences: dict[str, int] = field(default_factory=dict)

    # 제출된 트랜잭션 (검증/거부 모두 포함, 통신 실패 제외)
    submitted: list[TransactionRequest] = field(default_factory=list)

    # 실패 주입 규칙
    failure_rules: list[FailureRule] = field(default_factory=list)

    # 시뮬레이션 옵션
    connect_fails: bool = False
    submit_delay: float = 0.0

    # 카운터
    account_counter: int = 0
    tx_counter: int = 0
    sessions_opened: int = 0
    sessions_closed: int = 0
    in_flight: int = 0
    max_in_flight: int = 0


class MockLedgerSession:
    """Mock 원장 세션

    ILedgerSession Protocol 구현.
    """

    def __init__(self, state: MockLedgerState, allow_faucet: bool = True):
        self.state = state
        self.allow_faucet = allow_faucet

    # -------------------------------------------------------------------------
    # 계정
    # -------------------------------------------------------------------------

    async def fund_account(self) -> LedgerAccount:
        """새 계정 생성 (100 XRP)"""
        if not self.allow_faucet:
            raise PreconditionError("faucet funding is not available on this network")
        await asyncio.sleep(0)
        return create_account(self.state)

    # -------------------------------------------------------------------------
    # 트랜잭션
    # -------------------------------------------------------------------------

    async def submit(self, request: TransactionRequest, seed: str) -> SubmitResult:
        """트랜잭션 적용 (실패 주입 규칙 우선)"""
        state = self.state
        if state.accounts.get(request.account) != seed:
            raise PreconditionError(
                f"seed does not belong to signing account {request.account}"
            )

        state.in_flight += 1
        state.max_in_flight = max(state.max_in_flight, state.in_flight)
        try:
            await asyncio.sleep(state.submit_delay)

            rule = next((r for r in state.failure_rules if r.matches(request)), None)
            if rule is not None and rule.times is not None:
                rule.times -= 1
            if rule is not None and rule.transport:
                raise LedgerTransportError(f"{request.tx_type.value} submission failed: connection lost")

            state.submitted.append(request)
            state.tx_counter += 1
            tx_hash = hashlib.sha256(f"mock-tx-{state.tx_counter}".encode()).hexdigest().upper()

            result_code = rule.result_code if rule is not None else _apply(state, request)
            return SubmitResult(
                tx_type=request.tx_type.value,
                accepted=result_code == LedgerConstants.SUCCESS_CODE,
                result_code=result_code,
                tx_hash=tx_hash,
            )
        finally:
            state.in_flight -= 1

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get_balances(self, address: str) -> list[Balance]:
        if address not in self.state.accounts:
            return []
        balances = [
            Balance(
                currency=LedgerConstants.NATIVE_CURRENCY,
                value=self.state.xrp_balances.get(address, Decimal("0")),
            )
        ]
        for line in await self.get_trust_lines(address):
            if line.balance != 0:
                balances.append(
                    Balance(currency=line.currency, value=line.balance, issuer=line.counterparty)
                )
        return balances

    async def get_trust_lines(self, address: str) -> list[TrustLine]:
        lines: list[TrustLine] = []
        for (holder, issuer, currency), line in self.state.trust_lines.items():
            if holder == address:
                lines.append(
                    TrustLine(currency=currency, counterparty=issuer, limit=line.limit, balance=line.balance)
                )
            elif issuer == address:
                lines.append(
                    TrustLine(
                        currency=currency,
                        counterparty=holder,
                        limit=Decimal("0"),
                        balance=-line.balance,
                    )
                )
        return lines

    async def get_open_offers(self, address: str) -> list[Offer]:
        return [
            offer
            for (account, _), offer in sorted(self.state.offers.items())
            if account == address
        ]

    async def get_order_book(
        self,
        currency_id: str,
        issuer_address: str,
        limit: int = Defaults.ORDER_BOOK_LIMIT,
    ) -> RawOrderBook:
        def is_token(amount: object) -> bool:
            return (
                isinstance(amount, TokenAmount)
                and amount.currency == currency_id
                and amount.issuer == issuer_address
            )

        offers = list(self.state.offers.values())
        asks = [o for o in offers if is_token(o.taker_gets) and isinstance(o.taker_pays, XrpAmount)]
        bids = [o for o in offers if isinstance(o.taker_gets, XrpAmount) and is_token(o.taker_pays)]
        return RawOrderBook(asks=asks[:limit], bids=bids[:limit])

    async def get_account_settings(self, address: str) -> AccountSettings:
        return self.state.settings.get(address, AccountSettings())


class MockLedgerClient:
    """Mock 원장 클라이언트

    ILedgerClient Protocol 구현.
    메모리 내 상태 관리로 테스트 시나리오 지원.

    사용 예시:
    ```python
    ledger = MockLedgerClient()
    holder = ledger.add_account()

    # 보유자 신뢰선/잔고 설정
    ledger.set_trust_line(holder.address, issuer.address, currency_id, Decimal("300"))

    # Clawback 거부 시뮬레이션
    ledger.reject(TransactionType.CLAWBACK, account=issuer.address)

    async with ledger.session() as session:
        lines = await session.get_trust_lines(issuer.address)
    ```
    """

    def __init__(self, state: MockLedgerState | None = None, allow_faucet: bool = True):
        self.state = state or MockLedgerState()
        self.allow_faucet = allow_faucet

    @asynccontextmanager
    async def session(self) -> AsyncIterator[MockLedgerSession]:
        if self.state.connect_fails:
            raise LedgerTransportError("cannot connect to mock ledger")
        self.state.sessions_opened += 1
        try:
            yield MockLedgerSession(self.state, allow_faucet=self.allow_faucet)
        finally:
            self.state.sessions_closed += 1

    # -------------------------------------------------------------------------
    # 상태 조작 메서드 (테스트용)
    # -------------------------------------------------------------------------

    def add_account(self, xrp: Decimal = Decimal("100")) -> LedgerAccount:
        """펀딩된 계정 추가"""
        account = create_account(self.state)
        self.state.xrp_balances[account.address] = xrp
        return account

    def set_flag(self, address: str, flag: AccountFlag) -> None:
        """계정 플래그 직접 설정"""
        _set_flag(self.state, address, flag)

    def set_trust_line(
        self,
        holder: str,
        issuer: str,
        currency: str,
        balance: Decimal = Decimal("0"),
        limit: Decimal = Defaults.HOLDER_TRUST_LIMIT,
    ) -> None:
        """신뢰선 직접 설정 (보유자 관점 잔고)"""
        self.state.trust_lines[(holder, issuer, currency)] = MockTrustLine(limit=limit, balance=balance)

    def add_offer(self, account: str, taker_gets: TokenAmount | XrpAmount, taker_pays: TokenAmount | XrpAmount) -> int:
        """오퍼 직접 추가 (시퀀스 반환)"""
        sequence = _next_sequence(self.state, account)
        self.state.offers[(account, sequence)] = Offer(
            account=account,
            sequence=sequence,
            taker_gets=taker_gets,
            taker_pays=taker_pays,
        )
        return sequence

    def reject(
        self,
        tx_type: TransactionType,
        account: str | None = None,
        result_code: str = "tecNO_PERMISSION",
        times: int | None = 1,
    ) -> None:
        """트랜잭션 원장 거부 주입"""
        self.state.failure_rules.append(
            FailureRule(tx_type=tx_type, account=account, result_code=result_code, times=times)
        )

    def fail_transport(
        self,
        tx_type: TransactionType,
        account: str | None = None,
        times: int | None = 1,
    ) -> None:
        """트랜잭션 통신 실패 주입"""
        self.state.failure_rules.append(
            FailureRule(tx_type=tx_type, account=account, transport=True, times=times)
        )

    def token_balance(self, holder: str, issuer: str, currency: str) -> Decimal:
        """보유자 토큰 잔고"""
        line = self.state.trust_lines.get((holder, issuer, currency))
        return line.balance if line else Decimal("0")

    def xrp_balance(self, address: str) -> Decimal:
        """XRP 잔고"""
        return self.state.xrp_balances.get(address, Decimal("0"))

    def submitted_of(self, tx_type: TransactionType) -> list[TransactionRequest]:
        """유형별 제출 트랜잭션"""
        return [r for r in self.state.submitted if r.tx_type == tx_type]


# =============================================================================
# 원장 규칙 시뮬레이션
# =============================================================================

def create_account(state: MockLedgerState) -> LedgerAccount:
    state.account_counter += 1
    address = f"rMockAccount{state.account_counter:04d}"
    seed = f"sMockSeed{state.account_counter:04d}"
    state.accounts[address] = seed
    state.xrp_balances[address] = Decimal("100")
    state.sequences[address] = 1
    return LedgerAccount(address=address, seed=seed)


def _next_sequence(state: MockLedgerState, account: str) -> int:
    sequence = state.sequences.get(account, 1)
    state.sequences[account] = sequence + 1
    return sequence


def _set_flag(state: MockLedgerState, address: str, flag: AccountFlag) -> None:
    current = state.settings.get(address, AccountSettings())
    if flag == AccountFlag.DEFAULT_RIPPLE:
        state.settings[address] = AccountSettings(default_ripple=True, allow_clawback=current.allow_clawback)
    else:
        state.settings[address] = AccountSettings(default_ripple=current.default_ripple, allow_clawback=True)


def _apply(state: MockLedgerState, request: TransactionRequest) -> str:
    """요청을 상태에 적용하고 결과 코드 반환"""
    tx_type = request.tx_type
    sequence = _next_sequence(state, request.account)

    if tx_type == TransactionType.ACCOUNT_SET:
        assert request.set_flag is not None
        _set_flag(state, request.account, request.set_flag)
        return LedgerConstants.SUCCESS_CODE

    if tx_type == TransactionType.TRUST_SET:
        limit = request.limit_amount
        assert limit is not None
        key = (request.account, limit.issuer, limit.currency)
        line = state.trust_lines.get(key)
        if line is None:
            state.trust_lines[key] = MockTrustLine(limit=limit.value)
        else:
            line.limit = limit.value
        return LedgerConstants.SUCCESS_CODE

    if tx_type == TransactionType.PAYMENT:
        assert request.destination is not None
        if request.destination not in state.accounts:
            return "tecNO_DST"
        if isinstance(request.amount, XrpAmount):
            return _pay_xrp(state, request.account, request.destination, request.amount.value)
        assert isinstance(request.amount, TokenAmount)
        return _pay_token(state, request.account, request.destination, request.amount)

    if tx_type == TransactionType.OFFER_CREATE:
        assert request.taker_gets is not None and request.taker_pays is not None
        state.offers[(request.account, sequence)] = Offer(
            account=request.account,
            sequence=sequence,
            taker_gets=request.taker_gets,
            taker_pays=request.taker_pays,
        )
        return LedgerConstants.SUCCESS_CODE

    if tx_type == TransactionType.OFFER_CANCEL:
        assert request.offer_sequence is not None
        state.offers.pop((request.account, request.offer_sequence), None)
        return LedgerConstants.SUCCESS_CODE

    if tx_type == TransactionType.CLAWBACK:
        amount = request.amount
        assert isinstance(amount, TokenAmount)
        if not state.settings.get(request.account, AccountSettings()).allow_clawback:
            return "tecNO_PERMISSION"
        line = state.trust_lines.get((amount.issuer, request.account, amount.currency))
        if line is None or line.balance <= 0:
            return "tecNO_LINE"
        line.balance -= min(amount.value, line.balance)
        return LedgerConstants.SUCCESS_CODE

    return "temUNKNOWN"


def _pay_xrp(state: MockLedgerState, sender: str, destination: str, value: Decimal) -> str:
    if state.xrp_balances.get(sender, Decimal("0")) < value:
        return "tecUNFUNDED_PAYMENT"
    state.xrp_balances[sender] -= value
    state.xrp_balances[destination] = state.xrp_balances.get(destination, Decimal("0")) + value
    return LedgerConstants.SUCCESS_CODE


def _pay_token(state: MockLedgerState, sender: str, destination: str, amount: TokenAmount) -> str:
    issuer = amount.issuer

    if sender != issuer:
        source = state.trust_lines.get((sender, issuer, amount.currency))
        if source is None or source.balance < amount.value:
            return "tecUNFUNDED_PAYMENT"
        if destination != issuer and not state.settings.get(issuer, AccountSettings()).default_ripple:
            return "tecPATH_DRY"

    if destination != issuer:
        target = state.trust_lines.get((destination, issuer, amount.currency))
        if target is None:
            return "tecPATH_DRY"
        if target.balance + amount.value > target.limit:
            return "tecPATH_PARTIAL"
        target.balance += amount.value

    if sender != issuer:
        state.trust_lines[(sender, issuer, amount.currency)].balance -= amount.value

    return LedgerConstants.SUCCESS_CODE
