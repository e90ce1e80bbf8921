"""
토큰화 서비스

호출자 대상 연산 진입점. 모든 연산은 OperationResult를 반환하며
WorkflowError 계열 예외는 ErrorKind로 분류되어 봉투에 담김.

연산마다 원장 세션을 하나 열고, 성공/거부/통신 오류 모든 경로에서 닫음.

상품 생애주기:
    create_instrument (DRAFT)
      → publish: tokenize + PUBLISHED 전이 + 재무 계정 전량 매도 오퍼
      → place_offer / fetch_order_book (거래 기간)
      → redeem_all (REDEEMED, 종료)
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Awaitable, Callable

from adapters.interfaces import ILedgerClient, INotifier, IWorkflowStore
from adapters.models import TransactionRequest
from adapters.xrpl.client import explorer_account_url
from core.constants import Defaults
from core.domain.errors import PreconditionError, WorkflowError
from core.domain.instrument import Instrument
from core.domain.results import MintResult, OperationError, OperationResult
from core.domain.state_machines import InstrumentState
from core.types import ErrorKind, InstrumentKind, LedgerAccount, OfferSide, WalletRole
from workflow.currency import derive_currency_id
from workflow.market import MarketOperations
from workflow.payouts import asset_realization_payout, bond_maturity_payout
from workflow.redemption import RedemptionCoordinator
from workflow.tokenization import TokenizationEngine
from workflow.wallet_registry import WalletRoleRegistry

logger = logging.getLogger(__name__)


_HANDLED_ERRORS = (WorkflowError, ValueError)


class TokenizationService:
    """토큰화 서비스

    Args:
        ledger: 원장 클라이언트
        store: 워크플로우 저장소
        notifier: 알림 서비스 (선택, 실패해도 연산 결과에 영향 없음)
        engine: 토큰화 엔진 (기본: Clawback 허용)
        market: 마켓 오퍼레이션
        coordinator: 상환 코디네이터
        explorer_url: 익스플로러 베이스 URL (포트폴리오 링크용, 선택)

    사용 예시:
    ```python
    service = TokenizationService(ledger, store, notifier)

    await service.create_instrument("HALAL01", Decimal("1000"), InstrumentKind.BOND)
    result = await service.publish("HALAL01", price_per_token=Decimal("0.01"))
    if not result.success:
        print(result.error.kind, result.error.message)

    result = await service.redeem_bond("HALAL01", principal=Decimal("0.01"), profit_rate=Decimal("0.2"))
    print(result.to_dict())
    ```
    """

    def __init__(
        self,
        ledger: ILedgerClient,
        store: IWorkflowStore,
        notifier: INotifier | None = None,
        engine: TokenizationEngine | None = None,
        market: MarketOperations | None = None,
        coordinator: RedemptionCoordinator | None = None,
        explorer_url: str | None = None,
    ):
        self.ledger = ledger
        self.store = store
        self.notifier = notifier
        self.registry = WalletRoleRegistry(ledger, store)
        self.engine = engine or TokenizationEngine()
        self.market = market or MarketOperations()
        self.coordinator = coordinator or RedemptionCoordinator(self.market)
        self.explorer_url = explorer_url

    # =========================================================================
    # 상품
    # =========================================================================

    async def create_instrument(
        self,
        code: str,
        total_supply: Decimal,
        kind: InstrumentKind = InstrumentKind.BOND,
    ) -> OperationResult:
        """DRAFT 상품 생성 (ISSUER/TREASURY 바인딩 보장)"""
        try:
            if await self.store.get_instrument(code) is not None:
                raise PreconditionError(f"instrument {code} already exists")

            # 입력 검증을 계정 펀딩보다 먼저 수행
            draft = Instrument.draft(code=code, total_supply=total_supply, kind=kind)
            issuer, treasury = await self.registry.ensure_all()
            instrument = await self.store.create_instrument(
                replace(draft, issuer_address=issuer.address, treasury_address=treasury.address)
            )
        except _HANDLED_ERRORS as e:
            return self._fail("create_instrument", e)

        return OperationResult.ok(instrument)

    async def get_instrument(self, code: str) -> OperationResult:
        """상품 조회"""
        try:
            instrument = await self._require_instrument(code)
        except _HANDLED_ERRORS as e:
            return self._fail("get_instrument", e)
        return OperationResult.ok(instrument)

    # =========================================================================
    # 토큰화 / 발행
    # =========================================================================

    async def tokenize(
        self,
        code: str,
        total_supply: Decimal | None = None,
    ) -> OperationResult:
        """토큰 발행 (멱등)

        이미 발행된 상품에 다시 호출해도 currency_id는 바뀌지 않고
        발행량이 추가 지급되지 않음 (data.already_minted=True).

        Args:
            code: 상품 코드
            total_supply: 확인용 총 발행량 (저장된 값과 다르면 PRECONDITION)
        """
        try:
            instrument = await self._require_instrument(code)
            mint = await self._tokenize(instrument, total_supply)
        except _HANDLED_ERRORS as e:
            return self._fail("tokenize", e)
        return OperationResult.ok(mint)

    async def _tokenize(self, instrument: Instrument, total_supply: Decimal | None = None) -> MintResult:
        if total_supply is not None and total_supply != instrument.total_supply:
            raise PreconditionError(
                f"total_supply of {instrument.code} is fixed at {instrument.total_supply}"
            )
        if instrument.state == InstrumentState.REDEEMED:
            raise PreconditionError(f"instrument {instrument.code} is already redeemed")

        currency_id = derive_currency_id(instrument.code)
        # 이미 할당된 식별자와 다르면 원장 호출 전에 중단
        instrument.with_currency_id(currency_id)

        async with self.ledger.session() as session:
            issuer, treasury = await self._bound_roles(instrument)
            await self.engine.configure_issuer(session, issuer)
            mint = await self.engine.mint(
                session,
                issuer,
                treasury,
                currency_id,
                instrument.total_supply,
                instrument_code=instrument.code,
            )

        await self.store.set_currency_id(instrument.code, currency_id)
        return mint

    async def list_initial_offer(
        self,
        currency_id: str,
        issuer_address: str,
        total_supply: Decimal,
        price_per_token: Decimal,
    ) -> OperationResult:
        """재무 계정이 전체 발행량을 매도 오퍼로 상장"""
        try:
            treasury = await self._require_role_account(WalletRole.TREASURY)
            async with self.ledger.session() as session:
                offer = await self.market.place_offer(
                    session,
                    treasury,
                    OfferSide.SELL,
                    currency_id,
                    issuer_address,
                    total_supply,
                    price_per_token,
                )
        except _HANDLED_ERRORS as e:
            return self._fail("list_initial_offer", e)
        return OperationResult.ok(offer)

    async def publish(self, code: str, price_per_token: Decimal) -> OperationResult:
        """발행 + PUBLISHED 전이 + 최초 상장

        상장 오퍼가 실패해도 발행/전이는 되돌리지 않음
        (상품은 PUBLISHED로 남고, 봉투에 상장 에러와 발행 결과가 함께 담김).
        """
        try:
            if price_per_token <= 0:
                raise PreconditionError("price_per_token must be positive")

            instrument = await self._require_instrument(code)
            if instrument.state != InstrumentState.DRAFT:
                raise PreconditionError(
                    f"instrument {code} cannot be published from {instrument.state.value}"
                )

            mint = await self._tokenize(instrument)
            instrument = await self.store.update_instrument_state(
                code,
                InstrumentState.PUBLISHED,
                extra={"currency_id": mint.currency_id, "price_per_token": str(price_per_token)},
            )
        except _HANDLED_ERRORS as e:
            return self._fail("publish", e)

        listing = await self.list_initial_offer(
            mint.currency_id,
            mint.issuer_address,
            instrument.total_supply,
            price_per_token,
        )

        data = {
            "instrument": instrument.to_dict(),
            "mint": mint.to_dict(),
            "listing": listing.data.to_dict() if listing.success else None,
        }

        if not listing.success:
            assert listing.error is not None
            return OperationResult.fail(listing.error, data=data)

        await self._notify(
            lambda n: n.send(
                f"{code} 발행 완료: {instrument.total_supply} 토큰 @ {price_per_token} XRP",
                level="INFO",
                extra={"currency_id": mint.currency_id},
            )
        )
        return OperationResult.ok(data)

    # =========================================================================
    # 마켓
    # =========================================================================

    async def place_offer(
        self,
        account: LedgerAccount,
        side: OfferSide,
        currency_id: str,
        issuer_address: str,
        token_amount: Decimal,
        price_per_token: Decimal,
    ) -> OperationResult:
        """지정가 오퍼 제출"""
        try:
            async with self.ledger.session() as session:
                offer = await self.market.place_offer(
                    session,
                    account,
                    side,
                    currency_id,
                    issuer_address,
                    token_amount,
                    price_per_token,
                )
        except _HANDLED_ERRORS as e:
            return self._fail("place_offer", e)
        return OperationResult.ok(offer)

    async def fetch_order_book(
        self,
        currency_id: str,
        issuer_address: str,
        limit: int = Defaults.ORDER_BOOK_LIMIT,
    ) -> OperationResult:
        """정규화된 양방향 호가창"""
        try:
            async with self.ledger.session() as session:
                book = await self.market.fetch_order_book(session, currency_id, issuer_address, limit)
        except _HANDLED_ERRORS as e:
            return self._fail("fetch_order_book", e)
        return OperationResult.ok(book)

    async def fetch_instrument_order_book(self, code: str) -> OperationResult:
        """상품 코드로 호가창 조회"""
        try:
            instrument = await self._require_instrument(code)
            if instrument.currency_id is None or instrument.issuer_address is None:
                raise PreconditionError(f"instrument {code} is not minted")
        except _HANDLED_ERRORS as e:
            return self._fail("fetch_order_book", e)
        return await self.fetch_order_book(instrument.currency_id, instrument.issuer_address)

    async def cancel_all_offers(self, account: LedgerAccount) -> OperationResult:
        """계정의 모든 오픈 오퍼 취소 (오퍼 단위 best-effort)"""
        try:
            async with self.ledger.session() as session:
                summary = await self.market.cancel_all_offers(session, account)
        except _HANDLED_ERRORS as e:
            return self._fail("cancel_all_offers", e)

        if summary.failed_count:
            warning = OperationError(
                kind=ErrorKind.PARTIAL_BATCH,
                message=f"{summary.failed_count} of {summary.failed_count + summary.cancelled_count} cancellations failed",
            )
            return OperationResult.ok(summary, warning=warning)
        return OperationResult.ok(summary)

    # =========================================================================
    # 계정
    # =========================================================================

    async def create_holder_account(
        self,
        currency_id: str,
        issuer_address: str,
        trust_limit: Decimal = Defaults.HOLDER_TRUST_LIMIT,
    ) -> OperationResult:
        """보유자(구매자) 계정 생성: 펀딩 + 발행자 신뢰선

        반환 data에는 seed가 포함되므로 호출자가 안전하게 보관해야 함.
        """
        try:
            if trust_limit <= 0:
                raise PreconditionError("trust_limit must be positive")

            async with self.ledger.session() as session:
                account = await session.fund_account()
                result = await session.submit(
                    TransactionRequest.trust_set(
                        account=account.address,
                        currency=currency_id,
                        issuer=issuer_address,
                        limit=trust_limit,
                    ),
                    account.seed,
                )
                result.raise_for_result()
        except _HANDLED_ERRORS as e:
            return self._fail("create_holder_account", e)

        logger.info("보유자 계정 생성", extra={"address": account.address, "currency_id": currency_id})
        return OperationResult.ok(
            {
                "address": account.address,
                "seed": account.seed,
                "currencyId": currency_id,
                "issuer": issuer_address,
                "trustLimit": str(trust_limit),
                "trustSetTxHash": result.tx_hash,
            }
        )

    async def create_instrument_holder(
        self,
        code: str,
        trust_limit: Decimal = Defaults.HOLDER_TRUST_LIMIT,
    ) -> OperationResult:
        """상품 코드 기준 보유자 계정 생성 (발행 완료된 상품만)"""
        try:
            instrument = await self._require_instrument(code)
            if instrument.currency_id is None or instrument.issuer_address is None:
                raise PreconditionError(f"instrument {code} is not minted")
        except _HANDLED_ERRORS as e:
            return self._fail("create_holder_account", e)
        return await self.create_holder_account(
            instrument.currency_id, instrument.issuer_address, trust_limit
        )

    async def get_portfolio(self, address: str) -> OperationResult:
        """계정의 XRP + 토큰 잔고"""
        try:
            async with self.ledger.session() as session:
                balances = await session.get_balances(address)
        except _HANDLED_ERRORS as e:
            return self._fail("get_portfolio", e)

        data: dict[str, Any] = {
            "address": address,
            "balances": [
                {"currency": b.currency, "value": str(b.value), "issuer": b.issuer}
                for b in balances
            ],
        }
        if self.explorer_url:
            data["explorerUrl"] = explorer_account_url(self.explorer_url, address)
        return OperationResult.ok(data)

    # =========================================================================
    # 상환
    # =========================================================================

    async def redeem_all(
        self,
        code: str,
        payout_per_token: Decimal,
        holder_credentials: dict[str, str] | None = None,
    ) -> OperationResult:
        """전체 보유자 상환 후 REDEEMED 전이

        일부 보유자 실패는 success=True + PARTIAL_BATCH 경고로 보고.
        보유자 조회 전 실패(상태/통신)만 success=False.
        """
        try:
            instrument = await self._require_instrument(code)
            instrument.state_machine().require_redeemable()
            if instrument.currency_id is None:
                raise PreconditionError(f"instrument {code} is not minted")

            async with self.ledger.session() as session:
                issuer, treasury = await self._bound_roles(instrument)
                report = await self.coordinator.redeem_all(
                    session,
                    issuer,
                    treasury,
                    instrument.currency_id,
                    payout_per_token,
                    holder_credentials,
                )

            await self.store.update_instrument_state(
                code,
                InstrumentState.REDEEMED,
                extra={
                    "holders_processed": report.holders_processed,
                    "holders_failed": report.holders_failed,
                    "total_tokens_redeemed": str(report.total_tokens_redeemed),
                    "total_xrp_paid": str(report.total_xrp_paid),
                    "treasury_reclaimed": str(report.treasury_reclaimed),
                },
            )
            await self.store.save_redemption_report(code, report)
        except _HANDLED_ERRORS as e:
            return self._fail("redeem_all", e)

        await self._notify(
            lambda n: n.send_redemption_alert(
                instrument_code=code,
                holders_processed=report.holders_processed,
                holders_failed=report.holders_failed,
                total_tokens=report.total_tokens_redeemed,
                total_xrp=report.total_xrp_paid,
            )
        )

        if report.partial_failure:
            message = f"{report.holders_failed} of {report.holders_processed} holders failed"
            if report.treasury_reclaim_error is not None:
                message += f"; treasury reclaim failed: {report.treasury_reclaim_error.message}"
            warning = OperationError(kind=ErrorKind.PARTIAL_BATCH, message=message)
            return OperationResult.ok(report, warning=warning)
        return OperationResult.ok(report)

    async def redeem_bond(
        self,
        code: str,
        principal: Decimal,
        profit_rate: Decimal,
        holder_credentials: dict[str, str] | None = None,
    ) -> OperationResult:
        """채권 만기 상환 (payout = principal * (1 + profit_rate))"""
        try:
            await self._require_kind(code, InstrumentKind.BOND)
            payout = bond_maturity_payout(principal, profit_rate)
        except _HANDLED_ERRORS as e:
            return self._fail("redeem_bond", e)
        return await self.redeem_all(code, payout, holder_credentials)

    async def redeem_asset(
        self,
        code: str,
        total_sale_proceeds: Decimal,
        holder_credentials: dict[str, str] | None = None,
    ) -> OperationResult:
        """실물자산 매각 상환 (payout = total_sale_proceeds / total_supply)"""
        try:
            instrument = await self._require_kind(code, InstrumentKind.ASSET)
            payout = asset_realization_payout(total_sale_proceeds, instrument.total_supply)
        except _HANDLED_ERRORS as e:
            return self._fail("redeem_asset", e)
        return await self.redeem_all(code, payout, holder_credentials)

    async def list_redemption_reports(self, code: str) -> OperationResult:
        """저장된 상환 보고서 목록"""
        try:
            await self._require_instrument(code)
            reports = await self.store.list_redemption_reports(code)
        except _HANDLED_ERRORS as e:
            return self._fail("list_redemption_reports", e)
        return OperationResult.ok(reports)

    # =========================================================================
    # 내부
    # =========================================================================

    async def _require_instrument(self, code: str) -> Instrument:
        instrument = await self.store.get_instrument(code)
        if instrument is None:
            raise PreconditionError(f"instrument {code} not found")
        return instrument

    async def _require_kind(self, code: str, kind: InstrumentKind) -> Instrument:
        instrument = await self._require_instrument(code)
        if instrument.kind != kind:
            raise PreconditionError(f"instrument {code} is {instrument.kind.value}, not {kind.value}")
        return instrument

    async def _require_role_account(self, role: WalletRole) -> LedgerAccount:
        account = await self.registry.get(role)
        if account is None:
            raise PreconditionError(f"role {role.value} is not bound")
        return account

    async def _bound_roles(self, instrument: Instrument) -> tuple[LedgerAccount, LedgerAccount]:
        """상품에 기록된 주소와 일치하는 ISSUER/TREASURY 계정"""
        issuer = await self._require_role_account(WalletRole.ISSUER)
        treasury = await self._require_role_account(WalletRole.TREASURY)

        if instrument.issuer_address and instrument.issuer_address != issuer.address:
            raise PreconditionError(f"ISSUER binding does not match instrument {instrument.code}")
        if instrument.treasury_address and instrument.treasury_address != treasury.address:
            raise PreconditionError(f"TREASURY binding does not match instrument {instrument.code}")

        return issuer, treasury

    def _fail(self, operation: str, error: Exception) -> OperationResult:
        result = OperationResult.fail(error)
        assert result.error is not None
        logger.warning(
            f"{operation} 실패: {result.error.message}",
            extra={"kind": result.error.kind.value, "result_code": result.error.result_code},
        )
        return result

    async def _notify(self, send: Callable[[INotifier], Awaitable[bool]]) -> None:
        """알림 전송 (실패는 로그만 남기고 연산 결과에 반영하지 않음)"""
        if self.notifier is None:
            return
        try:
            await send(self.notifier)
        except Exception as e:
            logger.warning(f"알림 전송 실패: {e}")
