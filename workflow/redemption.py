"""
상환 코디네이터

발행자 관점 신뢰선에서 보유자를 찾아 보유자마다 독립적으로
오퍼 취소 → 토큰 회수(Clawback) → XRP 지급을 수행하고 결과를 하나의 보고서로 집계.

실행 순서:
1. 발행자 신뢰선 조회 → 보유자 스냅샷 (실패 시 전체 실패)
2. 보유자 오퍼 취소: 보유자 자신의 계정으로 서명하므로 보유자 간 병렬 실행
   (cancel_workers로 동시 실행 수 제한, 실패해도 회수를 막지 않음)
3. 회수/지급: 발행자/재무 계정이 모든 보유자에 공통이므로 보유자 순서대로 직렬 실행
4. 재무 계정 미판매분 회수: 보유자가 아니므로 지급 없이 회수만 하고 보고서에 별도 기록

한 보유자의 실패는 결과에 기록될 뿐 다른 보유자 처리나 전체 결과를 중단시키지 않음.
"""

import asyncio
import logging
from decimal import Decimal

from adapters.interfaces import ILedgerSession
from adapters.models import TransactionRequest, XrpAmount, quantize_xrp
from core.constants import Defaults
from core.domain.errors import PreconditionError
from core.domain.results import HolderResult, HolderSnapshot, OperationError, RedemptionReport
from core.types import LedgerAccount, RedemptionStep
from workflow.holders import holders_from_trust_lines, split_treasury
from workflow.market import MarketOperations

logger = logging.getLogger(__name__)


class RedemptionCoordinator:
    """상환 코디네이터

    Args:
        market: 보유자 오퍼 취소에 사용할 MarketOperations
        cancel_workers: 보유자 오퍼 취소 동시 실행 수

    사용 예시:
    ```python
    coordinator = RedemptionCoordinator()
    async with ledger.session() as session:
        report = await coordinator.redeem_all(
            session, issuer, treasury, currency_id,
            payout_per_token=Decimal("0.012"),
            holder_credentials={holder_address: holder_seed},
        )
    print(report.holders_failed)
    ```
    """

    def __init__(
        self,
        market: MarketOperations | None = None,
        cancel_workers: int = Defaults.CANCEL_WORKERS,
    ):
        if cancel_workers < 1:
            raise ValueError("cancel_workers must be at least 1")
        self.market = market or MarketOperations()
        self.cancel_workers = cancel_workers

    async def snapshot_holders(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
        currency_id: str,
    ) -> list[HolderSnapshot]:
        """현재 보유자 스냅샷 조회"""
        lines = await session.get_trust_lines(issuer.address)
        return holders_from_trust_lines(lines, currency_id)

    async def redeem_all(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
        currency_id: str,
        payout_per_token: Decimal,
        holder_credentials: dict[str, str] | None = None,
    ) -> RedemptionReport:
        """전체 보유자 상환

        Args:
            session: 원장 세션
            issuer: 발행자 계정 (Clawback 서명)
            treasury: 재무 계정 (XRP 지급 서명)
            currency_id: 대상 통화
            payout_per_token: 토큰당 XRP 지급액
            holder_credentials: 보유자 주소 → seed (있는 보유자만 오퍼 취소)

        Returns:
            RedemptionReport (보유자도 미판매분도 없으면 빈 보고서)

        Raises:
            PreconditionError: payout_per_token이 0 이하
            LedgerTransportError: 보유자 조회 실패 (전체 실패)
        """
        if payout_per_token <= 0:
            raise PreconditionError("payout_per_token must be positive")

        credentials = holder_credentials or {}
        snapshot = await self.snapshot_holders(session, issuer, currency_id)
        holders, unsold = split_treasury(snapshot, treasury.address)

        logger.info(
            f"상환 시작: 보유자 {len(holders)}명",
            extra={
                "currency_id": currency_id,
                "payout_per_token": str(payout_per_token),
                "treasury_unsold": str(unsold),
            },
        )

        results: list[HolderResult] = []
        if holders:
            cancelled = await self._cancel_holder_offers(session, holders, credentials)
            for holder in holders:
                result = await self._redeem_holder(
                    session,
                    issuer,
                    treasury,
                    currency_id,
                    payout_per_token,
                    holder,
                    cancelled.get(holder.address, 0),
                )
                results.append(result)

        reclaim_tx_hash: str | None = None
        reclaim_error: OperationError | None = None
        if unsold > 0:
            reclaim_tx_hash, reclaim_error = await self._reclaim_treasury(
                session, issuer, treasury, currency_id, unsold
            )

        report = RedemptionReport(
            currency_id=currency_id,
            issuer_address=issuer.address,
            treasury_address=treasury.address,
            payout_per_token=payout_per_token,
            results=tuple(results),
            treasury_reclaimed=unsold if reclaim_error is None else Decimal("0"),
            treasury_clawback_tx_hash=reclaim_tx_hash,
            treasury_reclaim_error=reclaim_error,
        )

        log = logger.warning if report.partial_failure else logger.info
        log(
            f"상환 완료: {report.holders_successful}/{report.holders_processed} 성공",
            extra={
                "currency_id": currency_id,
                "total_tokens": str(report.total_tokens_redeemed),
                "total_xrp": str(report.total_xrp_paid),
                "treasury_reclaimed": str(report.treasury_reclaimed),
            },
        )
        return report

    async def _cancel_holder_offers(
        self,
        session: ILedgerSession,
        holders: list[HolderSnapshot],
        credentials: dict[str, str],
    ) -> dict[str, int]:
        """seed가 있는 보유자의 오퍼를 병렬 취소

        Returns:
            보유자 주소 → 취소된 오퍼 수
        """
        semaphore = asyncio.Semaphore(self.cancel_workers)

        async def cancel(holder: HolderSnapshot) -> tuple[str, int]:
            account = LedgerAccount(address=holder.address, seed=credentials[holder.address])
            async with semaphore:
                try:
                    summary = await self.market.cancel_all_offers(session, account)
                except Exception as e:
                    # 취소 실패는 회수를 막지 않음
                    logger.warning(
                        f"보유자 오퍼 취소 실패: {e}",
                        extra={"holder": holder.address, "step": RedemptionStep.CANCEL_OFFERS.value},
                    )
                    return holder.address, 0
            return holder.address, summary.cancelled_count

        targets = [h for h in holders if h.address in credentials]
        if not targets:
            return {}

        pairs = await asyncio.gather(*(cancel(h) for h in targets))
        return dict(pairs)

    async def _redeem_holder(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
        currency_id: str,
        payout_per_token: Decimal,
        holder: HolderSnapshot,
        orders_cancelled: int,
    ) -> HolderResult:
        """보유자 1명 회수 + 지급 (예외를 밖으로 내보내지 않음)"""
        # 회수
        try:
            clawback = await session.submit(
                TransactionRequest.clawback(
                    issuer=issuer.address,
                    holder=holder.address,
                    currency=currency_id,
                    value=holder.token_balance,
                ),
                issuer.seed,
            )
            clawback.raise_for_result()
        except Exception as e:
            logger.error(
                f"토큰 회수 실패: {e}",
                extra={"holder": holder.address, "step": RedemptionStep.CLAWBACK.value},
            )
            return HolderResult(
                holder=holder.address,
                success=False,
                token_balance=holder.token_balance,
                orders_cancelled=orders_cancelled,
                failed_step=RedemptionStep.CLAWBACK,
                error=OperationError.from_exception(e),
            )

        # 지급 (drop 미만 금액은 지급할 수 없으므로 0)
        payout = quantize_xrp(holder.token_balance * payout_per_token)
        payment_tx_hash = None

        if payout > 0:
            try:
                payment = await session.submit(
                    TransactionRequest.payment(
                        account=treasury.address,
                        destination=holder.address,
                        amount=XrpAmount(value=payout),
                    ),
                    treasury.seed,
                )
                payment.raise_for_result()
                payment_tx_hash = payment.tx_hash
            except Exception as e:
                # 토큰은 이미 회수됨 → clawback_tx_hash로 미지급 식별
                logger.error(
                    f"회수 후 지급 실패: {e}",
                    extra={
                        "holder": holder.address,
                        "step": RedemptionStep.PAYMENT.value,
                        "clawback_tx_hash": clawback.tx_hash,
                        "payout": str(payout),
                    },
                )
                return HolderResult(
                    holder=holder.address,
                    success=False,
                    token_balance=holder.token_balance,
                    tokens_redeemed=holder.token_balance,
                    orders_cancelled=orders_cancelled,
                    clawback_tx_hash=clawback.tx_hash,
                    failed_step=RedemptionStep.PAYMENT,
                    error=OperationError.from_exception(e),
                )

        logger.info(
            f"보유자 상환: {holder.token_balance} → {payout} XRP",
            extra={"holder": holder.address, "payment_tx_hash": payment_tx_hash},
        )

        return HolderResult(
            holder=holder.address,
            success=True,
            token_balance=holder.token_balance,
            tokens_redeemed=holder.token_balance,
            cash_paid=payout,
            orders_cancelled=orders_cancelled,
            clawback_tx_hash=clawback.tx_hash,
            payment_tx_hash=payment_tx_hash,
        )

    async def _reclaim_treasury(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
        currency_id: str,
        unsold: Decimal,
    ) -> tuple[str | None, OperationError | None]:
        """재무 계정 미판매분 회수 (지급 없음, 예외를 밖으로 내보내지 않음)

        Returns:
            (clawback tx hash, 실패 시 에러)
        """
        try:
            clawback = await session.submit(
                TransactionRequest.clawback(
                    issuer=issuer.address,
                    holder=treasury.address,
                    currency=currency_id,
                    value=unsold,
                ),
                issuer.seed,
            )
            clawback.raise_for_result()
        except Exception as e:
            logger.error(
                f"미판매분 회수 실패: {e}",
                extra={"treasury": treasury.address, "step": RedemptionStep.TREASURY_RECLAIM.value},
            )
            return None, OperationError.from_exception(e)

        logger.info(
            f"미판매분 회수: {unsold}",
            extra={"treasury": treasury.address, "clawback_tx_hash": clawback.tx_hash},
        )
        return clawback.tx_hash, None
