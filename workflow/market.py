"""
마켓 오퍼레이션

원장 내장 호가창에 지정가 오퍼 제출, 호가창 조회/정규화.
체결(매칭)은 원장이 수행하며 여기서는 오퍼 형태만 만들어 제출.

SELL: TakerGets = 토큰, TakerPays = XRP
BUY:  TakerGets = XRP,  TakerPays = 토큰
"""

import logging
from decimal import Decimal

from adapters.interfaces import ILedgerSession
from adapters.models import Offer, TokenAmount, TransactionRequest, XrpAmount, quantize_xrp
from core.constants import Defaults
from core.domain.errors import LedgerRejected, LedgerTransportError, PreconditionError
from core.domain.results import CancelSummary, OfferResult, OrderBook, OrderBookEntry
from core.types import LedgerAccount, OfferSide

logger = logging.getLogger(__name__)


def normalize_offer(
    offer: Offer,
    side: OfferSide,
    currency_id: str,
    issuer_address: str,
) -> OrderBookEntry | None:
    """원시 오퍼 → 호가 항목

    Args:
        offer: 원시 오퍼
        side: SELL이면 ask (토큰을 내놓음), BUY면 bid (토큰을 원함)
        currency_id: 대상 통화
        issuer_address: 발행자 주소

    Returns:
        OrderBookEntry, 토큰 수량이 0이거나 통화가 맞지 않으면 None
    """
    if side == OfferSide.SELL:
        token, settlement = offer.taker_gets, offer.taker_pays
    else:
        token, settlement = offer.taker_pays, offer.taker_gets

    if not isinstance(token, TokenAmount) or not isinstance(settlement, XrpAmount):
        return None
    if token.currency != currency_id or token.issuer != issuer_address:
        return None

    # 전량 체결된 잔여물 또는 비정상 오퍼 (0으로 나눌 수 없음)
    if token.value == 0:
        return None

    return OrderBookEntry(
        account=offer.account,
        token_amount=token.value,
        settlement_amount=settlement.value,
        price_per_token=settlement.value / token.value,
        sequence=offer.sequence,
    )


class MarketOperations:
    """마켓 오퍼레이션

    사용 예시:
    ```python
    market = MarketOperations()
    async with ledger.session() as session:
        offer = await market.place_offer(
            session, treasury, OfferSide.SELL, currency_id, issuer.address,
            token_amount=Decimal("1000"), price_per_token=Decimal("0.1"),
        )
        book = await market.fetch_order_book(session, currency_id, issuer.address)
    ```
    """

    async def place_offer(
        self,
        session: ILedgerSession,
        account: LedgerAccount,
        side: OfferSide,
        currency_id: str,
        issuer_address: str,
        token_amount: Decimal,
        price_per_token: Decimal,
    ) -> OfferResult:
        """지정가 오퍼 제출

        Raises:
            PreconditionError: 수량/가격이 0 이하이거나 XRP 총액이 1 drop 미만
            LedgerRejected: OfferCreate 거부
            LedgerTransportError: 통신 실패
        """
        if token_amount <= 0:
            raise PreconditionError("token_amount must be positive")
        if price_per_token <= 0:
            raise PreconditionError("price_per_token must be positive")

        settlement_total = quantize_xrp(token_amount * price_per_token)
        if settlement_total <= 0:
            raise PreconditionError("offer total is smaller than 1 drop")

        token = TokenAmount(currency=currency_id, issuer=issuer_address, value=token_amount)
        xrp = XrpAmount(value=settlement_total)

        if side == OfferSide.SELL:
            request = TransactionRequest.offer_create(account.address, taker_gets=token, taker_pays=xrp)
        else:
            request = TransactionRequest.offer_create(account.address, taker_gets=xrp, taker_pays=token)

        result = await session.submit(request, account.seed)
        result.raise_for_result()
        assert result.tx_hash is not None

        logger.info(
            f"{side.value} 오퍼 제출: {token_amount} @ {price_per_token}",
            extra={"account": account.address, "tx_hash": result.tx_hash},
        )

        return OfferResult(
            side=side,
            account=account.address,
            currency_id=currency_id,
            issuer_address=issuer_address,
            token_amount=token_amount,
            price_per_token=price_per_token,
            settlement_total=settlement_total,
            tx_hash=result.tx_hash,
        )

    async def fetch_order_book(
        self,
        session: ILedgerSession,
        currency_id: str,
        issuer_address: str,
        limit: int = Defaults.ORDER_BOOK_LIMIT,
    ) -> OrderBook:
        """양방향 호가창 조회 및 정규화

        asks는 가격 오름차순, bids는 가격 내림차순 (최우선 호가가 첫 번째).
        """
        raw = await session.get_order_book(currency_id, issuer_address, limit)

        asks = [
            entry for entry in (
                normalize_offer(offer, OfferSide.SELL, currency_id, issuer_address)
                for offer in raw.asks
            )
            if entry is not None
        ]
        bids = [
            entry for entry in (
                normalize_offer(offer, OfferSide.BUY, currency_id, issuer_address)
                for offer in raw.bids
            )
            if entry is not None
        ]

        asks.sort(key=lambda e: e.price_per_token)
        bids.sort(key=lambda e: e.price_per_token, reverse=True)

        return OrderBook(
            currency_id=currency_id,
            issuer_address=issuer_address,
            asks=asks,
            bids=bids,
        )

    async def cancel_all_offers(
        self,
        session: ILedgerSession,
        account: LedgerAccount,
    ) -> CancelSummary:
        """계정의 모든 오픈 오퍼 취소 (오퍼 단위 best-effort)

        한 오퍼의 취소 실패가 나머지 오퍼 취소를 막지 않음.

        Raises:
            LedgerTransportError: 오픈 오퍼 조회 실패
        """
        offers = await session.get_open_offers(account.address)
        cancelled: list[int] = []
        failed: list[int] = []

        for offer in offers:
            try:
                result = await session.submit(
                    TransactionRequest.offer_cancel(account.address, offer.sequence),
                    account.seed,
                )
                result.raise_for_result()
                cancelled.append(offer.sequence)
            except (LedgerRejected, LedgerTransportError) as e:
                failed.append(offer.sequence)
                logger.warning(
                    f"오퍼 취소 실패: {e.message}",
                    extra={"account": account.address, "sequence": offer.sequence},
                )

        if offers:
            logger.info(
                f"오퍼 취소 {len(cancelled)}/{len(offers)}",
                extra={"account": account.address},
            )

        return CancelSummary(
            address=account.address,
            cancelled_sequences=cancelled,
            failed_sequences=failed,
        )
