"""
XRPL 원장 클라이언트

xrpl-py AsyncWebsocketClient 기반 ILedgerClient/ILedgerSession 구현.
모든 금액/수량은 Decimal 타입으로 반환 (XRP는 drops → XRP 변환 완료).

세션 하나가 웹소켓 연결 하나를 소유.
같은 계정이 서명하는 트랜잭션은 세션 내에서 계정별 Lock으로 직렬화
(Sequence 자동 채움이 충돌하지 않도록).
"""

import asyncio
import logging
import re
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from xrpl.asyncio.clients import AsyncWebsocketClient
from xrpl.asyncio.transaction import XRPLReliableSubmissionException, submit_and_wait
from xrpl.asyncio.wallet import generate_faucet_wallet
from xrpl.constants import XRPLException
from xrpl.models.currencies import XRP, IssuedCurrency
from xrpl.models.requests import AccountInfo, AccountLines, AccountOffers, BookOffers, Request
from xrpl.wallet import Wallet

from adapters.models import (
    AccountSettings,
    Balance,
    Offer,
    RawOrderBook,
    SubmitResult,
    TransactionRequest,
    TrustLine,
)
from adapters.xrpl.models import (
    build_transaction,
    parse_account_offer,
    parse_account_settings,
    parse_book_offer,
    parse_native_balance,
    parse_token_balance,
    parse_trust_line,
)
from core.constants import Defaults, LedgerConstants
from core.domain.errors import LedgerTransportError, PreconditionError
from core.types import LedgerAccount

logger = logging.getLogger(__name__)


# "Transaction failed: tecNO_PERMISSION" 형태의 예외 메시지에서 결과 코드 추출
_RESULT_CODE_PATTERN = re.compile(r"\b(te[cfmlrs][A-Z_]+)\b")

# 계정이 아직 원장에 없음 (펀딩 전)
_ACCOUNT_NOT_FOUND = "actNotFound"


def extract_result_code(message: str) -> str:
    """예외 메시지에서 원장 결과 코드 추출 (없으면 UNKNOWN)"""
    match = _RESULT_CODE_PATTERN.search(message)
    return match.group(1) if match else "UNKNOWN"


def explorer_tx_url(explorer_url: str, tx_hash: str) -> str:
    """트랜잭션 익스플로러 URL"""
    return f"{explorer_url.rstrip('/')}/transactions/{tx_hash}"


def explorer_account_url(explorer_url: str, address: str) -> str:
    """계정 익스플로러 URL"""
    return f"{explorer_url.rstrip('/')}/accounts/{address}"


class XrplLedgerSession:
    """XRPL 원장 세션

    ILedgerSession Protocol 구현.
    XrplLedgerClient.session() 컨텍스트 안에서만 사용.

    Args:
        client: 연결된 웹소켓 클라이언트
        faucet_host: faucet 호스트 (None이면 네트워크 기본값)
        allow_faucet: faucet 펀딩 허용 여부 (메인넷 False)
        submit_timeout: 트랜잭션 검증 대기 타임아웃 (초)
    """

    def __init__(
        self,
        client: AsyncWebsocketClient,
        faucet_host: str | None = None,
        allow_faucet: bool = True,
        submit_timeout: float = Defaults.SUBMIT_TIMEOUT_SEC,
    ):
        self._client = client
        self.faucet_host = faucet_host
        self.allow_faucet = allow_faucet
        self.submit_timeout = submit_timeout
        self._account_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def _request(
        self,
        request: Request,
        allowed_errors: tuple[str, ...] = (),
    ) -> dict[str, Any] | None:
        """조회 요청 실행

        Args:
            request: xrpl-py 요청 모델
            allowed_errors: 에러로 취급하지 않을 RPC 에러 코드 (해당 시 None 반환)

        Returns:
            응답 result 딕셔너리

        Raises:
            LedgerTransportError: 통신 실패 또는 RPC 에러
        """
        try:
            response = await self._client.request(request)
        except (XRPLException, OSError, asyncio.TimeoutError) as e:
            raise LedgerTransportError(f"{request.method} request failed: {e}") from e

        if response.is_successful():
            return response.result

        error = response.result.get("error", "unknown")
        if error in allowed_errors:
            return None

        raise LedgerTransportError(
            f"{request.method} returned error: {error} "
            f"({response.result.get('error_message', '')})"
        )

    # -------------------------------------------------------------------------
    # 계정
    # -------------------------------------------------------------------------

    async def fund_account(self) -> LedgerAccount:
        """faucet으로 새 계정 생성 및 펀딩

        Raises:
            PreconditionError: faucet이 허용되지 않는 네트워크
            LedgerTransportError: faucet 통신 실패
        """
        if not self.allow_faucet:
            raise PreconditionError("faucet funding is not available on this network")

        try:
            wallet = await generate_faucet_wallet(self._client, faucet_host=self.faucet_host)
        except (XRPLException, OSError, asyncio.TimeoutError) as e:
            raise LedgerTransportError(f"faucet funding failed: {e}") from e

        logger.info("Faucet 계정 생성 완료", extra={"address": wallet.address})
        return LedgerAccount(address=wallet.address, seed=wallet.seed)

    # -------------------------------------------------------------------------
    # 트랜잭션
    # -------------------------------------------------------------------------

    async def submit(self, request: TransactionRequest, seed: str) -> SubmitResult:
        """트랜잭션 서명/제출 후 검증된 원장에 포함될 때까지 대기

        Args:
            request: 트랜잭션 요청
            seed: 서명 계정 seed

        Returns:
            SubmitResult (원장 거부 시 accepted=False)

        Raises:
            LedgerTransportError: 통신 실패/타임아웃
        """
        wallet = Wallet.from_seed(seed)
        if wallet.address != request.account:
            raise PreconditionError(
                f"seed does not belong to signing account {request.account}"
            )

        transaction = build_transaction(request)
        tx_type = request.tx_type.value

        async with self._account_locks[request.account]:
            try:
                response = await asyncio.wait_for(
                    submit_and_wait(transaction, self._client, wallet),
                    timeout=self.submit_timeout,
                )
            except XRPLReliableSubmissionException as e:
                result_code = extract_result_code(str(e))
                logger.warning(
                    f"{tx_type} 거부: {result_code}",
                    extra={"account": request.account, "result_code": result_code},
                )
                return SubmitResult(tx_type=tx_type, accepted=False, result_code=result_code)
            except (XRPLException, OSError, asyncio.TimeoutError) as e:
                raise LedgerTransportError(f"{tx_type} submission failed: {e}") from e

        result = response.result
        tx_hash = result.get("hash")
        result_code = result.get("meta", {}).get("TransactionResult", LedgerConstants.SUCCESS_CODE)
        accepted = result_code == LedgerConstants.SUCCESS_CODE

        logger.info(
            f"{tx_type} 검증 완료: {result_code}",
            extra={"account": request.account, "tx_hash": tx_hash},
        )
        return SubmitResult(
            tx_type=tx_type,
            accepted=accepted,
            result_code=result_code,
            tx_hash=tx_hash,
        )

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get_trust_lines(self, address: str) -> list[TrustLine]:
        """신뢰선 전체 조회 (marker 페이지네이션)"""
        lines: list[TrustLine] = []
        marker: Any = None

        while True:
            result = await self._request(
                AccountLines(
                    account=address,
                    ledger_index="validated",
                    limit=Defaults.TRUST_LINE_PAGE_LIMIT,
                    marker=marker,
                ),
                allowed_errors=(_ACCOUNT_NOT_FOUND,),
            )
            if result is None:
                return lines

            lines.extend(parse_trust_line(item) for item in result.get("lines", []))
            marker = result.get("marker")
            if marker is None:
                return lines

    async def get_balances(self, address: str) -> list[Balance]:
        """XRP + 토큰 잔고 조회 (잔고 0인 신뢰선 제외)"""
        result = await self._request(
            AccountInfo(account=address, ledger_index="validated"),
            allowed_errors=(_ACCOUNT_NOT_FOUND,),
        )
        if result is None:
            return []

        balances = [parse_native_balance(result["account_data"])]
        for line in await self.get_trust_lines(address):
            if line.balance != 0:
                balances.append(parse_token_balance(line))
        return balances

    async def get_open_offers(self, address: str) -> list[Offer]:
        """계정의 오픈 오퍼 조회 (marker 페이지네이션)"""
        offers: list[Offer] = []
        marker: Any = None

        while True:
            result = await self._request(
                AccountOffers(account=address, ledger_index="validated", marker=marker),
                allowed_errors=(_ACCOUNT_NOT_FOUND,),
            )
            if result is None:
                return offers

            offers.extend(parse_account_offer(address, item) for item in result.get("offers", []))
            marker = result.get("marker")
            if marker is None:
                return offers

    async def get_order_book(
        self,
        currency_id: str,
        issuer_address: str,
        limit: int = Defaults.ORDER_BOOK_LIMIT,
    ) -> RawOrderBook:
        """토큰/XRP 호가창 양방향 조회

        asks: TakerGets=토큰, TakerPays=XRP
        bids: TakerGets=XRP, TakerPays=토큰
        """
        token = IssuedCurrency(currency=currency_id, issuer=issuer_address)

        ask_result, bid_result = await asyncio.gather(
            self._request(BookOffers(taker_gets=token, taker_pays=XRP(), limit=limit)),
            self._request(BookOffers(taker_gets=XRP(), taker_pays=token, limit=limit)),
        )

        return RawOrderBook(
            asks=[parse_book_offer(item) for item in (ask_result or {}).get("offers", [])],
            bids=[parse_book_offer(item) for item in (bid_result or {}).get("offers", [])],
        )

    async def get_account_settings(self, address: str) -> AccountSettings:
        """계정 플래그 조회 (계정이 없으면 모든 플래그 False)"""
        result = await self._request(
            AccountInfo(account=address, ledger_index="validated"),
            allowed_errors=(_ACCOUNT_NOT_FOUND,),
        )
        if result is None:
            return AccountSettings()
        return parse_account_settings(result["account_data"])


class XrplLedgerClient:
    """XRPL 원장 클라이언트

    ILedgerClient Protocol 구현.
    session()마다 새 웹소켓 연결을 열고, 컨텍스트 종료 시 반드시 닫음.

    Args:
        ws_url: 웹소켓 엔드포인트
        faucet_host: faucet 호스트 (None이면 xrpl-py 기본값)
        allow_faucet: faucet 펀딩 허용 여부
        submit_timeout: 트랜잭션 검증 대기 타임아웃 (초)

    사용 예시:
    ```python
    ledger = XrplLedgerClient("wss://s.altnet.rippletest.net:51233")
    async with ledger.session() as session:
        lines = await session.get_trust_lines(issuer_address)
    ```
    """

    def __init__(
        self,
        ws_url: str,
        faucet_host: str | None = None,
        allow_faucet: bool = True,
        submit_timeout: float = Defaults.SUBMIT_TIMEOUT_SEC,
    ):
        self.ws_url = ws_url
        self.faucet_host = faucet_host
        self.allow_faucet = allow_faucet
        self.submit_timeout = submit_timeout

    @asynccontextmanager
    async def session(self) -> AsyncIterator[XrplLedgerSession]:
        """원장 세션 열기

        Raises:
            LedgerTransportError: 연결 실패
        """
        client = AsyncWebsocketClient(self.ws_url)
        try:
            await client.open()
        except (XRPLException, OSError, asyncio.TimeoutError) as e:
            raise LedgerTransportError(f"cannot connect to {self.ws_url}: {e}") from e

        logger.debug("원장 세션 열림", extra={"ws_url": self.ws_url})
        try:
            yield XrplLedgerSession(
                client,
                faucet_host=self.faucet_host,
                allow_faucet=self.allow_faucet,
                submit_timeout=self.submit_timeout,
            )
        finally:
            await client.close()
            logger.debug("원장 세션 닫힘", extra={"ws_url": self.ws_url})
