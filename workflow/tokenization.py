"""
토큰화 엔진

발행자 설정 → 재무 계정 신뢰선 → 총 발행량 지급 순서로 토큰 발행.

각 단계 전에 원장 상태를 재확인하여 이미 완료된 단계는 건너뜀.
중간 실패 후 같은 인자로 다시 호출하면 남은 단계만 실행되고
발행량이 두 번 지급되지 않음.
"""

import logging
from decimal import Decimal

from adapters.interfaces import ILedgerSession
from adapters.models import TokenAmount, TransactionRequest
from core.domain.errors import PreconditionError
from core.domain.results import MintResult
from core.types import AccountFlag, LedgerAccount
from workflow.holders import outstanding_supply

logger = logging.getLogger(__name__)


class TokenizationEngine:
    """토큰화 엔진

    Args:
        enable_clawback: 발행자 설정 시 신뢰선 Clawback 허용 플래그도 설정
            (상환에 필요, 신뢰선이 생기기 전에만 설정 가능)

    사용 예시:
    ```python
    engine = TokenizationEngine()
    async with ledger.session() as session:
        await engine.configure_issuer(session, issuer)
        result = await engine.mint(session, issuer, treasury, currency_id, Decimal("1000"))
    ```
    """

    def __init__(self, enable_clawback: bool = True):
        self.enable_clawback = enable_clawback

    @property
    def required_flags(self) -> list[AccountFlag]:
        """발행자에게 필요한 계정 플래그 (설정 순서)"""
        flags = [AccountFlag.DEFAULT_RIPPLE]
        if self.enable_clawback:
            flags.append(AccountFlag.ALLOW_CLAWBACK)
        return flags

    async def configure_issuer(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
    ) -> list[str]:
        """발행자 계정 설정 (멱등)

        이미 설정된 플래그는 제출하지 않음.

        Returns:
            새로 제출한 트랜잭션 해시 목록 (모두 설정되어 있었으면 빈 목록)

        Raises:
            LedgerRejected: AccountSet 거부
            LedgerTransportError: 통신 실패
        """
        settings = await session.get_account_settings(issuer.address)
        tx_hashes: list[str] = []

        for flag in self.required_flags:
            if settings.has(flag):
                logger.debug(f"발행자 플래그 이미 설정됨: {flag.value}")
                continue

            result = await session.submit(
                TransactionRequest.account_set(issuer.address, flag),
                issuer.seed,
            )
            result.raise_for_result()
            if result.tx_hash:
                tx_hashes.append(result.tx_hash)

            logger.info(
                f"발행자 플래그 설정: {flag.value}",
                extra={"issuer": issuer.address, "tx_hash": result.tx_hash},
            )

        return tx_hashes

    async def mint(
        self,
        session: ILedgerSession,
        issuer: LedgerAccount,
        treasury: LedgerAccount,
        currency_id: str,
        total_supply: Decimal,
        instrument_code: str = "",
    ) -> MintResult:
        """총 발행량을 재무 계정으로 발행

        1. 재무 계정 → 발행자 신뢰선 (한도 = total_supply)
        2. 발행자 → 재무 계정 지급 (total_supply - 기존 유통량)

        Returns:
            MintResult (건너뛴 단계의 tx_hash는 None)

        Raises:
            PreconditionError: 잘못된 입력
            LedgerRejected: 트랜잭션 거부 (어느 단계든 발행 전체 실패)
            LedgerTransportError: 통신 실패
        """
        if total_supply <= 0:
            raise PreconditionError("total_supply must be positive")
        if issuer.address == treasury.address:
            raise PreconditionError("issuer and treasury must be different accounts")

        # Step 1: 신뢰선
        trust_set_tx_hash = None
        treasury_lines = await session.get_trust_lines(treasury.address)
        existing = next(
            (
                line for line in treasury_lines
                if line.currency == currency_id and line.counterparty == issuer.address
            ),
            None,
        )

        if existing is not None and existing.limit >= total_supply:
            logger.debug("재무 계정 신뢰선 이미 존재", extra={"currency_id": currency_id})
        else:
            result = await session.submit(
                TransactionRequest.trust_set(
                    account=treasury.address,
                    currency=currency_id,
                    issuer=issuer.address,
                    limit=total_supply,
                ),
                treasury.seed,
            )
            result.raise_for_result()
            trust_set_tx_hash = result.tx_hash
            logger.info(
                "재무 계정 신뢰선 설정",
                extra={"currency_id": currency_id, "tx_hash": trust_set_tx_hash},
            )

        # Step 2: 발행 (이미 유통 중인 수량은 다시 지급하지 않음)
        payment_tx_hash = None
        issuer_lines = await session.get_trust_lines(issuer.address)
        outstanding = outstanding_supply(issuer_lines, currency_id)
        remaining = total_supply - outstanding

        if remaining <= 0:
            logger.info(
                "이미 발행 완료",
                extra={"currency_id": currency_id, "outstanding": str(outstanding)},
            )
        else:
            result = await session.submit(
                TransactionRequest.payment(
                    account=issuer.address,
                    destination=treasury.address,
                    amount=TokenAmount(currency=currency_id, issuer=issuer.address, value=remaining),
                ),
                issuer.seed,
            )
            result.raise_for_result()
            payment_tx_hash = result.tx_hash
            logger.info(
                f"토큰 발행: {remaining}",
                extra={"currency_id": currency_id, "tx_hash": payment_tx_hash},
            )

        return MintResult(
            instrument_code=instrument_code,
            currency_id=currency_id,
            total_supply=total_supply,
            issuer_address=issuer.address,
            treasury_address=treasury.address,
            trust_set_tx_hash=trust_set_tx_hash,
            payment_tx_hash=payment_tx_hash,
            already_minted=trust_set_tx_hash is None and payment_tx_hash is None,
        )
