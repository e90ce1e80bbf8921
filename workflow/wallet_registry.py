"""
지갑 역할 레지스트리

논리 역할(ISSUER, TREASURY) → 원장 계정 바인딩.
최초 요청 시 계정을 생성/펀딩하고 저장, 이후에는 저장된 바인딩을 반환.

경쟁 처리:
- 같은 프로세스 내 동시 요청은 역할별 asyncio.Lock으로 직렬화
- 프로세스 간 경쟁은 저장소의 유일성 제약으로 해결
  (진 쪽은 승자의 바인딩을 재조회하여 반환, 펀딩된 자기 계정은 버려짐)
"""

import asyncio
import logging
from collections import defaultdict

from adapters.interfaces import ILedgerClient, ILedgerSession, IWorkflowStore
from core.types import LedgerAccount, WalletRole

logger = logging.getLogger(__name__)


class WalletRoleRegistry:
    """지갑 역할 레지스트리

    Args:
        ledger: 원장 클라이언트
        store: 워크플로우 저장소

    사용 예시:
    ```python
    registry = WalletRoleRegistry(ledger, store)
    issuer = await registry.ensure(WalletRole.ISSUER)
    ```
    """

    def __init__(self, ledger: ILedgerClient, store: IWorkflowStore):
        self.ledger = ledger
        self.store = store
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, role: WalletRole) -> LedgerAccount | None:
        """저장된 바인딩 조회 (생성하지 않음)"""
        return await self.store.get_role_binding(role.value)

    async def ensure(
        self,
        role: WalletRole,
        session: ILedgerSession | None = None,
    ) -> LedgerAccount:
        """역할 바인딩 보장

        Args:
            role: 역할
            session: 이미 열린 원장 세션 (없으면 필요할 때만 새로 염)

        Returns:
            역할에 바인딩된 계정

        Raises:
            PreconditionError: faucet을 사용할 수 없는 네트워크에서 최초 생성
            LedgerTransportError: 계정 펀딩 중 통신 실패
        """
        async with self._locks[role.value]:
            existing = await self.store.get_role_binding(role.value)
            if existing is not None:
                return existing

            if session is None:
                async with self.ledger.session() as new_session:
                    account = await new_session.fund_account()
            else:
                account = await session.fund_account()

            winner = await self.store.save_role_binding(role.value, account)

        if winner.address != account.address:
            logger.warning(
                f"{role.value} 바인딩 경쟁에서 패배, 생성한 계정은 사용되지 않음",
                extra={"orphaned_address": account.address, "bound_address": winner.address},
            )
        else:
            logger.info(f"{role.value} 계정 생성", extra={"address": winner.address})

        return winner

    async def ensure_all(
        self,
        session: ILedgerSession | None = None,
    ) -> tuple[LedgerAccount, LedgerAccount]:
        """ISSUER, TREASURY 바인딩 보장

        Returns:
            (issuer, treasury)
        """
        issuer = await self.ensure(WalletRole.ISSUER, session)
        treasury = await self.ensure(WalletRole.TREASURY, session)
        return issuer, treasury
