"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from decimal import Decimal
from typing import Any, AsyncContextManager, Protocol, runtime_checkable

from core.types import LedgerAccount


@runtime_checkable
class ILedgerSession(Protocol):
    """원장 세션 인터페이스

    ILedgerClient.session() 컨텍스트 안에서만 유효.
    같은 계정이 서명한 트랜잭션은 세션 내에서 직렬화되어야 함.
    금액/수량은 반드시 Decimal 타입 사용.
    """

    # -------------------------------------------------------------------------
    # 계정
    # -------------------------------------------------------------------------

    async def fund_account(self) -> LedgerAccount:
        """새 계정 생성 및 펀딩 (테스트넷 faucet)

        Returns:
            생성된 계정 (주소 + seed)

        Raises:
            PreconditionError: faucet을 사용할 수 없는 네트워크
            LedgerTransportError: faucet/노드 통신 실패
        """
        ...

    # -------------------------------------------------------------------------
    # 트랜잭션
    # -------------------------------------------------------------------------

    async def submit(self, request: "TransactionRequest", seed: str) -> "SubmitResult":
        """트랜잭션 서명/제출 후 검증 대기

        Args:
            request: 트랜잭션 요청
            seed: 서명 계정 seed

        Returns:
            제출 결과 (accepted=False면 호출자가 raise_for_result로 처리)

        Raises:
            LedgerTransportError: 노드 통신 실패
        """
        ...

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get_balances(self, address: str) -> list["Balance"]:
        """XRP + 발행 토큰 잔고 조회"""
        ...

    async def get_trust_lines(self, address: str) -> list["TrustLine"]:
        """신뢰선 전체 조회 (페이지네이션 포함)

        Args:
            address: 조회 계정 (잔고 부호는 이 계정 관점)
        """
        ...

    async def get_open_offers(self, address: str) -> list["Offer"]:
        """계정의 오픈 오퍼 조회"""
        ...

    async def get_order_book(
        self,
        currency_id: str,
        issuer_address: str,
        limit: int = 50,
    ) -> "RawOrderBook":
        """토큰/XRP 호가창 양방향 조회"""
        ...

    async def get_account_settings(self, address: str) -> "AccountSettings":
        """계정 플래그 상태 조회"""
        ...


@runtime_checkable
class ILedgerClient(Protocol):
    """원장 클라이언트 인터페이스

    session()은 async 컨텍스트 매니저.
    성공/거부/통신 오류 모든 경로에서 세션이 해제되어야 함.

    사용 예시:
    ```python
    async with ledger.session() as session:
        result = await session.submit(request, seed)
    ```
    """

    def session(self) -> AsyncContextManager[ILedgerSession]:
        """원장 세션 열기"""
        ...


@runtime_checkable
class IWorkflowStore(Protocol):
    """워크플로우 영속 저장소 인터페이스

    역할 바인딩은 역할당 1개 (유일성 제약). 동시에 생성을 시도한 경우
    패자는 에러 없이 승자의 바인딩을 돌려받아야 함.
    """

    async def get_role_binding(self, role: str) -> LedgerAccount | None:
        """역할 바인딩 조회 (없으면 None)"""
        ...

    async def save_role_binding(self, role: str, account: LedgerAccount) -> LedgerAccount:
        """역할 바인딩 저장 (없을 때만)

        Returns:
            실제로 저장되어 있는 계정 (경쟁에서 진 경우 승자의 계정)
        """
        ...

    async def get_instrument(self, code: str) -> "Instrument | None":
        """상품 조회"""
        ...

    async def create_instrument(self, instrument: "Instrument") -> "Instrument":
        """상품 생성

        Raises:
            PreconditionError: 같은 코드의 상품이 이미 존재
        """
        ...

    async def set_currency_id(self, code: str, currency_id: str) -> "Instrument":
        """currency_id 할당 (한 번만)

        Raises:
            PreconditionError: 다른 currency_id가 이미 할당됨
        """
        ...

    async def update_instrument_state(
        self,
        code: str,
        new_state: "InstrumentState",
        extra: dict[str, Any] | None = None,
    ) -> "Instrument":
        """상품 상태 전이

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        ...

    async def save_redemption_report(self, code: str, report: "RedemptionReport") -> int:
        """상환 보고서 저장

        Returns:
            보고서 ID
        """
        ...

    async def list_redemption_reports(self, code: str) -> list[dict[str, Any]]:
        """상품의 상환 보고서 목록 (저장 순)"""
        ...


@runtime_checkable
class INotifier(Protocol):
    """알림 서비스 인터페이스

    발행/상환 완료 등 운영 알림을 외부 서비스로 전송.
    """

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """알림 전송

        Args:
            message: 알림 메시지
            level: 알림 레벨 (INFO, WARNING, ERROR, CRITICAL)
            extra: 추가 데이터 (선택)

        Returns:
            전송 성공 여부
        """
        ...

    async def send_redemption_alert(
        self,
        instrument_code: str,
        holders_processed: int,
        holders_failed: int,
        total_tokens: Decimal,
        total_xrp: Decimal,
    ) -> bool:
        """상환 결과 알림 전송 (포맷팅된 메시지)"""
        ...


# 순환 참조 방지를 위한 타입 힌트 (런타임에는 문자열로 유지)
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.models import (
        AccountSettings,
        Balance,
        Offer,
        RawOrderBook,
        SubmitResult,
        TransactionRequest,
        TrustLine,
    )
    from core.domain.instrument import Instrument
    from core.domain.results import RedemptionReport
    from core.domain.state_machines import InstrumentState
