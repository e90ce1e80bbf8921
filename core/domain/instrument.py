"""
Instrument 도메인 모델

토큰화된 채권(BOND) 또는 실물자산 지분(ASSET).
currency_id는 발행 전 None, 발행 시 한 번만 할당되며 이후 불변.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from core.domain.errors import PreconditionError
from core.domain.state_machines import InstrumentState, InstrumentStateMachine
from core.types import InstrumentKind


@dataclass(frozen=True)
class Instrument:
    """토큰화 상품

    Attributes:
        code: 사람이 읽는 상품 코드 (고유, 통화 식별자 도출 기준)
        kind: 상품 종류 (BOND/ASSET)
        total_supply: 총 발행량 (발행 후 불변)
        state: 생애주기 상태
        currency_id: 원장 통화 식별자 (발행 전 None)
        issuer_address: 발행자 계정 주소
        treasury_address: 재무 계정 주소
        created_at: 생성 시각
        updated_at: 수정 시각
    """

    code: str
    kind: InstrumentKind
    total_supply: Decimal
    state: InstrumentState = InstrumentState.DRAFT
    currency_id: str | None = None
    issuer_address: str | None = None
    treasury_address: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """유효성 검증"""
        if not self.code or not self.code.strip():
            raise PreconditionError("instrument code must not be empty")
        if self.total_supply <= Decimal("0"):
            raise PreconditionError("total_supply must be positive")

    @classmethod
    def draft(
        cls,
        code: str,
        total_supply: Decimal,
        kind: InstrumentKind = InstrumentKind.BOND,
        issuer_address: str | None = None,
        treasury_address: str | None = None,
    ) -> "Instrument":
        """DRAFT 상태 상품 생성"""
        now = datetime.now(timezone.utc)
        return cls(
            code=code,
            kind=kind,
            total_supply=total_supply,
            issuer_address=issuer_address,
            treasury_address=treasury_address,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_minted(self) -> bool:
        """발행 완료 여부"""
        return self.currency_id is not None

    def state_machine(self) -> InstrumentStateMachine:
        """현재 상태에서 시작하는 상태 머신"""
        return InstrumentStateMachine(self.state)

    def with_currency_id(self, currency_id: str) -> "Instrument":
        """currency_id가 설정된 새 Instrument 반환

        Raises:
            PreconditionError: 이미 다른 currency_id가 할당된 경우
        """
        if self.currency_id is not None and self.currency_id != currency_id:
            raise PreconditionError(
                f"currency_id of {self.code} is immutable "
                f"(assigned={self.currency_id}, requested={currency_id})"
            )
        return replace(self, currency_id=currency_id, updated_at=datetime.now(timezone.utc))

    def with_state(self, state: InstrumentState) -> "Instrument":
        """상태 전이된 새 Instrument 반환

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        machine = self.state_machine()
        machine.transition(state)
        return replace(
            self,
            state=InstrumentState(machine.state),
            updated_at=datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "code": self.code,
            "kind": self.kind.value,
            "totalSupply": str(self.total_supply),
            "state": self.state.value,
            "currencyId": self.currency_id,
            "issuer": self.issuer_address,
            "treasury": self.treasury_address,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
