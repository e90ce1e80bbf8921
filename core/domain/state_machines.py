"""
State Machines

토큰화 상품(Instrument) 생애주기.

DRAFT ──publish──▶ PUBLISHED ──redeem_all──▶ REDEEMED (종료)

전이는 한 방향으로만 진행되며 되돌릴 수 없음.
"""

import logging
from enum import Enum

from core.domain.errors import PreconditionError

logger = logging.getLogger(__name__)


class StateMachineError(PreconditionError):
    """허용되지 않은 생애주기 전이"""


class InstrumentState(str, Enum):
    """상품 상태"""

    DRAFT = "DRAFT"            # 생성됨, 원장에 토큰 없음
    PUBLISHED = "PUBLISHED"    # 발행 + 상장, 거래/상환 가능
    REDEEMED = "REDEEMED"      # 전체 보유자 상환 완료


class InstrumentStateMachine:
    """상품 생애주기 상태 머신

    Instrument.with_state()가 전이 검증에 사용.
    history에는 (이전 상태, 새 상태) 문자열 쌍이 쌓임.
    """

    NEXT: dict[InstrumentState, InstrumentState] = {
        InstrumentState.DRAFT: InstrumentState.PUBLISHED,
        InstrumentState.PUBLISHED: InstrumentState.REDEEMED,
    }

    def __init__(self, initial_state: str | InstrumentState = InstrumentState.DRAFT):
        self._state = InstrumentState(initial_state)
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        return self._state.value

    @property
    def history(self) -> list[tuple[str, str]]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state not in self.NEXT

    def can_transition(self, to_state: str | InstrumentState) -> bool:
        return self.NEXT.get(self._state) == InstrumentState(to_state)

    def transition(self, to_state: str | InstrumentState) -> str:
        """다음 상태로 전이

        Raises:
            StateMachineError: 다음 상태가 아닌 전이 (건너뛰기/역행/종료 후)
        """
        target = InstrumentState(to_state)
        if not self.can_transition(target):
            expected = self.NEXT.get(self._state)
            raise StateMachineError(
                f"instrument cannot move from {self._state.value} to {target.value} "
                f"(next allowed: {expected.value if expected else 'none'})"
            )

        self._history.append((self._state.value, target.value))
        logger.debug(f"Instrument state {self._state.value} → {target.value}")
        self._state = target
        return target.value

    def require_redeemable(self) -> None:
        """상환 사전 조건: PUBLISHED 상태

        Raises:
            StateMachineError: DRAFT(미발행) 또는 REDEEMED(이미 상환)
        """
        if self._state != InstrumentState.PUBLISHED:
            raise StateMachineError(
                f"redemption requires PUBLISHED, instrument is {self._state.value}"
            )
