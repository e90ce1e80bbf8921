"""
Mock 워크플로우 저장소

테스트용 메모리 내 저장소.
IWorkflowStore Protocol 준수.
"""

from dataclasses import dataclass, field
from typing import Any

from core.domain.errors import PreconditionError
from core.domain.instrument import Instrument
from core.domain.results import RedemptionReport
from core.domain.state_machines import InstrumentState
from core.types import LedgerAccount


@dataclass
class MockStoreState:
    """Mock 저장소 상태"""

    role_bindings: dict[str, LedgerAccount] = field(default_factory=dict)
    instruments: dict[str, Instrument] = field(default_factory=dict)
    reports: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    # 바인딩 저장 시도 횟수 (경쟁 테스트 검증용)
    binding_attempts: int = 0


class MockWorkflowStore:
    """Mock 워크플로우 저장소

    IWorkflowStore Protocol 구현.

    사용 예시:
    ```python
    store = MockWorkflowStore()
    winner = await store.save_role_binding("ISSUER", account)
    assert store.state.role_bindings["ISSUER"] == winner
    ```
    """

    def __init__(self, state: MockStoreState | None = None):
        self.state = state or MockStoreState()

    async def get_role_binding(self, role: str) -> LedgerAccount | None:
        return self.state.role_bindings.get(role)

    async def save_role_binding(self, role: str, account: LedgerAccount) -> LedgerAccount:
        self.state.binding_attempts += 1
        return self.state.role_bindings.setdefault(role, account)

    async def get_instrument(self, code: str) -> Instrument | None:
        return self.state.instruments.get(code)

    async def create_instrument(self, instrument: Instrument) -> Instrument:
        if instrument.code in self.state.instruments:
            raise PreconditionError(f"instrument {instrument.code} already exists")
        self.state.instruments[instrument.code] = instrument
        return instrument

    async def set_currency_id(self, code: str, currency_id: str) -> Instrument:
        instrument = self._require(code)
        updated = instrument.with_currency_id(currency_id)
        self.state.instruments[code] = updated
        return updated

    async def update_instrument_state(
        self,
        code: str,
        new_state: InstrumentState,
        extra: dict[str, Any] | None = None,
    ) -> Instrument:
        instrument = self._require(code)
        updated = instrument.with_state(new_state)
        self.state.instruments[code] = updated
        return updated

    async def save_redemption_report(self, code: str, report: RedemptionReport) -> int:
        self.state.reports.append((code, report.to_dict()))
        return len(self.state.reports)

    async def list_redemption_reports(self, code: str) -> list[dict[str, Any]]:
        return [
            {**report, "reportId": index}
            for index, (report_code, report) in enumerate(self.state.reports, start=1)
            if report_code == code
        ]

    def _require(self, code: str) -> Instrument:
        instrument = self.state.instruments.get(code)
        if instrument is None:
            raise PreconditionError(f"instrument {code} not found")
        return instrument
