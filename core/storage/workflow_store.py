"""
Workflow Store

역할 바인딩, 토큰화 상품, 상환 보고서 영속화.
IWorkflowStore Protocol 구현.

역할 바인딩은 role PRIMARY KEY로 유일성 보장.
동시에 두 프로세스가 바인딩을 생성하면 INSERT OR IGNORE 후 재조회하여
먼저 저장된 쪽(승자)의 계정을 양쪽 모두 돌려받음.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.errors import PreconditionError
from core.domain.instrument import Instrument
from core.domain.results import RedemptionReport
from core.domain.state_machines import InstrumentState
from core.types import InstrumentKind, LedgerAccount

logger = logging.getLogger(__name__)


_INSTRUMENT_COLUMNS = """
    code, kind, total_supply, state, currency_id,
    issuer_address, treasury_address, created_at, updated_at
"""


class SQLiteWorkflowStore:
    """워크플로우 저장소

    Args:
        adapter: 연결된 SQLite 어댑터 (init_schema 완료 상태)

    사용 예시:
    ```python
    async with SQLiteAdapter(db_path) as db:
        await init_schema(db)
        store = SQLiteWorkflowStore(db)

        issuer = await store.get_role_binding("ISSUER")
        instrument = await store.get_instrument("HALAL01")
    ```
    """

    def __init__(self, adapter: SQLiteAdapter):
        self.adapter = adapter

    # -------------------------------------------------------------------------
    # 역할 바인딩
    # -------------------------------------------------------------------------

    async def get_role_binding(self, role: str) -> LedgerAccount | None:
        """역할 바인딩 조회"""
        row = await self.adapter.fetchone(
            "SELECT address, seed FROM role_bindings WHERE role = ?",
            (role,),
        )
        if row is None:
            return None
        return LedgerAccount(address=row[0], seed=row[1])

    async def save_role_binding(self, role: str, account: LedgerAccount) -> LedgerAccount:
        """역할 바인딩 저장 (이미 있으면 기존 바인딩 유지)

        Returns:
            저장되어 있는 계정 (경쟁에서 진 경우 승자의 계정)
        """
        cursor = await self.adapter.write(
            "INSERT OR IGNORE INTO role_bindings (role, address, seed) VALUES (?, ?, ?)",
            (role, account.address, account.seed),
        )

        if cursor.rowcount > 0:
            logger.info(f"Role binding created: {role}", extra={"address": account.address})
            return account

        winner = await self.get_role_binding(role)
        if winner is None:
            raise PreconditionError(f"role binding {role} disappeared after conflict")
        return winner

    # -------------------------------------------------------------------------
    # 상품
    # -------------------------------------------------------------------------

    async def get_instrument(self, code: str) -> Instrument | None:
        """상품 조회"""
        row = await self.adapter.fetchone(
            f"SELECT {_INSTRUMENT_COLUMNS} FROM instruments WHERE code = ?",
            (code,),
        )
        if row is None:
            return None
        return self._row_to_instrument(row)

    async def create_instrument(self, instrument: Instrument) -> Instrument:
        """상품 생성

        Raises:
            PreconditionError: 같은 코드의 상품이 이미 존재
        """
        now = datetime.now(timezone.utc)
        created_at = instrument.created_at or now
        updated_at = instrument.updated_at or now

        cursor = await self.adapter.write(
            f"""
            INSERT OR IGNORE INTO instruments ({_INSTRUMENT_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                instrument.code,
                instrument.kind.value,
                str(instrument.total_supply),
                instrument.state.value,
                instrument.currency_id,
                instrument.issuer_address,
                instrument.treasury_address,
                created_at.isoformat(),
                updated_at.isoformat(),
            ),
        )

        if cursor.rowcount == 0:
            raise PreconditionError(f"instrument {instrument.code} already exists")

        logger.info(
            f"Instrument created: {instrument.code}",
            extra={"kind": instrument.kind.value, "total_supply": str(instrument.total_supply)},
        )
        stored = await self.get_instrument(instrument.code)
        assert stored is not None
        return stored

    async def set_currency_id(self, code: str, currency_id: str) -> Instrument:
        """currency_id 할당 (한 번만, 같은 값 재할당은 허용)

        Raises:
            PreconditionError: 상품이 없거나 다른 currency_id가 이미 할당됨
        """
        instrument = await self._require_instrument(code)
        updated = instrument.with_currency_id(currency_id)
        if instrument.currency_id == currency_id:
            return instrument

        # 조건부 UPDATE로 다른 프로세스의 동시 할당과 경쟁해도 한 번만 기록
        cursor = await self.adapter.write(
            """
            UPDATE instruments
            SET currency_id = ?, updated_at = ?
            WHERE code = ? AND currency_id IS NULL
            """,
            (currency_id, updated.updated_at.isoformat(), code),
        )

        if cursor.rowcount == 0:
            current = await self._require_instrument(code)
            return current.with_currency_id(currency_id)

        logger.info(f"Currency id assigned: {code}", extra={"currency_id": currency_id})
        return updated

    async def update_instrument_state(
        self,
        code: str,
        new_state: InstrumentState,
        extra: dict[str, Any] | None = None,
    ) -> Instrument:
        """상품 상태 전이

        Raises:
            PreconditionError: 상품 없음
            StateMachineError: 허용되지 않은 전이
        """
        instrument = await self._require_instrument(code)
        updated = instrument.with_state(new_state)

        cursor = await self.adapter.write(
            """
            UPDATE instruments
            SET state = ?, extra_json = COALESCE(?, extra_json), updated_at = ?
            WHERE code = ? AND state = ?
            """,
            (
                updated.state.value,
                json.dumps(extra, ensure_ascii=False, default=str) if extra else None,
                updated.updated_at.isoformat(),
                code,
                instrument.state.value,
            ),
        )

        if cursor.rowcount == 0:
            # 다른 프로세스가 먼저 전이시킴 → 최신 상태 기준으로 다시 검증
            current = await self._require_instrument(code)
            return current.with_state(new_state)

        logger.info(
            f"Instrument state: {instrument.state.value} → {updated.state.value}",
            extra={"code": code},
        )
        return updated

    # -------------------------------------------------------------------------
    # 상환 보고서
    # -------------------------------------------------------------------------

    async def save_redemption_report(self, code: str, report: RedemptionReport) -> int:
        """상환 보고서 저장

        Returns:
            보고서 ID
        """
        cursor = await self.adapter.write(
            """
            INSERT INTO redemption_reports (
                instrument_code, currency_id,
                holders_processed, holders_successful, holders_failed,
                total_tokens, total_xrp,
                report_json, executed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                code,
                report.currency_id,
                report.holders_processed,
                report.holders_successful,
                report.holders_failed,
                str(report.total_tokens_redeemed),
                str(report.total_xrp_paid),
                json.dumps(report.to_dict(), ensure_ascii=False),
                report.executed_at.isoformat(),
            ),
        )

        report_id = cursor.lastrowid
        assert report_id is not None
        logger.info(
            f"Redemption report saved: {code}",
            extra={"report_id": report_id, "holders_failed": report.holders_failed},
        )
        return report_id

    async def list_redemption_reports(self, code: str) -> list[dict[str, Any]]:
        """상품의 상환 보고서 목록 (저장 순)"""
        rows = await self.adapter.fetchall(
            """
            SELECT id, report_json
            FROM redemption_reports
            WHERE instrument_code = ?
            ORDER BY id ASC
            """,
            (code,),
        )
        reports = []
        for row in rows:
            report = json.loads(row[1])
            report["reportId"] = row[0]
            reports.append(report)
        return reports

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    async def _require_instrument(self, code: str) -> Instrument:
        instrument = await self.get_instrument(code)
        if instrument is None:
            raise PreconditionError(f"instrument {code} not found")
        return instrument

    @staticmethod
    def _row_to_instrument(row: tuple[Any, ...]) -> Instrument:
        return Instrument(
            code=row[0],
            kind=InstrumentKind(row[1]),
            total_supply=Decimal(row[2]),
            state=InstrumentState(row[3]),
            currency_id=row[4],
            issuer_address=row[5],
            treasury_address=row[6],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
        )
