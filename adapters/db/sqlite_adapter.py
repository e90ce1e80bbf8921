"""
SQLite 어댑터

워크플로우 DB 연결과 스키마.
여러 CLI 프로세스가 같은 파일을 동시에 열 수 있도록 WAL 모드 + busy_timeout 사용.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)


# 연결마다 적용
_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=30000",
    "PRAGMA foreign_keys=ON",
)

Params = tuple[Any, ...] | None


class SQLiteAdapter:
    """aiosqlite 연결 래퍼

    Args:
        db_path: DB 파일 경로 (":memory:" 허용, 상위 디렉토리는 자동 생성)

    사용 예시:
    ```python
    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)
        row = await db.fetchone("SELECT state FROM instruments WHERE code = ?", ("HALAL01",))
    ```
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        if self._conn is not None:
            return

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(self.db_path))
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        self._conn = conn
        logger.info("SQLite 연결", extra={"db_path": str(self.db_path)})

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.info("SQLite 연결 종료", extra={"db_path": str(self.db_path)})

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    async def execute(self, sql: str, parameters: Params = None) -> aiosqlite.Cursor:
        return await self._connection().execute(sql, parameters or ())

    async def write(self, sql: str, parameters: Params = None) -> aiosqlite.Cursor:
        """단일 쓰기 문장 실행 후 즉시 커밋

        rowcount/lastrowid 확인용으로 커서 반환.
        """
        cursor = await self.execute(sql, parameters)
        await self._connection().commit()
        return cursor

    async def fetchone(self, sql: str, parameters: Params = None) -> tuple[Any, ...] | None:
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, parameters: Params = None) -> list[tuple[Any, ...]]:
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        await self._connection().commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """여러 문장을 묶는 트랜잭션 (예외 시 롤백)"""
        conn = self._connection()
        try:
            yield conn
        except Exception:
            await conn.rollback()
            raise
        await conn.commit()

    async def table_exists(self, table_name: str) -> bool:
        row = await self.fetchone(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (table_name,),
        )
        return row is not None

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# =============================================================================
# 스키마
# =============================================================================

SCHEMA_VERSION = 1

# 수량/금액은 Decimal 문자열(TEXT)로 저장
SCHEMA: tuple[str, ...] = (
    # 역할당 1행. seed는 평문이므로 DB 파일 접근 통제 필요
    """
    CREATE TABLE IF NOT EXISTS role_bindings (
        role             TEXT PRIMARY KEY,
        address          TEXT NOT NULL,
        seed             TEXT NOT NULL,
        created_at       TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS instruments (
        code             TEXT PRIMARY KEY,
        kind             TEXT NOT NULL,
        total_supply     TEXT NOT NULL,
        state            TEXT NOT NULL DEFAULT 'DRAFT',
        currency_id      TEXT,
        issuer_address   TEXT,
        treasury_address TEXT,
        extra_json       TEXT,
        created_at       TEXT NOT NULL,
        updated_at       TEXT NOT NULL
    )
    """,
    # 상환 실행마다 1행 (불변)
    """
    CREATE TABLE IF NOT EXISTS redemption_reports (
        id                 INTEGER PRIMARY KEY AUTOINCREMENT,
        instrument_code    TEXT NOT NULL REFERENCES instruments(code),
        currency_id        TEXT NOT NULL,
        holders_processed  INTEGER NOT NULL,
        holders_successful INTEGER NOT NULL,
        holders_failed     INTEGER NOT NULL,
        total_tokens       TEXT NOT NULL,
        total_xrp          TEXT NOT NULL,
        report_json        TEXT NOT NULL,
        executed_at        TEXT NOT NULL,
        created_at         TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    # 잘린 코드는 같은 currency_id를 가질 수 있으므로 UNIQUE 아님
    "CREATE INDEX IF NOT EXISTS ix_instruments_currency_id ON instruments(currency_id)",
    "CREATE INDEX IF NOT EXISTS ix_redemption_reports_instrument ON redemption_reports(instrument_code, id)",
)


async def init_schema(adapter: SQLiteAdapter) -> None:
    """테이블/인덱스 생성 (여러 번 호출해도 안전)"""
    async with adapter.transaction() as conn:
        for statement in SCHEMA:
            await conn.execute(statement)
        await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    logger.info("스키마 초기화 완료", extra={"schema_version": SCHEMA_VERSION})
