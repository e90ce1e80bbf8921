"""
데이터베이스 어댑터

SQLite WAL 모드 연결과 워크플로우 스키마.
"""

from adapters.db.sqlite_adapter import SCHEMA_VERSION, SQLiteAdapter, init_schema

__all__ = [
    "SCHEMA_VERSION",
    "SQLiteAdapter",
    "init_schema",
]
