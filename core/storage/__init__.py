"""
스토리지 모듈

역할 바인딩, 토큰화 상품, 상환 보고서 저장소 제공
"""

from core.storage.workflow_store import SQLiteWorkflowStore

__all__ = [
    "SQLiteWorkflowStore",
]
