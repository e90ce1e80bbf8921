"""
Mock 어댑터

테스트용 Mock 구현체 제공.
Protocol 준수하여 실제 구현체와 교체 가능.
"""

from adapters.mock.ledger_client import MockLedgerClient, MockLedgerSession, MockLedgerState
from adapters.mock.notifier import MockNotifier
from adapters.mock.workflow_store import MockWorkflowStore

__all__ = [
    "MockLedgerClient",
    "MockLedgerSession",
    "MockLedgerState",
    "MockNotifier",
    "MockWorkflowStore",
]
