"""
어댑터 레이어

외부 서비스(원장, DB, 알림 등)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    ILedgerClient,
    ILedgerSession,
    INotifier,
    IWorkflowStore,
)
from adapters.models import (
    AccountSettings,
    Balance,
    Offer,
    RawOrderBook,
    SubmitResult,
    TokenAmount,
    TransactionRequest,
    TrustLine,
    XrpAmount,
)

__all__ = [
    # Interfaces
    "ILedgerClient",
    "ILedgerSession",
    "INotifier",
    "IWorkflowStore",
    # Models
    "AccountSettings",
    "Balance",
    "Offer",
    "RawOrderBook",
    "SubmitResult",
    "TokenAmount",
    "TransactionRequest",
    "TrustLine",
    "XrpAmount",
]
