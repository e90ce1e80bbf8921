"""
XRPL 어댑터

xrpl-py 기반 원장 연동을 담당.
웹소켓 세션, 트랜잭션 서명/제출, 계정/신뢰선/호가창 조회 지원.
"""

from adapters.xrpl.client import (
    XrplLedgerClient,
    XrplLedgerSession,
    explorer_account_url,
    explorer_tx_url,
)
from adapters.xrpl.models import (
    build_transaction,
    parse_account_settings,
    parse_amount,
    parse_trust_line,
)

__all__ = [
    "XrplLedgerClient",
    "XrplLedgerSession",
    "explorer_account_url",
    "explorer_tx_url",
    "build_transaction",
    "parse_account_settings",
    "parse_amount",
    "parse_trust_line",
]
