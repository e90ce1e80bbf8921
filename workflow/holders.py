"""
보유자 스냅샷

발행자 관점 신뢰선 잔고 부호 규약을 한 곳에서만 해석.

발행자 계정으로 신뢰선을 조회하면 상대 계정이 보유한 토큰은
발행자의 부채이므로 음수 잔고로 보고됨.
  balance < 0  → 상대 계정이 abs(balance)만큼 보유
  balance >= 0 → 보유 토큰 없음 (제외)
"""

from decimal import Decimal

from adapters.models import TrustLine
from core.domain.results import HolderSnapshot


def holder_balance(line: TrustLine) -> Decimal:
    """발행자 관점 신뢰선 → 상대 계정 보유량 (보유 없으면 0)"""
    if line.balance < 0:
        return -line.balance
    return Decimal("0")


def holders_from_trust_lines(lines: list[TrustLine], currency_id: str) -> list[HolderSnapshot]:
    """발행자 관점 신뢰선 목록 → 보유자 스냅샷

    Args:
        lines: 발행자 계정으로 조회한 신뢰선
        currency_id: 대상 통화 식별자

    Returns:
        보유량이 있는 보유자 목록 (조회 순서 유지)
    """
    holders: list[HolderSnapshot] = []
    for line in lines:
        if line.currency != currency_id:
            continue
        balance = holder_balance(line)
        if balance > 0:
            holders.append(HolderSnapshot(address=line.counterparty, token_balance=balance))
    return holders


def outstanding_supply(lines: list[TrustLine], currency_id: str) -> Decimal:
    """발행자 관점 유통량 합계 (모든 보유자 보유량 합)"""
    return sum(
        (h.token_balance for h in holders_from_trust_lines(lines, currency_id)),
        Decimal("0"),
    )


def split_treasury(
    holders: list[HolderSnapshot],
    treasury_address: str,
) -> tuple[list[HolderSnapshot], Decimal]:
    """스냅샷에서 재무 계정 분리

    재무 계정이 들고 있는 미판매분은 상환 대상 보유자가 아님.

    Returns:
        (재무 계정을 제외한 보유자, 재무 계정 미판매 수량)
    """
    others = [h for h in holders if h.address != treasury_address]
    unsold = sum(
        (h.token_balance for h in holders if h.address == treasury_address),
        Decimal("0"),
    )
    return others, unsold
