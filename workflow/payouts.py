"""
토큰당 지급액 계산 (호출자 측 사전 계산, 순수 함수)

상환 코디네이터는 payout_per_token 하나만 받음.
상품 종류별 계산식은 여기서만 정의.
"""

from decimal import Decimal

from core.domain.errors import PreconditionError


def bond_maturity_payout(principal: Decimal, profit_rate: Decimal) -> Decimal:
    """채권 만기 지급액: principal * (1 + profit_rate)

    Args:
        principal: 토큰당 원금 (XRP)
        profit_rate: 수익률 (0.2 = 20%)
    """
    if principal <= 0:
        raise PreconditionError("principal must be positive")
    if profit_rate <= Decimal("-1"):
        raise PreconditionError("profit_rate must be greater than -1")
    return principal * (Decimal("1") + profit_rate)


def asset_realization_payout(total_sale_proceeds: Decimal, total_supply: Decimal) -> Decimal:
    """실물자산 매각 지급액: total_sale_proceeds / total_supply"""
    if total_supply <= 0:
        raise PreconditionError("total_supply must be positive")
    if total_sale_proceeds <= 0:
        raise PreconditionError("total_sale_proceeds must be positive")
    return total_sale_proceeds / total_supply
