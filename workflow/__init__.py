"""
토큰화/상환 워크플로우

지갑 역할 레지스트리, 토큰화 엔진, 마켓 오퍼레이션, 상환 코디네이터와
이를 묶는 호출자 대상 서비스.
"""

from workflow.currency import derive_currency_id
from workflow.holders import holders_from_trust_lines
from workflow.market import MarketOperations
from workflow.payouts import asset_realization_payout, bond_maturity_payout
from workflow.redemption import RedemptionCoordinator
from workflow.service import TokenizationService
from workflow.tokenization import TokenizationEngine
from workflow.wallet_registry import WalletRoleRegistry

__all__ = [
    "derive_currency_id",
    "holders_from_trust_lines",
    "MarketOperations",
    "asset_realization_payout",
    "bond_maturity_payout",
    "RedemptionCoordinator",
    "TokenizationService",
    "TokenizationEngine",
    "WalletRoleRegistry",
]
