"""
타입 정의 모듈

Enum, Dataclass 등 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from dataclasses import dataclass
from enum import Enum


class NetworkMode(str, Enum):
    """원장 네트워크 모드"""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"


class WalletRole(str, Enum):
    """지갑 역할 (Role Binding)"""

    ISSUER = "ISSUER"
    TREASURY = "TREASURY"


class InstrumentKind(str, Enum):
    """토큰화 대상 상품 종류"""

    BOND = "BOND"
    ASSET = "ASSET"


class OfferSide(str, Enum):
    """오퍼 방향 (토큰 기준)"""

    BUY = "BUY"
    SELL = "SELL"


class TransactionType(str, Enum):
    """원장 트랜잭션 유형 (XRPL TransactionType 이름 그대로 사용)"""

    ACCOUNT_SET = "AccountSet"
    TRUST_SET = "TrustSet"
    PAYMENT = "Payment"
    OFFER_CREATE = "OfferCreate"
    OFFER_CANCEL = "OfferCancel"
    CLAWBACK = "Clawback"


class AccountFlag(str, Enum):
    """AccountSet으로 켜는 계정 플래그"""

    DEFAULT_RIPPLE = "DEFAULT_RIPPLE"
    ALLOW_CLAWBACK = "ALLOW_TRUSTLINE_CLAWBACK"


class ErrorKind(str, Enum):
    """실패 분류 (호출자가 분기할 수 있는 구조화된 에러 종류)"""

    PRECONDITION = "PRECONDITION"
    TRANSPORT = "TRANSPORT"
    LEDGER_REJECTED = "LEDGER_REJECTED"
    PARTIAL_BATCH = "PARTIAL_BATCH"


class RedemptionStep(str, Enum):
    """보유자 단위 상환 단계"""

    CANCEL_OFFERS = "cancel_offers"
    CLAWBACK = "clawback"
    PAYMENT = "payment"
    TREASURY_RECLAIM = "treasury_reclaim"


@dataclass(frozen=True)
class LedgerAccount:
    """원장 계정 (불변)

    seed는 불투명한 비밀값으로만 취급하며 로그/직렬화에 포함하지 않음
    """

    address: str
    seed: str

    def __repr__(self) -> str:
        return f"LedgerAccount(address={self.address!r})"

    def to_public_dict(self) -> dict[str, str]:
        """seed를 제외한 공개 정보"""
        return {"address": self.address}


@dataclass(frozen=True)
class RoleBinding:
    """역할 → 원장 계정 바인딩 (불변)

    역할당 최대 1개, 최초 요청 시 생성되며 재할당되지 않음
    """

    role: str
    account: LedgerAccount

    @classmethod
    def create(cls, role: str | WalletRole, account: LedgerAccount) -> "RoleBinding":
        """RoleBinding 생성 헬퍼

        Enum 또는 문자열 모두 허용
        """
        return cls(
            role=role.value if isinstance(role, Enum) else role,
            account=account,
        )
