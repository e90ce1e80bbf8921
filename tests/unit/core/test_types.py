"""
core/types.py 테스트

Enum 문자열 직렬화와 계정 seed 비노출 확인
"""

from core.types import (
    ErrorKind,
    InstrumentKind,
    LedgerAccount,
    RoleBinding,
    TransactionType,
    WalletRole,
)


class TestEnums:
    """Enum 값 테스트"""

    def test_transaction_type_matches_ledger_names(self) -> None:
        """XRPL TransactionType 이름 그대로"""
        assert TransactionType.CLAWBACK.value == "Clawback"
        assert TransactionType.OFFER_CREATE.value == "OfferCreate"

    def test_str_comparison(self) -> None:
        """str 상속으로 문자열과 비교 가능"""
        assert WalletRole.ISSUER == "ISSUER"
        assert InstrumentKind("ASSET") is InstrumentKind.ASSET
        assert ErrorKind.PARTIAL_BATCH.value == "PARTIAL_BATCH"


class TestLedgerAccount:
    """LedgerAccount 테스트"""

    def test_repr_hides_seed(self) -> None:
        account = LedgerAccount(address="rAddress", seed="sSecretSeed")

        assert "sSecretSeed" not in repr(account)
        assert "rAddress" in repr(account)

    def test_public_dict(self) -> None:
        account = LedgerAccount(address="rAddress", seed="sSecretSeed")

        assert account.to_public_dict() == {"address": "rAddress"}


class TestRoleBinding:
    """RoleBinding 테스트"""

    def test_create_from_enum(self) -> None:
        binding = RoleBinding.create(WalletRole.TREASURY, LedgerAccount("rT", "sT"))

        assert binding.role == "TREASURY"

    def test_create_from_string(self) -> None:
        binding = RoleBinding.create("ISSUER", LedgerAccount("rI", "sI"))

        assert binding.role == "ISSUER"
