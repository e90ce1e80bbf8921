"""
workflow/bootstrap.py 테스트

CLI 인자 파싱과 명령 → 서비스 호출 매핑
"""

import argparse
from decimal import Decimal

import pytest

from adapters.mock.ledger_client import MockLedgerClient
from adapters.mock.workflow_store import MockWorkflowStore
from core.types import ErrorKind, InstrumentKind
from workflow.bootstrap import _credential, _json_default, build_parser, run_command
from workflow.service import TokenizationService


class TestParser:
    """build_parser 테스트"""

    def test_create(self) -> None:
        args = build_parser().parse_args(["create", "HALAL01", "--supply", "1000", "--kind", "ASSET"])

        assert args.command == "create"
        assert args.supply == Decimal("1000")
        assert args.kind == "ASSET"

    def test_redeem_bond_holders(self) -> None:
        args = build_parser().parse_args(
            [
                "redeem-bond", "HALAL01",
                "--principal", "0.01", "--profit-rate", "0.2",
                "--holder", "rA=sA", "--holder", "rB=sB",
            ]
        )

        assert args.profit_rate == Decimal("0.2")
        assert dict(args.holder) == {"rA": "sA", "rB": "sB"}

    def test_invalid_decimal(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["publish", "HALAL01", "--price", "abc"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    @pytest.mark.parametrize("value", ["rA", "=sA", "rA="])
    def test_invalid_credential(self, value: str) -> None:
        with pytest.raises(argparse.ArgumentTypeError):
            _credential(value)

    def test_json_default(self) -> None:
        assert _json_default(Decimal("0.012")) == "0.012"


class TestRunCommand:
    """run_command 테스트 (Mock 원장/저장소)"""

    @pytest.fixture
    def service(self, ledger: MockLedgerClient, store: MockWorkflowStore) -> TokenizationService:
        return TokenizationService(ledger=ledger, store=store)

    @pytest.mark.asyncio
    async def test_create_then_publish(self, service: TokenizationService) -> None:
        parser = build_parser()

        created = await run_command(service, parser.parse_args(["create", "HALAL01", "--supply", "1000"]))
        published = await run_command(service, parser.parse_args(["publish", "HALAL01", "--price", "0.01"]))
        book = await run_command(service, parser.parse_args(["orderbook", "HALAL01"]))

        assert created.success is True
        assert created.data.kind == InstrumentKind.BOND
        assert published.success is True
        assert book.data.best_ask.price_per_token == Decimal("0.01")

    @pytest.mark.asyncio
    async def test_create_holder_before_publish(self, service: TokenizationService) -> None:
        parser = build_parser()
        await run_command(service, parser.parse_args(["create", "HALAL01", "--supply", "1000"]))

        result = await run_command(service, parser.parse_args(["create-holder", "HALAL01", "--limit", "500"]))

        assert result.success is False
        assert result.error_kind == ErrorKind.PRECONDITION

    @pytest.mark.asyncio
    async def test_redeem_asset_wrong_kind(self, service: TokenizationService) -> None:
        parser = build_parser()
        await run_command(service, parser.parse_args(["create", "HALAL01", "--supply", "1000"]))

        result = await run_command(
            service, parser.parse_args(["redeem-asset", "HALAL01", "--proceeds", "50"])
        )

        assert result.success is False
        assert "BOND" in result.error.message
