"""
Workflow Bootstrap

설정 로드, 의존성 주입, CLI 명령 실행.
명령 결과는 {success, data?, error?, warning?} JSON 봉투로 출력.
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.slack.notifier import SlackNotifier
from adapters.xrpl.client import XrplLedgerClient
from core.config.loader import Settings, get_settings
from core.domain.results import OperationResult
from core.logging import setup_logging
from core.storage.workflow_store import SQLiteWorkflowStore
from core.types import InstrumentKind
from workflow.service import TokenizationService

logger = logging.getLogger(__name__)


def _decimal(value: str) -> Decimal:
    """argparse용 Decimal 변환"""
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise argparse.ArgumentTypeError(f"invalid decimal: {value}") from e


def _credential(value: str) -> tuple[str, str]:
    """ADDRESS=SEED 형식 보유자 자격 증명"""
    address, sep, seed = value.partition("=")
    if not sep or not address or not seed:
        raise argparse.ArgumentTypeError("holder credential must be ADDRESS=SEED")
    return address, seed


def build_parser() -> argparse.ArgumentParser:
    """CLI 파서 생성"""
    parser = argparse.ArgumentParser(
        prog="python -m workflow",
        description="Tokenization & redemption workflow",
    )
    parser.add_argument("--log-level", default="INFO", help="console log level")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="create a DRAFT instrument")
    create.add_argument("code")
    create.add_argument("--supply", type=_decimal, required=True)
    create.add_argument(
        "--kind",
        choices=[k.value for k in InstrumentKind],
        default=InstrumentKind.BOND.value,
    )

    publish = sub.add_parser("publish", help="mint, publish and list the full supply")
    publish.add_argument("code")
    publish.add_argument("--price", type=_decimal, required=True, help="XRP per token")

    orderbook = sub.add_parser("orderbook", help="show the normalized order book")
    orderbook.add_argument("code")

    portfolio = sub.add_parser("portfolio", help="show balances of an account")
    portfolio.add_argument("address")

    holder = sub.add_parser("create-holder", help="fund a holder account with a trust line")
    holder.add_argument("code")
    holder.add_argument("--limit", type=_decimal, default=None)

    reports = sub.add_parser("reports", help="list stored redemption reports")
    reports.add_argument("code")

    redeem_bond = sub.add_parser("redeem-bond", help="redeem a bond at maturity")
    redeem_bond.add_argument("code")
    redeem_bond.add_argument("--principal", type=_decimal, required=True)
    redeem_bond.add_argument("--profit-rate", type=_decimal, required=True)
    redeem_bond.add_argument("--holder", type=_credential, action="append", default=[])

    redeem_asset = sub.add_parser("redeem-asset", help="redeem a real asset after realization")
    redeem_asset.add_argument("code")
    redeem_asset.add_argument("--proceeds", type=_decimal, required=True)
    redeem_asset.add_argument("--holder", type=_credential, action="append", default=[])

    return parser


def _create_notifier(settings: Settings) -> SlackNotifier | None:
    """Slack Notifier 생성 (설정이 있는 경우에만)"""
    webhook_url = settings.slack_webhook_url
    if not webhook_url:
        logger.info("Slack webhook_url이 설정되지 않아 알림 비활성화")
        return None
    return SlackNotifier(webhook_url=webhook_url)


async def run_command(service: TokenizationService, args: argparse.Namespace) -> OperationResult:
    """파싱된 명령 실행"""
    command = args.command

    if command == "create":
        return await service.create_instrument(args.code, args.supply, InstrumentKind(args.kind))

    if command == "publish":
        return await service.publish(args.code, args.price)

    if command == "orderbook":
        return await service.fetch_instrument_order_book(args.code)

    if command == "portfolio":
        return await service.get_portfolio(args.address)

    if command == "reports":
        return await service.list_redemption_reports(args.code)

    if command == "create-holder":
        if args.limit is None:
            return await service.create_instrument_holder(args.code)
        return await service.create_instrument_holder(args.code, args.limit)

    if command == "redeem-bond":
        return await service.redeem_bond(
            args.code, args.principal, args.profit_rate, dict(args.holder)
        )

    if command == "redeem-asset":
        return await service.redeem_asset(args.code, args.proceeds, dict(args.holder))

    raise ValueError(f"unknown command: {command}")


async def main(argv: Sequence[str] | None = None) -> int:
    """CLI 메인 함수

    Returns:
        종료 코드 (성공 0, 실패 1)
    """
    args = build_parser().parse_args(argv)
    setup_logging("workflow", console_level=getattr(logging, args.log_level.upper(), logging.INFO))

    # 1. 설정 로드
    try:
        settings = get_settings()
    except Exception as e:
        logger.error(f"설정 로드 실패: {e}")
        return 1

    ledger_config = settings.ledger_config
    logger.info(f"Mode: {settings.mode.value}")
    logger.info(f"DB: {settings.db_path}")

    ledger = XrplLedgerClient(
        ws_url=ledger_config.ws_url,
        faucet_host=ledger_config.faucet_host,
        allow_faucet=ledger_config.allow_faucet,
    )
    notifier = _create_notifier(settings)

    # 2. DB 연결 및 스키마 초기화
    async with SQLiteAdapter(settings.db_path) as db:
        await init_schema(db)

        service = TokenizationService(
            ledger=ledger,
            store=SQLiteWorkflowStore(db),
            notifier=notifier,
            explorer_url=ledger_config.explorer_url,
        )

        try:
            result = await run_command(service, args)
        finally:
            if notifier is not None:
                await notifier.close()

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=_json_default))
    return 0 if result.success else 1


def _json_default(value: Any) -> Any:
    """JSON 직렬화 보조 (Decimal 등)"""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return str(value)


def run(argv: Sequence[str] | None = None) -> None:
    """동기 진입점"""
    sys.exit(asyncio.run(main(argv)))
