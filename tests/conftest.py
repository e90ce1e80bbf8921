"""
pytest 공통 fixture 정의

Mock 원장/저장소/알림과 임시 SQLite DB, secrets.yaml 파일 제공
"""

from decimal import Decimal
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema
from adapters.mock.ledger_client import MockLedgerClient
from adapters.mock.notifier import MockNotifier
from adapters.mock.workflow_store import MockWorkflowStore
from core.config.loader import Settings
from core.types import AccountFlag, LedgerAccount


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Settings 싱글턴 초기화"""
    Settings.reset()
    yield
    Settings.reset()


# -------------------------------------------------------------------------
# Mock 어댑터
# -------------------------------------------------------------------------

@pytest.fixture
def ledger() -> MockLedgerClient:
    """Mock 원장 클라이언트"""
    return MockLedgerClient()


@pytest.fixture
def store() -> MockWorkflowStore:
    """Mock 워크플로우 저장소"""
    return MockWorkflowStore()


@pytest.fixture
def notifier() -> MockNotifier:
    """Mock Notifier"""
    return MockNotifier()


@pytest.fixture
def issuer(ledger: MockLedgerClient) -> LedgerAccount:
    """Clawback/DefaultRipple 설정된 발행자"""
    account = ledger.add_account()
    ledger.set_flag(account.address, AccountFlag.DEFAULT_RIPPLE)
    ledger.set_flag(account.address, AccountFlag.ALLOW_CLAWBACK)
    return account


@pytest.fixture
def treasury(ledger: MockLedgerClient) -> LedgerAccount:
    """재무 계정 (1000 XRP)"""
    return ledger.add_account(xrp=Decimal("1000"))


# -------------------------------------------------------------------------
# SQLite
# -------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[SQLiteAdapter, None]:
    """스키마가 초기화된 임시 SQLite DB"""
    adapter = SQLiteAdapter(tmp_path / "workflow.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


# -------------------------------------------------------------------------
# secrets.yaml
# -------------------------------------------------------------------------

@pytest.fixture
def temp_secrets_file(tmp_path: Path) -> Path:
    """테스트용 secrets.yaml (testnet)"""
    secrets_content = """# 테스트용 secrets.yaml
mode: testnet

testnet:
  ledger_url: "wss://testnet.example.com:51233"
  faucet_host: "faucet.example.com"

slack:
  webhook_url: "https://hooks.slack.com/services/T000/B000/XXX"
"""
    secrets_path = tmp_path / "secrets.yaml"
    secrets_path.write_text(secrets_content, encoding="utf-8")
    return secrets_path


@pytest.fixture
def temp_secrets_file_mainnet(tmp_path: Path) -> Path:
    """테스트용 secrets.yaml (mainnet, 섹션 없음)"""
    secrets_path = tmp_path / "secrets_mainnet.yaml"
    secrets_path.write_text("mode: mainnet\n", encoding="utf-8")
    return secrets_path
