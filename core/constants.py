"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class LedgerEndpoints:
    """XRPL 웹소켓 엔드포인트 (고정값)

    공식 문서: https://xrpl.org/docs/tutorials/public-servers
    """

    MAINNET_WS_URL: str = "wss://xrplcluster.com"
    TESTNET_WS_URL: str = "wss://s.altnet.rippletest.net:51233"
    DEVNET_WS_URL: str = "wss://s.devnet.rippletest.net:51233"


class ExplorerUrls:
    """네트워크별 익스플로러 베이스 URL"""

    MAINNET: str = "https://livenet.xrpl.org"
    TESTNET: str = "https://testnet.xrpl.org"
    DEVNET: str = "https://devnet.xrpl.org"


class LedgerConstants:
    """원장 프로토콜 상수"""

    SUCCESS_CODE: str = "tesSUCCESS"
    NATIVE_CURRENCY: str = "XRP"

    # 1 XRP = 1,000,000 drops
    DROPS_PER_XRP: Decimal = Decimal("1000000")
    XRP_QUANTUM: Decimal = Decimal("0.000001")

    # 표준 통화 코드 길이 / 비표준(hex) 통화 코드 길이
    STANDARD_CODE_LENGTH: int = 3
    HEX_CODE_LENGTH: int = 40
    HEX_CODE_MAX_BYTES: int = 20


class Defaults:
    """기본값 상수"""

    NETWORK: str = "testnet"

    ORDER_BOOK_LIMIT: int = 50
    TRUST_LINE_PAGE_LIMIT: int = 400
    HOLDER_TRUST_LIMIT: Decimal = Decimal("1000000")

    # 상환 시 보유자 주문 취소 동시 실행 수
    CANCEL_WORKERS: int = 4

    # 트랜잭션 검증 대기 타임아웃 (초)
    SUBMIT_TIMEOUT_SEC: float = 60.0

    LOG_LEVEL: str = "INFO"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SECRETS_FILE: Path = CONFIG_DIR / "secrets.yaml"

    # DB 파일
    MAINNET_DB: Path = DATA_DIR / "tokenization_mainnet.db"
    TESTNET_DB: Path = DATA_DIR / "tokenization_testnet.db"
    DEVNET_DB: Path = DATA_DIR / "tokenization_devnet.db"
