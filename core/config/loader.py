"""
설정 로더

config/secrets.yaml → 네트워크 모드, 원장 엔드포인트, Slack Webhook.

secrets.yaml 형식:
    mode: testnet            # testnet | devnet | mainnet
    testnet:                 # 모드 섹션 (선택, 없으면 공용 엔드포인트)
      ledger_url: "wss://s.altnet.rippletest.net:51233"
      faucet_host: "faucet.altnet.rippletest.net"
    slack:
      webhook_url: "https://hooks.slack.com/services/..."
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import ExplorerUrls, LedgerEndpoints, Paths
from core.types import NetworkMode


class SecretsLoadError(Exception):
    """secrets.yaml을 읽을 수 없거나 필수 값이 없음"""


@dataclass(frozen=True)
class Secrets:
    """secrets.yaml 내용 (불변)"""

    mode: NetworkMode
    ledger_url: str
    faucet_host: str | None
    slack_webhook_url: str | None


@dataclass(frozen=True)
class LedgerConfig:
    """원장 연결 설정

    allow_faucet은 메인넷에서 False (faucet 없음 → 역할 계정 자동 생성 불가)
    """

    ws_url: str
    explorer_url: str
    faucet_host: str | None
    allow_faucet: bool


# 모드별 기본값: (웹소켓 엔드포인트, 익스플로러, DB 파일)
_NETWORK_DEFAULTS: dict[NetworkMode, tuple[str, str, Path]] = {
    NetworkMode.MAINNET: (LedgerEndpoints.MAINNET_WS_URL, ExplorerUrls.MAINNET, Paths.MAINNET_DB),
    NetworkMode.TESTNET: (LedgerEndpoints.TESTNET_WS_URL, ExplorerUrls.TESTNET, Paths.TESTNET_DB),
    NetworkMode.DEVNET: (LedgerEndpoints.DEVNET_WS_URL, ExplorerUrls.DEVNET, Paths.DEVNET_DB),
}


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SecretsLoadError(f"secrets.yaml 파일을 찾을 수 없습니다: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise SecretsLoadError(f"secrets.yaml 파싱 실패: {e}") from e
    if not isinstance(data, dict):
        raise SecretsLoadError("secrets.yaml이 비어 있거나 매핑 형식이 아닙니다")
    return data


def _parse_mode(value: Any) -> NetworkMode:
    if value is None:
        raise SecretsLoadError("secrets.yaml에 'mode' 필드가 없습니다")
    try:
        return NetworkMode(value)
    except ValueError as e:
        valid = ", ".join(m.value for m in NetworkMode)
        raise ValueError(f"유효하지 않은 mode입니다: '{value}' (가능: {valid})") from e


def load_secrets(path: Path | None = None) -> Secrets:
    """secrets.yaml 로드

    Args:
        path: 파일 경로 (None이면 Paths.SECRETS_FILE)

    Raises:
        SecretsLoadError: 파일 없음, YAML 오류, mode 누락, ws(s)가 아닌 ledger_url
        ValueError: 알 수 없는 mode
    """
    data = _read_yaml(path or Paths.SECRETS_FILE)
    mode = _parse_mode(data.get("mode"))

    section = data.get(mode.value) or {}
    ledger_url = section.get("ledger_url") or _NETWORK_DEFAULTS[mode][0]
    if not ledger_url.startswith(("wss://", "ws://")):
        raise SecretsLoadError(
            f"{mode.value}.ledger_url은 ws:// 또는 wss:// 여야 합니다: {ledger_url}"
        )

    return Secrets(
        mode=mode,
        ledger_url=ledger_url,
        faucet_host=section.get("faucet_host") or None,
        slack_webhook_url=(data.get("slack") or {}).get("webhook_url") or None,
    )


def get_ledger_config(secrets: Secrets) -> LedgerConfig:
    """모드에 맞는 원장 연결 설정"""
    return LedgerConfig(
        ws_url=secrets.ledger_url,
        explorer_url=_NETWORK_DEFAULTS[secrets.mode][1],
        faucet_host=secrets.faucet_host,
        allow_faucet=secrets.mode != NetworkMode.MAINNET,
    )


def get_db_path(secrets: Secrets) -> Path:
    """모드별 DB 파일 (테스트넷 계정이 메인넷 DB에 섞이지 않도록 분리)"""
    return _NETWORK_DEFAULTS[secrets.mode][2]


class Settings:
    """프로세스 전역 설정 (싱글턴)

    최초 생성 시 한 번만 secrets.yaml을 읽고, 이후 호출은 같은 인스턴스를 반환.
    """

    _instance: "Settings | None" = None
    _secrets: Secrets

    def __new__(cls, secrets_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._secrets = load_secrets(secrets_path)
            cls._instance = instance
        return cls._instance

    @property
    def secrets(self) -> Secrets:
        return self._secrets

    @property
    def mode(self) -> NetworkMode:
        return self._secrets.mode

    @property
    def ledger_config(self) -> LedgerConfig:
        return get_ledger_config(self._secrets)

    @property
    def slack_webhook_url(self) -> str | None:
        return self._secrets.slack_webhook_url

    @property
    def db_path(self) -> Path:
        return get_db_path(self._secrets)

    @classmethod
    def reset(cls) -> None:
        """싱글턴 폐기 (테스트용)"""
        cls._instance = None


def get_settings(secrets_path: Path | None = None) -> Settings:
    """Settings 싱글턴 반환 (최초 호출 시 secrets_path 로드)"""
    return Settings(secrets_path)
