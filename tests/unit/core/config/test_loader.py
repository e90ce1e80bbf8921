"""
core/config/loader.py 테스트

secrets.yaml 로드, 모드별 원장 설정, Settings 싱글턴
"""

from pathlib import Path

import pytest

from core.config.loader import (
    SecretsLoadError,
    Settings,
    get_db_path,
    get_ledger_config,
    get_settings,
    load_secrets,
)
from core.constants import ExplorerUrls, LedgerEndpoints, Paths
from core.types import NetworkMode


class TestLoadSecrets:
    """load_secrets 테스트"""

    def test_load_testnet(self, temp_secrets_file: Path) -> None:
        secrets = load_secrets(temp_secrets_file)

        assert secrets.mode == NetworkMode.TESTNET
        assert secrets.ledger_url == "wss://testnet.example.com:51233"
        assert secrets.faucet_host == "faucet.example.com"
        assert secrets.slack_webhook_url == "https://hooks.slack.com/services/T000/B000/XXX"

    def test_mode_section_optional(self, temp_secrets_file_mainnet: Path) -> None:
        """모드 섹션이 없으면 공용 엔드포인트"""
        secrets = load_secrets(temp_secrets_file_mainnet)

        assert secrets.mode == NetworkMode.MAINNET
        assert secrets.ledger_url == LedgerEndpoints.MAINNET_WS_URL
        assert secrets.faucet_host is None
        assert secrets.slack_webhook_url is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SecretsLoadError):
            load_secrets(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "secrets.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(SecretsLoadError):
            load_secrets(path)

    def test_missing_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "secrets.yaml"
        path.write_text("slack:\n  webhook_url: x\n", encoding="utf-8")

        with pytest.raises(SecretsLoadError):
            load_secrets(path)

    def test_invalid_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "secrets.yaml"
        path.write_text("mode: production\n", encoding="utf-8")

        with pytest.raises(ValueError, match="production"):
            load_secrets(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "secrets.yaml"
        path.write_text("mode: [testnet\n", encoding="utf-8")

        with pytest.raises(SecretsLoadError):
            load_secrets(path)

    def test_non_websocket_url(self, tmp_path: Path) -> None:
        """ledger_url은 ws(s)://만 허용"""
        path = tmp_path / "secrets.yaml"
        path.write_text(
            "mode: devnet\ndevnet:\n  ledger_url: https://s.devnet.rippletest.net:51234\n",
            encoding="utf-8",
        )

        with pytest.raises(SecretsLoadError):
            load_secrets(path)


class TestLedgerConfig:
    """get_ledger_config / get_db_path 테스트"""

    def test_testnet_allows_faucet(self, temp_secrets_file: Path) -> None:
        config = get_ledger_config(load_secrets(temp_secrets_file))

        assert config.allow_faucet is True
        assert config.explorer_url == ExplorerUrls.TESTNET
        assert config.ws_url == "wss://testnet.example.com:51233"

    def test_mainnet_disallows_faucet(self, temp_secrets_file_mainnet: Path) -> None:
        """메인넷은 계정 자동 생성 불가"""
        config = get_ledger_config(load_secrets(temp_secrets_file_mainnet))

        assert config.allow_faucet is False
        assert config.explorer_url == ExplorerUrls.MAINNET

    def test_db_path_per_mode(
        self, temp_secrets_file: Path, temp_secrets_file_mainnet: Path
    ) -> None:
        """모드별 DB 파일 분리"""
        assert get_db_path(load_secrets(temp_secrets_file)) == Paths.TESTNET_DB
        assert get_db_path(load_secrets(temp_secrets_file_mainnet)) == Paths.MAINNET_DB


class TestSettings:
    """Settings 싱글턴 테스트"""

    def test_singleton(self, temp_secrets_file: Path) -> None:
        first = get_settings(temp_secrets_file)
        second = get_settings()

        assert first is second
        assert second.mode == NetworkMode.TESTNET

    def test_properties(self, temp_secrets_file: Path) -> None:
        settings = Settings(temp_secrets_file)

        assert settings.ledger_config.allow_faucet is True
        assert settings.slack_webhook_url is not None
        assert settings.db_path == Paths.TESTNET_DB

    def test_reset(self, temp_secrets_file: Path, temp_secrets_file_mainnet: Path) -> None:
        """reset 후 다른 파일 로드"""
        assert Settings(temp_secrets_file).mode == NetworkMode.TESTNET

        Settings.reset()

        assert Settings(temp_secrets_file_mainnet).mode == NetworkMode.MAINNET
