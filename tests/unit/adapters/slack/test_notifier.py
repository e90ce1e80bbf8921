"""
Slack Notifier 테스트

SlackNotifier 단위 테스트.
httpx를 모킹하여 실제 네트워크 호출 없이 테스트.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from adapters.interfaces import INotifier
from adapters.slack.notifier import LEVEL_COLOR, LEVEL_EMOJI, SlackNotifier


WEBHOOK_URL = "https://hooks.slack.com/test"


def _mock_client(status_code: int = 200) -> AsyncMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = "ok" if status_code == 200 else "invalid_payload"
    client = AsyncMock()
    client.post.return_value = response
    return client


class TestSlackNotifierInit:
    """SlackNotifier 초기화 테스트"""

    def test_implements_inotifier_protocol(self) -> None:
        """INotifier Protocol 구현 확인"""
        assert isinstance(SlackNotifier(webhook_url=WEBHOOK_URL), INotifier)

    def test_defaults(self) -> None:
        notifier = SlackNotifier(webhook_url=WEBHOOK_URL)

        assert notifier.channel is None
        assert notifier.username == "Tokenization"
        assert notifier.timeout == 10.0

    def test_init_without_webhook_url_raises(self) -> None:
        """webhook_url 없으면 에러"""
        with pytest.raises(ValueError, match="webhook_url은 필수입니다"):
            SlackNotifier(webhook_url="")


class TestSlackNotifierSend:
    """SlackNotifier.send() 테스트"""

    @pytest.fixture
    def notifier(self) -> SlackNotifier:
        return SlackNotifier(webhook_url=WEBHOOK_URL, channel="#rwa")

    @pytest.mark.asyncio
    async def test_send_success(self, notifier: SlackNotifier) -> None:
        """알림 전송 성공, 페이로드 형식 확인"""
        mock_client = _mock_client()

        with patch.object(notifier, "_get_client", return_value=mock_client):
            result = await notifier.send("발행 완료", level="INFO", extra={"code": "HALAL01"})

        assert result is True
        payload = mock_client.post.call_args.kwargs["json"]
        attachment = payload["attachments"][0]
        assert payload["channel"] == "#rwa"
        assert attachment["color"] == LEVEL_COLOR["INFO"]
        assert attachment["text"].startswith(LEVEL_EMOJI["INFO"])
        assert attachment["fields"] == [{"title": "code", "value": "HALAL01", "short": True}]

    @pytest.mark.asyncio
    async def test_send_non_200(self, notifier: SlackNotifier) -> None:
        with patch.object(notifier, "_get_client", return_value=_mock_client(400)):
            assert await notifier.send("x") is False

    @pytest.mark.asyncio
    async def test_send_timeout(self, notifier: SlackNotifier) -> None:
        """타임아웃은 False 반환 (예외 전파 없음)"""
        mock_client = _mock_client()
        mock_client.post.side_effect = httpx.TimeoutException("timeout")

        with patch.object(notifier, "_get_client", return_value=mock_client):
            assert await notifier.send("x") is False

    @pytest.mark.asyncio
    async def test_send_http_error(self, notifier: SlackNotifier) -> None:
        mock_client = _mock_client()
        mock_client.post.side_effect = httpx.ConnectError("refused")

        with patch.object(notifier, "_get_client", return_value=mock_client):
            assert await notifier.send("x") is False


class TestRedemptionAlert:
    """send_redemption_alert 테스트"""

    @pytest.mark.asyncio
    async def test_success_alert(self) -> None:
        notifier = SlackNotifier(webhook_url=WEBHOOK_URL)
        mock_client = _mock_client()

        with patch.object(notifier, "_get_client", return_value=mock_client):
            result = await notifier.send_redemption_alert(
                instrument_code="HALAL01",
                holders_processed=2,
                holders_failed=0,
                total_tokens=Decimal("1000"),
                total_xrp=Decimal("12"),
            )

        assert result is True
        attachment = mock_client.post.call_args.kwargs["json"]["attachments"][0]
        assert attachment["color"] == LEVEL_COLOR["INFO"]
        assert "HALAL01" in attachment["title"]
        values = {field["title"]: field["value"] for field in attachment["fields"]}
        assert values["지급 XRP"] == "12"
        assert values["실패"] == "0"

    @pytest.mark.asyncio
    async def test_partial_failure_alert(self) -> None:
        """실패 보유자가 있으면 경고 색상"""
        notifier = SlackNotifier(webhook_url=WEBHOOK_URL)
        mock_client = _mock_client()

        with patch.object(notifier, "_get_client", return_value=mock_client):
            await notifier.send_redemption_alert("HALAL01", 2, 1, Decimal("700"), Decimal("8.4"))

        attachment = mock_client.post.call_args.kwargs["json"]["attachments"][0]
        assert attachment["color"] == LEVEL_COLOR["WARNING"]


class TestSlackNotifierClose:
    """클라이언트 정리 테스트"""

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self) -> None:
        async with SlackNotifier(webhook_url=WEBHOOK_URL) as notifier:
            client = await notifier._get_client()
            assert client.is_closed is False

        assert client.is_closed is True
        assert notifier._client is None
