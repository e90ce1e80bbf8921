"""
Slack 알림 서비스

Incoming Webhook으로 발행/상환 이벤트를 전송.
INotifier Protocol 준수. 전송 실패는 False 반환으로만 알리고 예외를 올리지 않음.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

logger = logging.getLogger(__name__)


LEVEL_EMOJI = {
    "INFO": ":white_check_mark:",
    "WARNING": ":warning:",
    "ERROR": ":x:",
    "CRITICAL": ":rotating_light:",
}

# Slack attachment color
LEVEL_COLOR = {
    "INFO": "#36A64F",
    "WARNING": "#FFA500",
    "ERROR": "#FF0000",
    "CRITICAL": "#8B0000",
}


def _field(title: str, value: Any) -> dict[str, Any]:
    return {"title": title, "value": str(value), "short": True}


class SlackNotifier:
    """Slack 알림 서비스

    Args:
        webhook_url: Slack Incoming Webhook URL
        channel: 채널 오버라이드 (None이면 Webhook 기본 채널)
        username: 발송자 이름
        timeout: HTTP 타임아웃 (초)

    사용 예시:
    ```python
    async with SlackNotifier(webhook_url=settings.slack_webhook_url) as notifier:
        await notifier.send("HALAL01 발행 완료", extra={"currency_id": currency_id})
    ```
    """

    def __init__(
        self,
        webhook_url: str,
        channel: str | None = None,
        username: str = "Tokenization",
        timeout: float = 10.0,
    ):
        if not webhook_url:
            raise ValueError("webhook_url은 필수입니다")

        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """재사용 HTTP 클라이언트 (닫혔으면 새로 생성)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """일반 알림 (extra는 attachment fields로 표시)"""
        attachment: dict[str, Any] = {
            "color": LEVEL_COLOR.get(level, "#808080"),
            "text": f"{LEVEL_EMOJI.get(level, ':bell:')} *[{level}]* {message}",
        }
        if extra:
            attachment["fields"] = [_field(key, value) for key, value in extra.items()]
        return await self._post(attachment)

    async def send_redemption_alert(
        self,
        instrument_code: str,
        holders_processed: int,
        holders_failed: int,
        total_tokens: Decimal,
        total_xrp: Decimal,
    ) -> bool:
        """상환 완료 알림 (실패 보유자가 있으면 경고 색상)"""
        emoji, level = (":warning:", "WARNING") if holders_failed else (":moneybag:", "INFO")
        attachment = {
            "color": LEVEL_COLOR[level],
            "title": f"{emoji} REDEEMED {instrument_code}",
            "fields": [
                _field("상품", instrument_code),
                _field("보유자", holders_processed),
                _field("실패", holders_failed),
                _field("회수 토큰", total_tokens),
                _field("지급 XRP", total_xrp),
            ],
        }
        return await self._post(attachment)

    async def _post(self, attachment: dict[str, Any]) -> bool:
        """attachment 1개짜리 메시지 전송"""
        attachment["footer"] = (
            f"{self.username} | {datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S} UTC"
        )
        payload: dict[str, Any] = {"username": self.username, "attachments": [attachment]}
        if self.channel:
            payload["channel"] = self.channel

        try:
            client = await self._get_client()
            response = await client.post(self.webhook_url, json=payload)
        except httpx.TimeoutException:
            logger.error("Slack 알림 전송 타임아웃")
            return False
        except httpx.HTTPError as e:
            logger.error("Slack 알림 전송 HTTP 에러: %s", e)
            return False

        if response.status_code != 200:
            logger.warning(
                "Slack 알림 전송 실패: status=%s, body=%s",
                response.status_code,
                response.text,
            )
            return False
        return True

    async def __aenter__(self) -> "SlackNotifier":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
