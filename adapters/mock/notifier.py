"""
Mock 알림 서비스

INotifier Protocol 준수. 보낸 알림을 메모리에 기록.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


@dataclass
class NotificationRecord:
    """기록된 알림 1건"""

    message: str
    level: str
    extra: dict[str, Any] | None
    sent: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class MockNotifier:
    """Mock 알림 서비스

    Args:
        should_fail: 기록은 하되 발송 결과를 False로 반환
        should_raise: 발송 시 ConnectionError (알림 장애 격리 확인용)

    사용 예시:
    ```python
    notifier = MockNotifier()
    service = TokenizationService(ledger, store, notifier)

    await service.publish("HALAL01", Decimal("0.01"))
    assert notifier.last_notification.level == "INFO"
    ```
    """

    def __init__(self, should_fail: bool = False, should_raise: bool = False):
        self.should_fail = should_fail
        self.should_raise = should_raise
        self.notifications: list[NotificationRecord] = []

    async def send(
        self,
        message: str,
        level: str = "INFO",
        extra: dict[str, Any] | None = None,
    ) -> bool:
        if self.should_raise:
            raise ConnectionError("mock notifier unavailable")
        self.notifications.append(
            NotificationRecord(message=message, level=level, extra=extra, sent=not self.should_fail)
        )
        return not self.should_fail

    async def send_redemption_alert(
        self,
        instrument_code: str,
        holders_processed: int,
        holders_failed: int,
        total_tokens: Decimal,
        total_xrp: Decimal,
    ) -> bool:
        return await self.send(
            f"[REDEEM] {instrument_code} holders={holders_processed} "
            f"failed={holders_failed} tokens={total_tokens} xrp={total_xrp}",
            level="WARNING" if holders_failed else "INFO",
            extra={
                "instrument_code": instrument_code,
                "holders_processed": holders_processed,
                "holders_failed": holders_failed,
                "total_tokens": str(total_tokens),
                "total_xrp": str(total_xrp),
            },
        )

    # -------------------------------------------------------------------------
    # 테스트 헬퍼
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        self.notifications.clear()

    def get_warnings(self) -> list[NotificationRecord]:
        return [n for n in self.notifications if n.level == "WARNING"]

    @property
    def last_notification(self) -> NotificationRecord | None:
        return self.notifications[-1] if self.notifications else None

    @property
    def message_count(self) -> int:
        return len(self.notifications)

    @property
    def sent_count(self) -> int:
        return sum(1 for n in self.notifications if n.sent)

    @property
    def failed_count(self) -> int:
        return self.message_count - self.sent_count
