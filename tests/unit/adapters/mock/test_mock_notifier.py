"""
MockNotifier 테스트
"""

from decimal import Decimal

import pytest

from adapters.mock.notifier import MockNotifier


class TestMockNotifier:
    """MockNotifier 테스트"""

    @pytest.mark.asyncio
    async def test_records_notifications(self) -> None:
        notifier = MockNotifier()

        assert await notifier.send("hello", level="WARNING") is True

        assert notifier.message_count == 1
        assert notifier.last_notification is not None
        assert notifier.last_notification.message == "hello"
        assert len(notifier.get_warnings()) == 1

    @pytest.mark.asyncio
    async def test_should_fail(self) -> None:
        notifier = MockNotifier(should_fail=True)

        assert await notifier.send("hello") is False
        assert notifier.failed_count == 1
        assert notifier.sent_count == 0

    @pytest.mark.asyncio
    async def test_should_raise(self) -> None:
        notifier = MockNotifier(should_raise=True)

        with pytest.raises(ConnectionError):
            await notifier.send("hello")

    @pytest.mark.asyncio
    async def test_redemption_alert_level(self) -> None:
        """실패 보유자가 있으면 WARNING"""
        notifier = MockNotifier()

        await notifier.send_redemption_alert("HALAL01", 2, 0, Decimal("1000"), Decimal("12"))
        await notifier.send_redemption_alert("HALAL01", 2, 1, Decimal("700"), Decimal("8.4"))

        assert [n.level for n in notifier.notifications] == ["INFO", "WARNING"]
        assert notifier.notifications[0].extra is not None
        assert notifier.notifications[0].extra["total_xrp"] == "12"

        notifier.clear()
        assert notifier.message_count == 0
