"""Tests for NotificationDispatcher."""
import pytest
from unittest.mock import MagicMock

from bravecall.services.escalation_service import (
    MAX_SMS_LENGTH,
    NO_PARENT_CONTACT,
    PARENT_CONTACT_NOT_PHONE,
    NotificationDispatcher,
    NotifyResult,
    SmsSendResult,
    looks_like_e164,
)

MESSAGE = "Brave Call: Alex may need your support. Please check in when you can."


@pytest.fixture
def transport():
    mock = MagicMock()
    mock.send.return_value = SmsSendResult(message_ids=["msg-1"])
    return mock


@pytest.fixture
def dispatcher(transport):
    return NotificationDispatcher(transport)


class TestLooksLikeE164:
    """Tests for the permissive phone check."""

    @pytest.mark.parametrize("contact", ["+15551234567", "+447911123456", " +15551234567 ", "+123456789"])
    def test_valid(self, contact):
        assert looks_like_e164(contact) is True

    @pytest.mark.parametrize("contact", [
        "555-1234",
        "15551234567",
        "+1555-123-4567",
        "+12345678",
        "+1234567890123456",
        "+١٢٣٤٥٦٧٨٩٠١",
        "+１５５５１２３４５６７",
        "parent@example.com",
        "",
        None,
    ])
    def test_invalid(self, contact):
        assert looks_like_e164(contact) is False


class TestNotifyParent:
    """Tests for notify_parent."""

    @pytest.mark.asyncio
    async def test_sent(self, dispatcher, transport):
        result = await dispatcher.notify_parent("+15551234567", MESSAGE)

        assert result.sent is True
        assert result.error is None
        transport.send.assert_called_once_with("+15551234567", MESSAGE)

    @pytest.mark.asyncio
    async def test_contact_is_trimmed(self, dispatcher, transport):
        await dispatcher.notify_parent("  +15551234567 ", MESSAGE)

        assert transport.send.call_args[0][0] == "+15551234567"

    @pytest.mark.asyncio
    async def test_not_a_phone(self, dispatcher, transport):
        result = await dispatcher.notify_parent("555-1234", MESSAGE)

        assert result.sent is False
        assert result.error == PARENT_CONTACT_NOT_PHONE
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contact", ["", "   ", None])
    async def test_missing_contact(self, dispatcher, transport, contact):
        result = await dispatcher.notify_parent(contact, MESSAGE)

        assert result.sent is False
        assert result.error == NO_PARENT_CONTACT
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_body_truncated(self, dispatcher, transport):
        await dispatcher.notify_parent("+15551234567", "x" * (MAX_SMS_LENGTH + 50))

        assert len(transport.send.call_args[0][1]) == MAX_SMS_LENGTH

    @pytest.mark.asyncio
    async def test_transport_error_reported(self, dispatcher, transport):
        transport.send.return_value = SmsSendResult(error="SMS not configured")

        result = await dispatcher.notify_parent("+15551234567", MESSAGE)

        assert result.sent is False
        assert result.error == "SMS not configured"

    @pytest.mark.asyncio
    async def test_transport_exception_reported(self, dispatcher, transport):
        transport.send.side_effect = RuntimeError("throttled")

        result = await dispatcher.notify_parent("+15551234567", MESSAGE)

        assert result.sent is False
        assert result.error == "throttled"

    def test_result_to_dict(self):
        assert NotifyResult(sent=True).to_dict() == {"sent": True}
        assert NotifyResult(sent=False, error="x").to_dict() == {"sent": False, "error": "x"}
