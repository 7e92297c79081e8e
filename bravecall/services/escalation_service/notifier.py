"""Notification dispatcher - delivers tier-3 parent messages by SMS.

Never decides tiers; it is only handed a message that the evaluator
already produced. Validation failures return without touching the
transport.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from bravecall.shared.utils import mask_contact
from .config import MAX_SMS_LENGTH
from .sms_transport import SmsTransport

logger = logging.getLogger(__name__)

NO_PARENT_CONTACT = "no_parent_contact"
PARENT_CONTACT_NOT_PHONE = "parent_contact_not_phone"

# Leading "+", then 9-15 ASCII digits: 10-16 characters in total
_E164_PATTERN = re.compile(r"^\+[0-9]{9,15}$")


@dataclass(frozen=True)
class NotifyResult:
    sent: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"sent": self.sent}
        if self.error:
            result["error"] = self.error
        return result


def looks_like_e164(contact: Optional[str]) -> bool:
    """Permissive E.164 check on the whitespace-trimmed contact."""
    if not contact:
        return False
    return bool(_E164_PATTERN.match(contact.strip()))


class NotificationDispatcher:
    """Sends the parent SMS for a tier-3 turn."""

    def __init__(self, transport: SmsTransport, max_length: int = MAX_SMS_LENGTH):
        self.transport = transport
        self.max_length = max_length

    async def notify_parent(
        self,
        parent_contact: Optional[str],
        message_to_parent: str,
    ) -> NotifyResult:
        """Validate the contact and send the message.

        Args:
            parent_contact: Parent phone number in E.164 form
            message_to_parent: Tier-3 message from the evaluator

        Returns:
            NotifyResult with sent=True only when the transport accepted it
        """
        if not parent_contact or not parent_contact.strip():
            logger.warning("PARENT_NOTIFY_SKIPPED", extra={"reason": NO_PARENT_CONTACT})
            return NotifyResult(sent=False, error=NO_PARENT_CONTACT)

        masked = mask_contact(parent_contact)
        if not looks_like_e164(parent_contact):
            logger.warning(
                "PARENT_NOTIFY_SKIPPED",
                extra={"reason": PARENT_CONTACT_NOT_PHONE, "contact_masked": masked}
            )
            return NotifyResult(sent=False, error=PARENT_CONTACT_NOT_PHONE)

        body = (message_to_parent or "")[:self.max_length]

        try:
            # Transports are blocking SDK calls
            result = await asyncio.to_thread(
                self.transport.send, parent_contact.strip(), body
            )
        except Exception as e:
            logger.error(
                "PARENT_NOTIFY_FAILED",
                extra={
                    "contact_masked": masked,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return NotifyResult(sent=False, error=str(e))

        if not result.ok:
            logger.error(
                "PARENT_NOTIFY_FAILED",
                extra={"contact_masked": masked, "error": result.error}
            )
            return NotifyResult(sent=False, error=result.error)

        logger.info(
            "PARENT_NOTIFIED",
            extra={"contact_masked": masked, "message_ids": result.message_ids}
        )
        return NotifyResult(sent=True)
