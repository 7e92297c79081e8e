"""SMS transport for parent notifications.

The dispatcher only knows the `SmsTransport` interface. The production
transport publishes a direct SMS through Amazon SNS.
"""
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from bravecall.shared.utils import hash_pii

logger = logging.getLogger(__name__)

SMS_NOT_CONFIGURED = "SMS not configured"


@dataclass(frozen=True)
class SmsConfig:
    """SMS settings."""
    enabled: bool = False
    region: str = "us-east-1"
    sender_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SmsConfig":
        return cls(
            enabled=os.getenv("SMS_ENABLED", "false").lower() == "true",
            region=os.getenv("AWS_REGION", "us-east-1"),
            sender_id=os.getenv("SMS_SENDER_ID") or None,
        )


@dataclass(frozen=True)
class SmsSendResult:
    """What the transport reports for one send."""
    message_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SmsTransport(ABC):
    """Sends one SMS. Blocking; may raise."""

    @abstractmethod
    def send(self, to_e164: str, body: str) -> SmsSendResult:
        pass


class SnsSmsTransport(SmsTransport):
    """Direct-to-phone SMS via Amazon SNS.

    Failure Handling:
        - Disabled or client unavailable: returns "SMS not configured"
        - Publish errors are returned as the result's error, not raised
    """

    def __init__(self, config: Optional[SmsConfig] = None):
        self.config = config or SmsConfig.from_env()
        self._sns_client = None

        logger.info(
            "SMS_TRANSPORT_INITIALIZED",
            extra={"enabled": self.config.enabled, "region": self.config.region}
        )

    @property
    def sns_client(self):
        """Lazy initialization of SNS client."""
        if self._sns_client is None and self.config.enabled:
            try:
                import boto3
                self._sns_client = boto3.client("sns", region_name=self.config.region)
            except Exception as e:
                logger.error("SNS_CLIENT_INIT_FAILED", extra={"error": str(e)})
        return self._sns_client

    def _message_attributes(self) -> dict:
        attributes = {
            "AWS.SNS.SMS.SMSType": {"DataType": "String", "StringValue": "Transactional"},
        }
        if self.config.sender_id:
            attributes["AWS.SNS.SMS.SenderID"] = {
                "DataType": "String",
                "StringValue": self.config.sender_id,
            }
        return attributes

    def send(self, to_e164: str, body: str) -> SmsSendResult:
        client = self.sns_client
        if client is None:
            logger.warning("SMS_NOT_CONFIGURED", extra={"enabled": self.config.enabled})
            return SmsSendResult(error=SMS_NOT_CONFIGURED)

        try:
            response = client.publish(
                PhoneNumber=to_e164,
                Message=body,
                MessageAttributes=self._message_attributes(),
            )
        except Exception as e:
            logger.error(
                "SMS_PUBLISH_FAILED",
                extra={
                    "recipient_hash": hash_pii(to_e164),
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            return SmsSendResult(error=str(e))

        message_id = response.get("MessageId")
        logger.info(
            "SMS_PUBLISHED",
            extra={"recipient_hash": hash_pii(to_e164), "message_id": message_id}
        )
        return SmsSendResult(message_ids=[message_id] if message_id else [])
