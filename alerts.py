# alerts.py
import logging
from typing import Optional

from twilio.rest import Client

from config import Settings

logger = logging.getLogger(__name__)


class StockAlerter:
    """Sends low-stock SMS alerts to the pharmacy manager through Twilio."""

    def __init__(self, client: Optional[Client], from_number: Optional[str], to_number: Optional[str]):
        self.client = client
        self.from_number = from_number
        self.to_number = to_number

    @classmethod
    def from_settings(cls, settings: Settings) -> "StockAlerter":
        client = None
        if settings.twilio_account_sid and settings.twilio_auth_token:
            client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        return cls(client, settings.twilio_phone_number, settings.manager_phone_number)

    @property
    def enabled(self) -> bool:
        return bool(self.client and self.from_number and self.to_number)

    def send_stock_alert(self, message: str) -> bool:
        if not self.enabled:
            logger.warning("Twilio is not configured; stock alert not sent")
            return False
        self.client.messages.create(
            body=message,
            from_=self.from_number,
            to=self.to_number,
        )
        logger.info(f"Stock alert sent to {self.to_number}")
        return True
