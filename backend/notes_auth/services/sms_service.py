"""
Twilio SMS sender.

Talks to the Twilio REST API directly with httpx; one client per message
keeps the sender free of connection lifecycle.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class SmsConfigError(RuntimeError):
    pass


class SmsSendError(RuntimeError):
    pass


class SmsTransport:
    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "SmsTransport":
        return cls(settings.twilio_account_sid, settings.twilio_auth_token, settings.twilio_phone_number)

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, to: str, body: str) -> str:
        """Send ``body`` to ``to`` and return the Twilio message SID."""
        if not self.account_sid or not self.auth_token or not self.from_number:
            raise SmsConfigError("Twilio configuration missing - TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN or TWILIO_PHONE_NUMBER not set")

        payload = {"To": to, "From": self.from_number, "Body": body}
        async with httpx.AsyncClient(
            auth=(self.account_sid, self.auth_token),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(self.messages_url, data=payload)

        if response.status_code >= 400:
            try:
                detail = response.json().get("message", response.text)
            except ValueError:
                detail = response.text
            raise SmsSendError(f"Twilio error {response.status_code}: {detail}")

        sid = response.json().get("sid", "")
        logger.info(f"[SmsService] Sent SMS {sid} to {to}")
        return sid
