"""Transactional email over an HTTP mail API (Resend-compatible)."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15.0


class MailError(Exception):
    pass


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


@dataclass
class BulkResult:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


class Mailer:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sender = sender
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "Mailer":
        if not settings.mail_configured:
            logger.info("Mail API key not set; outgoing email will be skipped")
        return cls(settings.mail_api_url, settings.mail_api_key, settings.mail_from, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self.sender)

    async def send(self, message: EmailMessage) -> bool:
        """Send one message. Returns False when mail is not configured."""
        if not self.configured:
            logger.info(f"Email skipped (mail not configured): {message.subject!r} to {message.to}")
            return False
        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        try:
            resp = await self._client.post("/emails", json=payload)
        except httpx.HTTPError as e:
            raise MailError(f"Mail API unreachable: {e}") from e
        if resp.status_code >= 400:
            raise MailError(f"Mail API returned HTTP {resp.status_code}: {resp.text[:200]}")
        return True

    async def check(self) -> None:
        """Confirm the API accepts our key. Raises MailError otherwise."""
        if not self.configured:
            raise MailError("Mail API key not configured")
        try:
            resp = await self._client.get("/domains")
        except httpx.HTTPError as e:
            raise MailError(f"Mail API unreachable: {e}") from e
        if resp.status_code >= 400:
            raise MailError(f"Mail API returned HTTP {resp.status_code}: {resp.text[:200]}")

    async def send_bulk(self, messages: Iterable[EmailMessage]) -> BulkResult:
        """Send concurrently; failures are logged and counted, never retried."""
        messages: List[EmailMessage] = list(messages)
        results = await asyncio.gather(*(self.send(m) for m in messages), return_exceptions=True)
        outcome = BulkResult()
        for message, result in zip(messages, results):
            if isinstance(result, Exception):
                logger.error(f"Error sending {message.subject!r} to {message.to}: {result}")
                outcome.failed += 1
            elif result:
                outcome.sent += 1
            else:
                outcome.skipped += 1
        return outcome

    async def aclose(self) -> None:
        await self._client.aclose()
