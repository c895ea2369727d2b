"""Notification service: email dispatch for certification events.

The email transport is built once at startup (``build_email_sender``) and
handed to ``CertificationNotifier``. Every notifier method is best-effort:
failures are logged, never raised, so a certification decision that has
already been persisted cannot be undone by a flaky mail relay.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from clawforge.config import Settings
from clawforge.logging_config import get_logger
from clawforge.services import certification_emails as emails

logger = get_logger(__name__)


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class WebhookEmailSender:
    """Posts messages to an email relay webhook (n8n, Zapier, internal relay...)."""

    def __init__(self, client: httpx.AsyncClient, url: str, sender: str):
        self._client = client
        self._url = url
        self._sender = sender

    async def send(self, to: str, subject: str, html: str) -> None:
        response = await self._client.post(
            self._url,
            json={"from": self._sender, "to": to, "subject": subject, "html": html},
        )
        response.raise_for_status()
        logger.info("email_sent", to=to, subject=subject)


class LoggingEmailSender:
    """Used when no relay is configured."""

    async def send(self, to: str, subject: str, html: str) -> None:
        logger.info("email_not_sent_no_transport", to=to, subject=subject)


def build_email_sender(settings: Settings, client: httpx.AsyncClient) -> EmailSender:
    if settings.email_webhook_url:
        return WebhookEmailSender(client, settings.email_webhook_url, settings.email_from)
    logger.warning("email_transport_not_configured")
    return LoggingEmailSender()


@dataclass
class Recipient:
    email: str
    name: str


class CertificationNotifier:
    """Creator-facing certification emails."""

    def __init__(self, sender: EmailSender, base_url: str):
        self._sender = sender
        self._base_url = base_url.rstrip("/")

    async def _dispatch(self, recipient: Recipient | None, subject: str, html: str, event: str) -> bool:
        if recipient is None:
            logger.info("notification_skipped_no_recipient", notification=event)
            return False
        try:
            await self._sender.send(recipient.email, subject, html)
            return True
        except Exception:
            logger.exception("notification_failed", notification=event, to=recipient.email)
            return False

    async def request_filed(
        self,
        recipient: Recipient | None,
        skill_title: str,
        level: str,
        quality_score: int,
        passed_criteria: int,
        total_criteria: int,
    ) -> bool:
        html = emails.build_request_filed_email(
            recipient.name if recipient else "", skill_title, level,
            quality_score, passed_criteria, total_criteria,
        )
        label = emails.LEVEL_LABELS.get(level, level)
        return await self._dispatch(
            recipient, f"Your {label} certification request is under review", html, "request_filed",
        )

    async def bronze_granted(self, recipient: Recipient | None, skill_title: str, silver_score: int | None) -> bool:
        html = emails.build_bronze_granted_email(
            recipient.name if recipient else "", skill_title, silver_score, self._base_url,
        )
        return await self._dispatch(recipient, "Your skill is published and Bronze certified", html, "bronze_granted")

    async def bronze_rejected(self, recipient: Recipient | None, skill_title: str, reasons: list[str]) -> bool:
        html = emails.build_bronze_rejected_email(
            recipient.name if recipient else "", skill_title, reasons, self._base_url,
        )
        return await self._dispatch(recipient, "Your skill did not pass validation", html, "bronze_rejected")

    async def approved(self, recipient: Recipient | None, skill_title: str, level: str) -> bool:
        name = recipient.name if recipient else ""
        if level == "gold":
            html = emails.build_gold_approved_email(name, skill_title, self._base_url)
            return await self._dispatch(recipient, "Outstanding! Gold certification obtained", html, "gold_approved")
        html = emails.build_certification_approved_email(name, skill_title, level, self._base_url)
        label = emails.LEVEL_LABELS.get(level, level)
        return await self._dispatch(
            recipient, f"Congratulations! Your skill is {label} certified", html, "certification_approved",
        )

    async def rejected(
        self, recipient: Recipient | None, skill_title: str, level: str | None, feedback: str,
    ) -> bool:
        html = emails.build_certification_rejected_email(
            recipient.name if recipient else "", skill_title, level, feedback, self._base_url,
        )
        return await self._dispatch(recipient, "Your skill was not certified this time", html, "certification_rejected")

    async def changes_requested(self, recipient: Recipient | None, skill_title: str, feedback: str) -> bool:
        html = emails.build_changes_requested_email(
            recipient.name if recipient else "", skill_title, feedback, self._base_url,
        )
        return await self._dispatch(recipient, "Changes requested on your skill", html, "changes_requested")
