"""Email channel backed by the SendGrid REST API."""

from __future__ import annotations

import html
import json
import logging
from functools import partial
from typing import Any, Protocol

import anyio
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from projectflow.domain.entities import Notification, NotificationChannel, RecipientContact

from .base import DeliveryOutcome

logger = logging.getLogger(__name__)


class RecipientDirectory(Protocol):
    async def get_contact(self, user_id: str) -> RecipientContact | None:
        ...


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                field = item.get("field")
                if message and field:
                    messages.append(f"{message} (field: {field})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _describe_sendgrid_exception(exc: Exception) -> str:
    """Log a SendGrid API error and return a short description of it."""

    status_code = getattr(exc, "status_code", None)
    details = _extract_sendgrid_error_details(getattr(exc, "body", None))

    if status_code and details:
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
        return f"status {status_code}: {details}"
    if status_code:
        logger.error("SendGrid API request failed with status %s", status_code)
        return f"status {status_code}"
    if details:
        logger.error("SendGrid API request failed: %s", details)
        return details
    logger.exception("Error sending email via SendGrid: %s", exc)
    return str(exc) or exc.__class__.__name__


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    *,
    api_key: str,
    sender: str,
    timeout: float | None = None,
) -> str | None:
    """Send an email through SendGrid.

    Returns ``None`` on success and a description of the failure otherwise.
    Blocking; call it from a worker thread inside async code. ``timeout``
    bounds each HTTP request made by the SendGrid client.
    """

    message = Mail(
        from_email=sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(api_key)
        if timeout is not None:
            client.client.timeout = timeout
        response = client.send(message)
    except Exception as exc:  # noqa: BLE001 - the client raises transport and HTTP errors alike
        return _describe_sendgrid_exception(exc)

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        details = _extract_sendgrid_error_details(getattr(response, "body", None))
        if details:
            logger.error("SendGrid API responded with status %s: %s", status_code, details)
        else:
            logger.error("SendGrid API responded with status %s", status_code)
        return f"unexpected status {status_code}"

    return None


def render_notification_email(notification: Notification, recipient_name: str | None = None) -> str:
    """Return the HTML body used for notification emails."""

    greeting = f"Hi {html.escape(recipient_name)}," if recipient_name else "Hi,"
    parts = [
        f"<p>{greeting}</p>",
        f"<h2>{html.escape(notification.title)}</h2>",
        f"<p>{html.escape(notification.message)}</p>",
    ]
    link = (notification.payload or {}).get("link")
    if isinstance(link, str) and link:
        parts.append(f'<p><a href="{html.escape(link, quote=True)}">Open in ProjectFlow</a></p>')
    parts.append(
        "<p style=\"color:#6b7280;font-size:12px\">"
        "You can change which emails you receive in your notification preferences."
        "</p>"
    )
    return "".join(parts)


class EmailSender:
    """Deliver notifications by email to the recipient's directory address."""

    channel = NotificationChannel.EMAIL

    def __init__(
        self,
        directory: RecipientDirectory,
        *,
        api_key: str | None,
        sender: str | None,
        timeout: float | None = None,
    ) -> None:
        self._directory = directory
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._sender)

    async def send(self, notification: Notification) -> DeliveryOutcome:
        if not self.configured:
            logger.info("SendGrid configuration incomplete; skipping email delivery")
            return DeliveryOutcome.failed(self.channel, "email transport not configured")

        contact = await self._directory.get_contact(notification.recipient_id)
        if contact is None or not contact.email:
            return DeliveryOutcome.failed(self.channel, "recipient has no email address")
        if not contact.is_active:
            return DeliveryOutcome.failed(self.channel, "recipient is inactive")

        body = render_notification_email(notification, contact.name)
        error = await anyio.to_thread.run_sync(
            partial(
                send_email,
                notification.title,
                body,
                contact.email,
                api_key=self._api_key,
                sender=self._sender,
                timeout=self._timeout,
            ),
            abandon_on_cancel=True,
        )
        if error is not None:
            return DeliveryOutcome.failed(self.channel, error)
        return DeliveryOutcome.ok(self.channel)


__all__ = ["EmailSender", "RecipientDirectory", "render_notification_email", "send_email"]
