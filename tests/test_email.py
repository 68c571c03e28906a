"""Unit tests for the SendGrid email channel."""

from __future__ import annotations

import json
import types

import pytest

from projectflow.domain.entities import (
    Notification,
    NotificationCategory,
    NotificationChannel,
    NotificationType,
    RecipientContact,
)
from projectflow.infrastructure.channels import email as email_module
from projectflow.infrastructure.channels import EmailSender


class _RecordingClient:
    """Stand-in for ``SendGridAPIClient`` that records sent messages."""

    sent: list = []

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.client = types.SimpleNamespace(timeout=None)

    def send(self, message):
        type(self).sent.append(message)
        return types.SimpleNamespace(status_code=202, body=None)


class _Directory:
    def __init__(self, *contacts: RecipientContact) -> None:
        self._contacts = {contact.user_id: contact for contact in contacts}

    async def get_contact(self, user_id: str):
        return self._contacts.get(user_id)


def _notification(**overrides) -> Notification:
    values = dict(
        id=7,
        recipient_id="u1",
        org_id="org-1",
        type=NotificationType.TASK_ASSIGNED,
        category=NotificationCategory.TASK,
        title="Task assigned: <Launch>",
        message='You have been assigned to "Launch".',
        payload={"link": "https://projectflow.example/tasks/1"},
    )
    values.update(overrides)
    return Notification(**values)


def test_send_email_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """A successful SendGrid response should return ``None``."""

    monkeypatch.setattr(_RecordingClient, "sent", [])
    monkeypatch.setattr(email_module, "SendGridAPIClient", _RecordingClient)

    error = email_module.send_email(
        "Subject", "<p>Body</p>", "user@example.com", api_key="SG.fake", sender="noreply@example.com"
    )

    assert error is None
    assert len(_RecordingClient.sent) == 1


def test_send_email_logs_forbidden_error(monkeypatch: pytest.MonkeyPatch, caplog):
    """Forbidden responses from SendGrid should surface meaningful log details."""

    class FakeForbiddenError(Exception):
        status_code = 403
        body = json.dumps(
            {"errors": [{"message": "The provided authorization grant is invalid."}]}
        ).encode()

    class FailingClient(_RecordingClient):
        def send(self, message):
            raise FakeForbiddenError()

    monkeypatch.setattr(email_module, "SendGridAPIClient", FailingClient)

    with caplog.at_level("ERROR"):
        error = email_module.send_email(
            "Subject", "<p>Body</p>", "user@example.com", api_key="SG.fake", sender="noreply@example.com"
        )

    assert error.startswith("status 403")
    assert "status 403" in caplog.text
    assert "authorization grant is invalid" in caplog.text


def test_send_email_reports_unexpected_status(monkeypatch: pytest.MonkeyPatch) -> None:
    class RejectingClient(_RecordingClient):
        def send(self, message):
            return types.SimpleNamespace(
                status_code=400,
                body=json.dumps({"errors": [{"message": "Bad email", "field": "to"}]}),
            )

    monkeypatch.setattr(email_module, "SendGridAPIClient", RejectingClient)

    error = email_module.send_email(
        "Subject", "<p>Body</p>", "user@example.com", api_key="SG.fake", sender="noreply@example.com"
    )

    assert error == "unexpected status 400"


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, None),
        (b"", None),
        ("plain failure", "plain failure"),
        (json.dumps({"errors": [{"message": "Bad", "field": "from"}]}), "Bad (field: from)"),
        (["a", "b"], "a; b"),
    ],
)
def test_extract_sendgrid_error_details(body, expected):
    assert email_module._extract_sendgrid_error_details(body) == expected


def test_rendered_email_escapes_content():
    html = email_module.render_notification_email(_notification(), "Ada <Admin>")

    assert "Task assigned: &lt;Launch&gt;" in html
    assert "Hi Ada &lt;Admin&gt;," in html
    assert 'href="https://projectflow.example/tasks/1"' in html


@pytest.mark.anyio
async def test_email_sender_uses_directory_address(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(_RecordingClient, "sent", [])
    monkeypatch.setattr(email_module, "SendGridAPIClient", _RecordingClient)
    sender = EmailSender(
        _Directory(RecipientContact(user_id="u1", org_id="org-1", name="Ada", email="ada@example.com")),
        api_key="SG.fake",
        sender="noreply@example.com",
    )

    outcome = await sender.send(_notification())

    assert outcome.success is True
    assert outcome.channel is NotificationChannel.EMAIL
    assert len(_RecordingClient.sent) == 1


@pytest.mark.anyio
async def test_email_sender_fails_without_address() -> None:
    sender = EmailSender(
        _Directory(RecipientContact(user_id="u1", org_id="org-1", name="Ada", email=None)),
        api_key="SG.fake",
        sender="noreply@example.com",
    )

    outcome = await sender.send(_notification())

    assert outcome.success is False
    assert "no email address" in outcome.error


@pytest.mark.anyio
async def test_email_sender_without_configuration() -> None:
    """When SendGrid settings are missing the sender should exit early."""

    sender = EmailSender(_Directory(), api_key=None, sender=None)

    outcome = await sender.send(_notification())

    assert outcome.success is False
    assert outcome.error == "email transport not configured"


@pytest.mark.anyio
async def test_email_sender_reads_contacts_from_store(store, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(_RecordingClient, "sent", [])
    monkeypatch.setattr(email_module, "SendGridAPIClient", _RecordingClient)
    await store.save_contact(
        RecipientContact(user_id="u1", org_id="org-1", name="Ada", email="ada@example.com")
    )
    await store.save_contact(
        RecipientContact(
            user_id="u2", org_id="org-1", name="Bo", email="bo@example.com", is_active=False
        )
    )
    sender = EmailSender(store, api_key="SG.fake", sender="noreply@example.com")

    delivered = await sender.send(_notification())
    inactive = await sender.send(_notification(recipient_id="u2"))
    unknown = await sender.send(_notification(recipient_id="u3"))

    assert delivered.success is True
    assert inactive.error == "recipient is inactive"
    assert unknown.error == "recipient has no email address"
    assert len(_RecordingClient.sent) == 1


def test_send_email_applies_transport_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    clients: list[_RecordingClient] = []

    class TrackingClient(_RecordingClient):
        def __init__(self, api_key: str):
            super().__init__(api_key)
            clients.append(self)

    monkeypatch.setattr(_RecordingClient, "sent", [])
    monkeypatch.setattr(email_module, "SendGridAPIClient", TrackingClient)

    error = email_module.send_email(
        "Subject",
        "<p>Body</p>",
        "user@example.com",
        api_key="SG.fake",
        sender="noreply@example.com",
        timeout=2.5,
    )

    assert error is None
    (client,) = clients
    assert client.client.timeout == 2.5
