"""Tests des notifications / Notification tests."""

from ltipn.config import Settings
from ltipn.services import notifications
from ltipn.services.notifications import (
    EmailSender,
    Notification,
    NotificationEvent,
    NotificationOutbox,
    deliver,
)

PAYLOAD = {
    "booking_reference": "BK20261019001",
    "numero_bk": "ORD-1",
    "society_name": "Atlantic Fish",
    "nbr_ltc": 2,
    "created_by": "Agent Test",
    "notes_ignored": "x",
}


def test_outbox_dedupes_and_skips_blank_recipients():
    outbox = NotificationOutbox()
    outbox.notify(
        NotificationEvent.BOOKING_CREATED,
        ["ops@ltipn.ma", " ops@ltipn.ma ", "", None, "agent@ltipn.ma"],
        PAYLOAD,
    )
    assert outbox.pending[0].recipients == ["ops@ltipn.ma", "agent@ltipn.ma"]

    outbox.notify(NotificationEvent.BOOKING_VALIDATED, ["", "  "], PAYLOAD)
    assert len(outbox.pending) == 1


def test_drain_empties_the_outbox():
    outbox = NotificationOutbox()
    outbox.notify(NotificationEvent.BOOKING_CREATED, ["ops@ltipn.ma"], PAYLOAD)
    assert len(outbox.drain()) == 1
    assert outbox.pending == []


def test_render_message():
    sender = EmailSender(Settings(MAIL_FROM="noreply@ltipn.ma", MAIL_FROM_NAME="LTIPN"))
    message = sender.render(Notification(
        event=NotificationEvent.BOOKING_CREATED,
        recipients=["ops@ltipn.ma", "agent@ltipn.ma"],
        payload=PAYLOAD,
    ))
    assert message["Subject"] == "Nouvelle Réservation Créée - BK20261019001"
    assert message["To"] == "ops@ltipn.ma, agent@ltipn.ma"
    assert "noreply@ltipn.ma" in message["From"]
    body = message.get_content()
    assert "Numéro BK : ORD-1" in body
    assert "Nombre de LTC : 2" in body
    assert "notes_ignored" not in body


def test_disabled_sender_does_not_connect(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("SMTP must not be used when disabled")

    monkeypatch.setattr(notifications.smtplib, "SMTP", fail)
    sender = EmailSender(Settings(SMTP_SERVER=""))
    assert not sender.enabled
    sender.send(Notification(NotificationEvent.BOOKING_VALIDATED, ["agent@ltipn.ma"], PAYLOAD))


class FakeSMTP:
    instances: list["FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, message):
        self.calls.append(("send", message["To"]))


def test_enabled_sender_uses_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    sender = EmailSender(Settings(SMTP_SERVER="smtp.ltipn.ma", SMTP_PORT=2525, SMTP_USERNAME="bot"))

    sender.send(Notification(NotificationEvent.BOOKING_TEMPORISED, ["agent@ltipn.ma"], PAYLOAD))

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.ltipn.ma", 2525)
    assert smtp.calls == ["starttls", ("login", "bot"), ("send", "agent@ltipn.ma")]


class FlakySender:
    def __init__(self):
        self.sent = []

    def send(self, notification):
        if notification.event == NotificationEvent.BOOKING_CREATED:
            raise ConnectionRefusedError("smtp down")
        self.sent.append(notification)


def test_deliver_logs_failures_and_continues(caplog):
    outbox = NotificationOutbox()
    outbox.notify(NotificationEvent.BOOKING_CREATED, ["ops@ltipn.ma"], PAYLOAD)
    outbox.notify(NotificationEvent.BOOKING_VALIDATED, ["agent@ltipn.ma"], PAYLOAD)
    sender = FlakySender()

    assert deliver(outbox, sender) == 1
    assert [n.event for n in sender.sent] == [NotificationEvent.BOOKING_VALIDATED]
    assert outbox.pending == []
    assert "Failed to send BookingCreated" in caplog.text


def test_deliver_with_default_sender_is_harmless():
    outbox = NotificationOutbox()
    outbox.notify(NotificationEvent.TEMPORISATION_RESPONDED, ["ops@ltipn.ma"], PAYLOAD)
    assert deliver(outbox) == 1
