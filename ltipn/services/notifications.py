"""
Notifications des evenements de cycle de vie / Lifecycle event notifications.

Les services deposent les notifications dans une boite d'envoi pendant la
transaction ; la route planifie l'envoi via BackgroundTasks, donc apres la
reponse et le commit. Un echec d'envoi est journalise puis abandonne.
Services drop notifications into an outbox during the transaction; the route
schedules delivery with BackgroundTasks, so after the response and the commit.
A failed send is logged and dropped.
"""

import enum
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Protocol

from ltipn.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class NotificationEvent(str, enum.Enum):
    BOOKING_CREATED = "BookingCreated"
    BOOKING_VALIDATED = "BookingValidated"
    BOOKING_TEMPORISED = "BookingTemporised"
    TEMPORISATION_RESPONDED = "TemporisationResponded"


@dataclass
class Notification:
    event: NotificationEvent
    recipients: list[str]
    payload: dict[str, Any] = field(default_factory=dict)


class Notifier(Protocol):
    def notify(self, event: NotificationEvent, recipients: list[str], payload: dict[str, Any]) -> None:
        ...


class NotificationOutbox:
    """Boite d'envoi par requete / Per-request outbox (implements Notifier)."""

    def __init__(self) -> None:
        self.pending: list[Notification] = []

    def notify(self, event: NotificationEvent, recipients: list[str], payload: dict[str, Any]) -> None:
        # Dedoublonner en gardant l'ordre, ignorer les adresses vides / Dedupe keeping order, skip blanks
        unique = list(dict.fromkeys(r.strip() for r in recipients if r and r.strip()))
        if not unique:
            logger.warning("Notification %s dropped: no recipient", event.value)
            return
        self.pending.append(Notification(event=event, recipients=unique, payload=dict(payload)))

    def drain(self) -> list[Notification]:
        items, self.pending = self.pending, []
        return items


# Sujets des emails / Email subjects
_SUBJECTS = {
    NotificationEvent.BOOKING_CREATED: "Nouvelle Réservation Créée - {booking_reference}",
    NotificationEvent.BOOKING_VALIDATED: "Réservation Validée - {booking_reference}",
    NotificationEvent.BOOKING_TEMPORISED: "Réservation Temporisée - {booking_reference}",
    NotificationEvent.TEMPORISATION_RESPONDED: "Réponse à la Temporisation - {booking_reference}",
}

# Libelles des champs du corps / Body field labels
_LABELS = {
    "booking_reference": "Référence",
    "numero_bk": "Numéro BK",
    "society_name": "Société",
    "type_voyage": "Type de voyage",
    "nbr_ltc": "Nombre de LTC",
    "created_by": "Créé par",
    "validated_by": "Validé par",
    "temporised_by": "Temporisé par",
    "reason": "Raison",
    "estimated_validation_date": "Date estimée de validation",
    "response": "Réponse",
    "response_notes": "Notes",
}


class EmailSender:
    """Envoi SMTP des notifications / SMTP delivery of notifications."""

    def __init__(self, config: Settings | None = None):
        self.config = config or default_settings

    @property
    def enabled(self) -> bool:
        return bool(self.config.SMTP_SERVER)

    def render(self, notification: Notification) -> EmailMessage:
        """Construire le message / Build the message."""
        payload = notification.payload
        subject = _SUBJECTS[notification.event].format(booking_reference=payload.get("booking_reference", ""))
        lines = [subject, ""]
        for key, label in _LABELS.items():
            value = payload.get(key)
            if value not in (None, ""):
                lines.append(f"{label} : {value}")
        lines += ["", f"-- {self.config.APP_NAME}"]

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.config.MAIL_FROM_NAME, self.config.MAIL_FROM))
        message["To"] = ", ".join(notification.recipients)
        message.set_content("\n".join(lines))
        return message

    def send(self, notification: Notification) -> None:
        message = self.render(notification)
        if not self.enabled:
            logger.info(
                "SMTP disabled, %s for %s not sent (to %s)",
                notification.event.value, notification.payload.get("booking_reference"), message["To"],
            )
            return
        with smtplib.SMTP(
            self.config.SMTP_SERVER, self.config.SMTP_PORT, timeout=self.config.SMTP_TIMEOUT_SECONDS
        ) as smtp:
            if self.config.SMTP_USE_TLS:
                smtp.starttls()
            if self.config.SMTP_USERNAME:
                smtp.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
            smtp.send_message(message)
        logger.info(
            "Email %s sent to %d recipient(s) for %s",
            notification.event.value, len(notification.recipients), notification.payload.get("booking_reference"),
        )


def deliver(outbox: NotificationOutbox, sender: EmailSender | None = None) -> int:
    """Envoyer le contenu de la boite, sans jamais lever / Flush the outbox, never raising.

    Returns the number of notifications actually handed to the sender.
    """
    sender = sender or EmailSender()
    sent = 0
    for notification in outbox.drain():
        try:
            sender.send(notification)
            sent += 1
        except Exception:
            logger.exception(
                "Failed to send %s notification for %s",
                notification.event.value, notification.payload.get("booking_reference"),
            )
    return sent
