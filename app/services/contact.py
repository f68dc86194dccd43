import logging

from app.schemas.contact import ContactMessage, MessageType
from app.services.mailer import Mailer

logger = logging.getLogger(__name__)

MESSAGE_ACCOUNTS = {
    MessageType.GENERAL: "info",
    MessageType.EVENTS: "events",
    MessageType.FITNESS: "fitness",
    MessageType.KUNSTRASEN: "kunstrasen",
}


def send_message(mailer: Mailer, message: ContactMessage) -> None:
    """Forward a contact form message, replies go straight to the sender."""
    account = mailer.account_by_type(MESSAGE_ACCOUNTS[message.type])
    email = message.email.strip()

    body = f"Vor- und Nachname: {message.name.strip()}\nEmail: {email}\n"
    if message.phone and message.phone.strip():
        body += f"Telefon: {message.phone.strip()}\n"
    body += f"\nNachricht: {message.message.strip()}\n"

    mailer.send(
        account.address,
        to=[message.to],
        reply_to=email,
        subject=f"[Kontakt@Web] Nachricht von {message.name.strip()}",
        body=body,
    )
    logger.info("Contact message from %s forwarded to %s", email, message.to)
