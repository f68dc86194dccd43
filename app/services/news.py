"""Newsletter subscriptions: one record per email with its set of topics."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import CLUB_TAG
from app.models.subscriptions import Subscription
from app.schemas.news import NewsTopic
from app.services.mailer import Mailer
from app.services.templates import unsubscribe_link

logger = logging.getLogger(__name__)

# topic -> sender account type
TOPIC_ACCOUNTS = {
    NewsTopic.GENERAL: "info",
    NewsTopic.EVENTS: "events",
    NewsTopic.FITNESS: "fitness",
}


def _ordered(topics: set[NewsTopic]) -> list[str]:
    return [topic.value for topic in NewsTopic if topic in topics]


def upsert(db: Session, email: str, topics: set[NewsTopic]) -> Subscription:
    """Add ``topics`` to the subscription of ``email``, creating it on first subscribe."""
    subscription = db.get(Subscription, email)
    if subscription is None:
        subscription = Subscription(email=email, topics=[])
        db.add(subscription)
    merged = {NewsTopic(t) for t in subscription.topics} | topics
    subscription.topics = _ordered(merged)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription of %s now covers %s", email, subscription.topics)
    return subscription


def remove(db: Session, email: str, topics: set[NewsTopic]) -> Subscription | None:
    """Remove ``topics``, the record is deleted once no topic is left."""
    subscription = db.get(Subscription, email)
    if subscription is None:
        return None
    remaining = {NewsTopic(t) for t in subscription.topics} - topics
    if not remaining:
        db.delete(subscription)
        db.commit()
        logger.info("Subscription of %s deleted", email)
        return None
    subscription.topics = _ordered(remaining)
    db.commit()
    db.refresh(subscription)
    return subscription


def load_all(db: Session) -> dict[str, set[NewsTopic]]:
    return {s.email: {NewsTopic(t) for t in s.topics} for s in db.scalars(select(Subscription)).all()}


def subscribers_by_topic(db: Session) -> dict[NewsTopic, list[str]]:
    result: dict[NewsTopic, list[str]] = {topic: [] for topic in NewsTopic}
    for email, topics in load_all(db).items():
        for topic in topics:
            result[topic].append(email)
    return {topic: sorted(emails) for topic, emails in result.items()}


def send_subscription_mail(mailer: Mailer, email: str, topics: set[NewsTopic]) -> None:
    """Welcome mail after a newsletter sign-up."""
    if len(topics) == 1:
        primary = next(iter(topics))
        kind = None
    else:
        primary = NewsTopic.GENERAL
        kind = f" zu folgenden Themen: {', '.join(t.display_name for t in NewsTopic if t in topics)}"

    if primary == NewsTopic.EVENTS:
        subject = f"[Events@{CLUB_TAG}] Bestätigung Event-News Anmeldung"
        topic_text = "unseren Events"
        kind = ", sobald neue Events online sind"
        regards = f"Team Events@{CLUB_TAG}"
    elif primary == NewsTopic.FITNESS:
        subject = f"[Fitness@{CLUB_TAG}] Bestätigung Newsletter Anmeldung"
        topic_text = "unseren Fitnesskursen"
        kind = ", sobald neue Kurse online sind"
        regards = f"Team Fitness@{CLUB_TAG}"
    else:
        subject = f"[Infos@{CLUB_TAG}] Bestätigung News Anmeldung"
        topic_text = "News rund um den Verein"
        kind = kind or ", sobald es etwas neues gibt"
        regards = CLUB_TAG

    body = (
        "Lieber Interessent/In,\n"
        "\n"
        f"vielen Dank für Dein Interesse an {topic_text}.\n"
        "\n"
        f"Ab sofort erhältst Du automatisch eine E-Mail{kind}.\n"
        "\n"
        "Solltest Du an unserem E-Mail-Service kein Interesse mehr haben, "
        "kannst Du dich hier wieder abmelden:\n"
        f"{unsubscribe_link(primary.value, email)}\n"
        "\n"
        "Herzliche Grüße\n"
        f"{regards}"
    )
    account = mailer.account_by_type(TOPIC_ACCOUNTS[primary])
    mailer.send(account.address, to=[email], bcc=[account.address], subject=subject, body=body)
