import logging

from app.core.celery_config import celery_app
from app.schemas.news import NewsTopic
from app.services.mailer import get_mailer
from app.services.news import send_subscription_mail

logger = logging.getLogger(__name__)


@celery_app.task(bind=True)
def send_subscription_mail_task(self, email: str, topics: list[str]):
    """Welcome mail for a newsletter sign-up."""
    send_subscription_mail(get_mailer(), email, {NewsTopic(t) for t in topics})
    logger.info("Subscription email was sent to %s", email)


@celery_app.task(bind=True)
def check_email_connectivity_task(self):
    errors = get_mailer().check_connectivity()
    if errors:
        raise RuntimeError(f"{len(errors)} errors while testing connections:\n\n" + "\n".join(errors))
    logger.info("All mail accounts are reachable")
