import contextlib
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.news import NewsTopic, SubscriptionIn, SubscriptionOut
from app.services import news
from app.tasks import send_subscription_mail_task

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/news", tags=["news"])


@router.post("/subscribe", response_model=SubscriptionOut)
def subscribe(payload: SubscriptionIn, db: Session = Depends(get_db)):
    subscription = news.upsert(db, payload.email, payload.types)

    # welcome mail is sent by the worker
    with contextlib.suppress(Exception):
        send_subscription_mail_task.delay(payload.email, sorted(t.value for t in payload.types))

    return SubscriptionOut(email=subscription.email, types=subscription.topics)


@router.post("/unsubscribe", response_model=SubscriptionOut)
def unsubscribe(payload: SubscriptionIn, db: Session = Depends(get_db)):
    subscription = news.remove(db, payload.email, payload.types)
    if subscription is None:
        return SubscriptionOut(email=payload.email, types=[])
    return SubscriptionOut(email=subscription.email, types=subscription.topics)


@router.get("/subscribers", response_model=dict[NewsTopic, list[str]])
def subscribers(db: Session = Depends(get_db)):
    return news.subscribers_by_topic(db)
