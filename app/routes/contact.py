import logging

from fastapi import APIRouter, Depends, HTTPException

from app.schemas.contact import ContactMessage
from app.services.contact import send_message
from app.services.mailer import Mailer, MailError, get_mailer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("/message")
def message(payload: ContactMessage, mailer: Mailer = Depends(get_mailer)):
    try:
        send_message(mailer, payload)
    except MailError:
        logger.exception("Error while sending contact message from %s", payload.email)
        raise HTTPException(status_code=500, detail="Message could not be sent")
    return {"ok": True}
