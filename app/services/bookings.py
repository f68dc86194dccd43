"""
Booking workflow: capacity decision, ledger row, confirmation mail and
optional newsletter subscription for one booking request.

Every failure ends in a failure ``BookingResponse`` with a fixed message,
the cause is only logged. A place taken on the event is not given back
when a later step fails.
"""
import base64
import binascii
import contextlib
import hashlib
import logging

import redis
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import CLUB_TAG, PREBOOKING_LOCK_TIMEOUT, get_redis_url
from app.models.events import Event, EventType
from app.schemas.bookings import BookingResponse, EventBooking
from app.schemas.events import EventOut
from app.schemas.news import NewsTopic
from app.services import news
from app.services.events import BookingResult, SlotBooking, book_event_slot, event_counters, load_event
from app.services.mailer import Mailer, MailError
from app.services.sheets import SheetRecorder, booking_row
from app.services.templates import render_booking

logger = logging.getLogger(__name__)

MESSAGE_FAIL = "Leider ist etwas schief gelaufen. Bitte versuche es später noch einmal."
MESSAGE_BOOKED = "Die Buchung war erfolgreich. Du bekommst in den nächsten Minuten eine Bestätigung per E-Mail."
MESSAGE_WAITING_LIST = "Du stehst jetzt auf der Warteliste. Wir benachrichtigen Dich, wenn Plätze frei werden."
MESSAGE_LINK_USED = "Der Buchungslink wurde schon benutzt und ist daher ungültig."

PREBOOKING_FIELDS = 8
PREBOOKING_COMMENT = "Pre-Booking"

# ledger columns compared when looking for an earlier use of a pre-booking link
LEDGER_KEYS = ["Vorname", "Nachname", "Straße & Nr", "PLZ & Ort", "Email", "Telefon", "SVE-Mitglied"]

EVENT_TOPICS = {
    EventType.EVENTS.value: NewsTopic.EVENTS,
    EventType.FITNESS.value: NewsTopic.FITNESS,
}


class InvalidTokenError(Exception):
    pass


def get_redis_client():
    """Get Redis client for locking."""
    return redis.from_url(get_redis_url(), decode_responses=True)


def submit_booking(
    db: Session, booking: EventBooking, recorder: SheetRecorder, mailer: Mailer
) -> BookingResponse:
    try:
        return _book_event(db, booking, recorder, mailer)
    except Exception:
        logger.exception("Booking failed: %s", booking.model_dump_json())
        return BookingResponse.failed(MESSAGE_FAIL)


def _book_event(
    db: Session, booking: EventBooking, recorder: SheetRecorder, mailer: Mailer
) -> BookingResponse:
    event = load_event(db, booking.event_id)

    slot = book_event_slot(db, event.id)
    result = slot.result
    if result == BookingResult.BOOKED_OUT:
        logger.error("Booking failed because Event (%s) was overbooked.", event.id)
        return BookingResponse.failed(MESSAGE_FAIL)
    db.refresh(event)

    try:
        ledger_result = recorder.append_row(event.sheet_id, event.gid, booking_row(booking, event))
        send_booking_mail(mailer, booking, event, slot)
    except Exception:
        logger.error(
            "Error while processing booking (%s) of event (%s).",
            booking.model_dump_json(),
            EventOut.model_validate(event).model_dump_json(),
        )
        raise

    if booking.subscribe_updates:
        # the confirmation mail already carries the unsubscribe link
        news.upsert(db, booking.email, {EVENT_TOPICS[event.type]})

    logger.info(
        "Booking %s of Event (%s) was successful: %s (%s)", slot.booking_number, event.id, result.value, ledger_result
    )
    message = MESSAGE_BOOKED if result == BookingResult.BOOKED else MESSAGE_WAITING_LIST
    return BookingResponse.succeeded(message, event_counters(db))


def send_booking_mail(mailer: Mailer, booking: EventBooking, event: Event, slot: SlotBooking) -> None:
    if event.alt_email_address:
        account = mailer.account_by_address(event.alt_email_address)
    else:
        account = mailer.account_by_type(event.type)

    prefix = f"[{'Fitness' if event.type == EventType.FITNESS.value else 'Events'}@{CLUB_TAG}]"
    # only confirmed bookings quote their number
    if slot.result == BookingResult.BOOKED:
        subject = f"{prefix} Bestätigung Buchung"
        template = event.booking_template
        booking_number = slot.booking_number
    else:
        subject = f"{prefix} Bestätigung Warteliste"
        template = event.waiting_template
        booking_number = None

    sent = mailer.send(
        account.address,
        to=[booking.email],
        bcc=[account.address],
        subject=subject,
        body=render_booking(template, booking, event, booking_number=booking_number),
    )
    if not sent:
        raise MailError(f"Booking mail to {booking.email} was not accepted")
    logger.info("Booking email was sent successfully")


def encode_prebooking(booking: EventBooking) -> str:
    fields = [
        booking.event_id,
        booking.first_name,
        booking.last_name,
        booking.street,
        booking.city,
        booking.email,
        booking.phone or "",
        "J" if booking.is_member else "N",
    ]
    return base64.b64encode("#".join(fields).encode("utf-8")).decode("ascii")


def decode_prebooking(token: str) -> EventBooking:
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidTokenError(f"Error decoding the prebooking token {token!r}") from e

    fields = decoded.split("#")
    if len(fields) != PREBOOKING_FIELDS:
        raise InvalidTokenError(f"Prebooking token ({decoded}) has an invalid length: {len(fields)}")

    try:
        return EventBooking(
            event_id=fields[0],
            first_name=fields[1],
            last_name=fields[2],
            street=fields[3],
            city=fields[4],
            email=fields[5],
            phone=fields[6] or None,
            member=fields[7] == "J",
            updates=False,
            comments=PREBOOKING_COMMENT,
        )
    except ValidationError as e:
        raise InvalidTokenError(f"Prebooking token ({decoded}) contains invalid fields") from e


def _ledger_fields(values: list[str]) -> tuple[str, ...]:
    fields = [value.strip() for value in values]
    # phone numbers are written with a leading quote
    fields[5] = fields[5].lstrip("'")
    return tuple(fields)


def is_booked_already(recorder: SheetRecorder, booking: EventBooking, event: Event) -> bool:
    expected = _ledger_fields(
        [
            booking.first_name,
            booking.last_name,
            booking.street,
            booking.city,
            booking.email,
            booking.phone or "",
            "J" if booking.is_member else "N",
        ]
    )
    rows = recorder.read_rows(event.sheet_id, event.gid, LEDGER_KEYS)
    return any(_ledger_fields([row[key] for key in LEDGER_KEYS]) == expected for row in rows)


def confirm_prebooking(db: Session, token: str, recorder: SheetRecorder, mailer: Mailer) -> BookingResponse:
    """
    Book from a single-use link token. A token whose person is already in the
    event's ledger is rejected without touching the counters.
    """
    try:
        booking = decode_prebooking(token)
    except InvalidTokenError:
        logger.warning("Prebooking failed", exc_info=True)
        return BookingResponse.failed(MESSAGE_FAIL)

    key = hashlib.sha256(encode_prebooking(booking).encode("utf-8")).hexdigest()
    try:
        lock = get_redis_client().lock(
            f"prebooking_lock:{key}", timeout=PREBOOKING_LOCK_TIMEOUT, blocking_timeout=5
        )
        if not lock.acquire(blocking=True, blocking_timeout=5):
            logger.error("Could not acquire prebooking lock for %s", booking.email)
            return BookingResponse.failed(MESSAGE_FAIL)
    except redis.exceptions.RedisError:
        logger.exception("Prebooking failed, lock store unavailable")
        return BookingResponse.failed(MESSAGE_FAIL)

    try:
        return _confirm_prebooking(db, booking, recorder, mailer)
    finally:
        with contextlib.suppress(redis.exceptions.LockError):
            lock.release()


def _confirm_prebooking(
    db: Session, booking: EventBooking, recorder: SheetRecorder, mailer: Mailer
) -> BookingResponse:
    try:
        event = load_event(db, booking.event_id)
    except Exception:
        logger.exception("Prebooking failed: %s", booking.model_dump_json())
        return BookingResponse.failed(MESSAGE_FAIL)

    try:
        used = is_booked_already(recorder, booking, event)
    except Exception:
        logger.warning("Could not read ledger of event (%s), continuing with booking", event.id, exc_info=True)
        used = False

    if used:
        logger.warning("Prebooking link data has been detected and invalidated for booking %s", booking.model_dump_json())
        return BookingResponse.failed(MESSAGE_LINK_USED)

    return submit_booking(db, booking, recorder, mailer)
