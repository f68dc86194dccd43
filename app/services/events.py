"""Event store: loading, administrative merge-updates and the atomic slot counter."""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import case, insert, or_, select, update
from sqlalchemy.orm import Session

from app.core.config import CLUB_TIMEZONE
from app.models.events import UNLIMITED, BookingNumberCounter, Event
from app.schemas.events import EventCounter, EventUpdate

logger = logging.getLogger(__name__)


class EventNotFoundError(Exception):
    pass


class BookingResult(str, enum.Enum):
    BOOKED = "BOOKED"
    WAITING_LIST = "WAITING_LIST"
    BOOKED_OUT = "BOOKED_OUT"


# booking numbers run from FIRST_BOOKING_NUMBER to LAST_BOOKING_NUMBER, then wrap
BOOKING_NUMBER_SEQUENCE = "events"
FIRST_BOOKING_NUMBER = 1000
LAST_BOOKING_NUMBER = 9999


@dataclass(frozen=True)
class SlotBooking:
    result: BookingResult
    booking_number: str | None = None


def load_event(db: Session, event_id: str) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise EventNotFoundError(f"Event ({event_id}) does not exist.")
    return event


def load_events(db: Session, *, all: bool = False, beta: bool | None = None) -> list[Event]:
    """Visible events (or every event with ``all``), booked-up events last."""
    events = db.scalars(select(Event)).all()
    if not all:
        events = [e for e in events if e.visible and (beta is None or e.beta == beta)]
    return sorted(events, key=lambda e: (e.is_booked_up, e.sort_index))


def event_counters(db: Session) -> list[EventCounter]:
    return [EventCounter.model_validate(event) for event in load_events(db)]


def _club_local(date: datetime) -> datetime:
    # session dates are stored as naive wall-clock times of the club
    if date.tzinfo is None:
        return date
    return date.astimezone(ZoneInfo(CLUB_TIMEZONE)).replace(tzinfo=None)


def _merge(event: Event, changes: EventUpdate) -> Event:
    # incoming non-null values win, everything else stays as stored
    for field, value in changes.model_dump(exclude={"id"}).items():
        if value is None:
            continue
        if field == "dates":
            value = [d.isoformat() for d in sorted(_club_local(d) for d in value)]
        elif field == "type":
            value = value.value
        setattr(event, field, value)
    return event


def save_event(db: Session, changes: EventUpdate) -> Event:
    """Merge a partial record onto the stored event, or create it when the id is new."""
    event = db.get(Event, changes.id)
    if event is None:
        if not changes.name or not changes.dates:
            raise ValueError("A new event needs a name and at least one session date.")
        event = Event(id=changes.id)
        db.add(event)
        logger.info("Creating event (%s)", changes.id)
    _merge(event, changes)
    db.commit()
    db.refresh(event)
    return event


def delete_event(db: Session, event_id: str) -> None:
    event = load_event(db, event_id)
    db.delete(event)
    db.commit()


def next_booking_number(db: Session, now: datetime | None = None) -> str:
    """
    Hand out the next ``YY-NNNN`` booking number inside the caller's transaction.

    The counter wraps back to ``FIRST_BOOKING_NUMBER`` after ``LAST_BOOKING_NUMBER``
    and is created on first use.
    """
    now = now or datetime.now(ZoneInfo(CLUB_TIMEZONE))
    counter = BookingNumberCounter.value
    number = db.execute(
        update(BookingNumberCounter)
        .where(BookingNumberCounter.id == BOOKING_NUMBER_SEQUENCE)
        .values(
            value=case(
                (or_(counter < FIRST_BOOKING_NUMBER, counter >= LAST_BOOKING_NUMBER), FIRST_BOOKING_NUMBER),
                else_=counter + 1,
            )
        )
        .returning(BookingNumberCounter.value)
        .execution_options(synchronize_session=False)
    ).scalar_one_or_none()
    if number is None:
        db.execute(insert(BookingNumberCounter).values(id=BOOKING_NUMBER_SEQUENCE, value=FIRST_BOOKING_NUMBER))
        number = FIRST_BOOKING_NUMBER
    return f"{now:%y}-{number:04d}"


def book_event_slot(db: Session, event_id: str) -> SlotBooking:
    """
    Take one place on the event, the decision is derived from conditional
    UPDATE statements so two requests can never both claim the last place.
    The booking number is drawn in the same transaction.
    """
    booked = db.execute(
        update(Event)
        .where(Event.id == event_id)
        .where(or_(Event.max_subscribers == UNLIMITED, Event.subscribers < Event.max_subscribers))
        .values(subscribers=Event.subscribers + 1)
        .execution_options(synchronize_session=False)
    )
    if booked.rowcount == 1:  # type: ignore
        booking_number = next_booking_number(db)
        db.commit()
        return SlotBooking(BookingResult.BOOKED, booking_number)

    waiting = db.execute(
        update(Event)
        .where(Event.id == event_id)
        .where(Event.waiting_list < Event.max_waiting_list)
        .values(waiting_list=Event.waiting_list + 1)
        .execution_options(synchronize_session=False)
    )
    if waiting.rowcount == 1:  # type: ignore
        booking_number = next_booking_number(db)
        db.commit()
        return SlotBooking(BookingResult.WAITING_LIST, booking_number)

    exists = db.scalar(select(Event.id).where(Event.id == event_id)) is not None
    db.rollback()
    if not exists:
        raise EventNotFoundError(f"Event ({event_id}) does not exist.")
    return SlotBooking(BookingResult.BOOKED_OUT)
