"""
Mail body rendering for booking confirmations.

Templates are plain text with ``${...}`` placeholders that are replaced
literally. Supported placeholders:

- ``${firstname}``, ``${lastname}``: requester name, trimmed
- ``${name}``: event name, trimmed
- ``${location}``: event location
- ``${dates}``: one ``- Mo., 07. März 2022, 19:00 Uhr`` line per session
- ``${payday}`` / ``${payday:N}``: earliest session minus the lead time
  (default ``PAYDAY_LEAD_DAYS``, ``N`` days when given), never before now
- ``${price}``: member or non-member price as euro amount
- ``${booking_number}``: ``YY-NNNN`` reference, only filled in for confirmed bookings

Placeholders that cannot be resolved stay in the text.
"""
import re
from datetime import datetime, timedelta
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

from app.core.config import CLUB_TIMEZONE, PAYDAY_LEAD_DAYS, UNSUBSCRIBE_URL
from app.models.events import Event, EventType
from app.schemas.bookings import EventBooking

WEEKDAYS = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]

MONTHS = [
    "Januar",
    "Februar",
    "März",
    "April",
    "Mai",
    "Juni",
    "Juli",
    "August",
    "September",
    "Oktober",
    "November",
    "Dezember",
]

PAYDAY_PATTERN = re.compile(r"\$\{payday(?::(\d+))?\}")


def club_now() -> datetime:
    return datetime.now(ZoneInfo(CLUB_TIMEZONE)).replace(tzinfo=None)


def format_euro(value: float) -> str:
    """German currency notation, e.g. ``1.234,50 €``."""
    amount = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{amount} €"


def format_session_date(date: datetime) -> str:
    return f"{WEEKDAYS[date.weekday()]}., {date:%d}. {MONTHS[date.month - 1]} {date:%Y}, {date:%H:%M}"


def format_payday(date: datetime) -> str:
    return f"{date:%d}. {MONTHS[date.month - 1]}"


def format_dates(dates: list[datetime]) -> str:
    return "\n".join(f"- {format_session_date(date)} Uhr" for date in dates)


def compute_payday(dates: list[datetime], days: int, now: datetime) -> datetime | None:
    if not dates:
        return None
    payday = min(dates) - timedelta(days=days)
    return max(payday, now)


def replace_payday(body: str, dates: list[datetime], now: datetime) -> str:
    def substitute(match: re.Match) -> str:
        days = int(match.group(1)) if match.group(1) is not None else PAYDAY_LEAD_DAYS
        payday = compute_payday(dates, days, now)
        if payday is None:
            return match.group(0)
        return format_payday(payday)

    return PAYDAY_PATTERN.sub(substitute, body)


def unsubscribe_link(topic: str, email: str) -> str:
    return f"{UNSUBSCRIBE_URL}?{urlencode({'unsubscribe': topic, 'email': email})}"


def unsubscribe_block(event: Event, email: str) -> str:
    kind = "Kursangebote" if event.type == EventType.FITNESS.value else "Events"
    return (
        f"\n\nPS: Ab sofort erhältst Du automatisch eine E-Mail, sobald neue {kind} online sind.\n"
        "\n"
        "Solltest Du an unserem E-Mail-Service kein Interesse mehr haben, "
        "kannst Du dich ganz einfach von diesem Angebot abmelden.\n"
        "Klicke hierzu einfach auf folgenden Link:\n"
        f"{unsubscribe_link(event.type, email)}"
    )


def render_booking(
    template: str,
    booking: EventBooking,
    event: Event,
    now: datetime | None = None,
    booking_number: str | None = None,
) -> str:
    now = now or club_now()
    dates = event.session_dates
    replacements = {
        "${firstname}": booking.first_name.strip(),
        "${lastname}": booking.last_name.strip(),
        "${name}": event.name.strip(),
        "${location}": event.location or "",
        "${dates}": format_dates(dates),
        "${price}": format_euro(event.cost(booking.is_member)),
    }
    body = template
    for placeholder, value in replacements.items():
        body = body.replace(placeholder, value)
    if booking_number:
        body = body.replace("${booking_number}", booking_number)
    body = replace_payday(body, dates, now)
    if booking.subscribe_updates:
        body += unsubscribe_block(event, booking.email)
    return body
