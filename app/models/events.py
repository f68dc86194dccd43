import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database.db import Base

# maxSubscribers value meaning "no limit"
UNLIMITED = -1


class EventType(str, enum.Enum):
    FITNESS = "fitness"
    EVENTS = "events"


class CapacityState(str, enum.Enum):
    OPEN = "OPEN"
    WAITLIST_OPEN = "WAITLIST_OPEN"
    FULL = "FULL"


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=EventType.EVENTS.value)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    beta: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    short_description: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(500))
    light: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # ISO formatted session date-times, kept in order
    dates: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    duration_in_minutes: Mapped[int | None] = mapped_column(Integer)

    max_subscribers: Mapped[int] = mapped_column(Integer, nullable=False, default=UNLIMITED)
    subscribers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_waiting_list: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waiting_list: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cost_member: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cost_non_member: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    booking_template: Mapped[str] = mapped_column(Text, nullable=False, default="")
    waiting_template: Mapped[str] = mapped_column(Text, nullable=False, default="")

    sheet_id: Mapped[str | None] = mapped_column(String(200))
    gid: Mapped[int | None] = mapped_column(Integer)
    alt_email_address: Mapped[str | None] = mapped_column(String(200))
    external_operator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def session_dates(self) -> list[datetime]:
        return [datetime.fromisoformat(value) for value in self.dates or []]

    @property
    def is_unlimited(self) -> bool:
        return self.max_subscribers == UNLIMITED

    @property
    def state(self) -> CapacityState:
        if self.is_unlimited or self.subscribers < self.max_subscribers:
            return CapacityState.OPEN
        if self.waiting_list < self.max_waiting_list:
            return CapacityState.WAITLIST_OPEN
        return CapacityState.FULL

    @property
    def is_booked_up(self) -> bool:
        return self.state == CapacityState.FULL

    def cost(self, member: bool) -> float:
        return self.cost_member if member else self.cost_non_member


class BookingNumberCounter(Base):
    """Last booking number handed out, one row per sequence."""

    __tablename__ = "booking_numbers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
