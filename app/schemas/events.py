from datetime import datetime

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from app.models.events import EventType


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ---------- Event ----------
class EventUpdate(CamelModel):
    """Partial event record, every field left out keeps its stored value."""

    id: str = Field(min_length=1, max_length=64)
    type: EventType | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    sort_index: int | None = None
    visible: bool | None = None
    beta: bool | None = None
    short_description: str | None = None
    description: str | None = None
    image: str | None = None
    light: bool | None = None
    dates: list[datetime] | None = Field(default=None, min_length=1)
    duration_in_minutes: int | None = Field(default=None, ge=0)
    max_subscribers: int | None = Field(default=None, ge=-1)
    subscribers: int | None = Field(default=None, ge=0)
    max_waiting_list: int | None = Field(default=None, ge=0)
    waiting_list: int | None = Field(default=None, ge=0)
    cost_member: float | None = Field(default=None, ge=0)
    cost_non_member: float | None = Field(default=None, ge=0)
    location: str | None = None
    booking_template: str | None = None
    waiting_template: str | None = None
    sheet_id: str | None = None
    gid: int | None = None
    alt_email_address: str | None = None
    external_operator: bool | None = None


class EventDelete(CamelModel):
    id: str = Field(min_length=1, max_length=64)


class EventOut(CamelModel):
    id: str
    type: EventType
    name: str
    sort_index: int
    visible: bool
    beta: bool
    short_description: str | None
    description: str | None
    image: str | None
    light: bool
    dates: list[datetime] = Field(validation_alias="session_dates")
    duration_in_minutes: int | None
    max_subscribers: int
    subscribers: int
    max_waiting_list: int
    waiting_list: int
    cost_member: float
    cost_non_member: float
    location: str
    booking_template: str
    waiting_template: str
    sheet_id: str | None
    gid: int | None
    alt_email_address: str | None
    external_operator: bool


class EventCounter(CamelModel):
    id: str
    max_subscribers: int
    subscribers: int
    waiting_list: int
    max_waiting_list: int
