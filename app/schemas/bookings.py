from pydantic import EmailStr, Field

from app.schemas.events import CamelModel, EventCounter


class EventBooking(CamelModel):
    event_id: str = Field(min_length=1, max_length=64)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = None
    member: bool | None = None
    updates: bool | None = None
    comments: str | None = None

    @property
    def is_member(self) -> bool:
        return bool(self.member)

    @property
    def subscribe_updates(self) -> bool:
        return bool(self.updates)


class BookingResponse(CamelModel):
    success: bool
    message: str
    counter: list[EventCounter] = []

    @classmethod
    def succeeded(cls, message: str, counter: list[EventCounter]) -> "BookingResponse":
        return cls(success=True, message=message, counter=counter)

    @classmethod
    def failed(cls, message: str) -> "BookingResponse":
        return cls(success=False, message=message, counter=[])
