import enum

from pydantic import BaseModel, EmailStr, Field


class MessageType(str, enum.Enum):
    GENERAL = "general"
    EVENTS = "events"
    FITNESS = "fitness"
    KUNSTRASEN = "kunstrasen"


class ContactMessage(BaseModel):
    type: MessageType
    to: EmailStr
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str | None = None
    message: str = Field(min_length=1)
