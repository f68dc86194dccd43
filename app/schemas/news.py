import enum

from pydantic import BaseModel, EmailStr, Field


class NewsTopic(str, enum.Enum):
    GENERAL = "general"
    EVENTS = "events"
    FITNESS = "fitness"

    @property
    def display_name(self) -> str:
        return {
            NewsTopic.GENERAL: "Allgemein",
            NewsTopic.EVENTS: "Events",
            NewsTopic.FITNESS: "Fitness",
        }[self]


class SubscriptionIn(BaseModel):
    email: EmailStr
    types: set[NewsTopic] = Field(min_length=1)


class SubscriptionOut(BaseModel):
    email: str
    types: list[NewsTopic]
