from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.db import Base


class Subscription(Base):
    __tablename__ = "subscriptions"

    email: Mapped[str] = mapped_column(String(320), primary_key=True)
    topics: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
