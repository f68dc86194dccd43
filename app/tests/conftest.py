import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine, StaticPool, create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.orm.session import Session  # noqa: E402

from app.database.db import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.events import Event  # noqa: E402
from app.services.mailer import MailAccount, NoMailAccountError, get_mailer  # noqa: E402
from app.services.sheets import LedgerError, get_sheet_recorder  # noqa: E402

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

LEDGER_HEADERS = [
    "Buchungsdatum",
    "Vorname",
    "Nachname",
    "Straße & Nr",
    "PLZ & Ort",
    "Email",
    "Telefon",
    "SVE-Mitglied",
    "Betrag",
    "Bezahlt",
    "Kommentar",
]


class FakeSheetRecorder:
    """Ledger kept in memory, rows are stored per (spreadsheet, gid)."""

    def __init__(self):
        self.rows: dict[tuple, list[list[str]]] = {}
        self.fail_append = False
        self.fail_read = False

    def append_row(self, spreadsheet_id, gid, values):
        if self.fail_append:
            raise LedgerError("ledger unavailable")
        self.rows.setdefault((spreadsheet_id, gid), []).append(list(values))
        return f"{len(values)} cells updated"

    def read_rows(self, spreadsheet_id, gid, keys):
        if self.fail_read:
            raise LedgerError("ledger unavailable")
        result = []
        for values in self.rows.get((spreadsheet_id, gid), []):
            row = dict(zip(LEDGER_HEADERS, values))
            # the sheet drops the leading quote of phone numbers
            row["Telefon"] = row["Telefon"].lstrip("'")
            result.append({key: row[key] for key in keys})
        return result


class FakeMailer:
    def __init__(self, accounts):
        self.accounts = accounts
        self.sent = []
        self.fail = False

    def account_by_type(self, account_type):
        for account in self.accounts:
            if account.type == account_type:
                return account
        raise NoMailAccountError(account_type)

    def account_by_address(self, address):
        for account in self.accounts:
            if account.address == address:
                return account
        raise NoMailAccountError(address)

    def send(self, account_id, to, bcc=None, reply_to=None, subject="", body=""):
        if self.fail:
            return False
        self.sent.append(
            {
                "from": account_id,
                "to": to,
                "bcc": bcc or [],
                "reply_to": reply_to,
                "subject": subject,
                "body": body,
            }
        )
        return True


MAIL_ACCOUNTS = [
    MailAccount(type="events", address="events@sv-eutingen.de", password="secret"),
    MailAccount(type="fitness", address="fitness@sv-eutingen.de", password="secret"),
    MailAccount(type="info", address="info@sv-eutingen.de", password="secret"),
    MailAccount(type="kunstrasen", address="kunstrasen@sv-eutingen.de", password="secret"),
]


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def ledger():
    return FakeSheetRecorder()


@pytest.fixture
def mailer():
    return FakeMailer(MAIL_ACCOUNTS)


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_client(monkeypatch: pytest.MonkeyPatch, fake_redis):
    """Route the pre-booking lock to fakeredis."""
    monkeypatch.setattr("app.services.bookings.get_redis_client", lambda: fake_redis)
    return fake_redis


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(ledger, mailer):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sheet_recorder] = lambda: ledger
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_event(db_session: Session):
    """Insert an event with sensible defaults, keyword arguments override them."""

    def _make_event(**fields) -> Event:
        first = datetime.now().replace(second=0, microsecond=0) + timedelta(days=60)
        values = {
            "id": "event-1",
            "type": "events",
            "name": " Kletterkurs ",
            "sort_index": 0,
            "visible": True,
            "dates": [first.isoformat(), (first + timedelta(days=7)).isoformat()],
            "max_subscribers": 10,
            "subscribers": 0,
            "max_waiting_list": 5,
            "waiting_list": 0,
            "cost_member": 5.0,
            "cost_non_member": 10.0,
            "location": "Turn- & Festhalle Eutingen",
            "booking_template": "Hallo ${firstname}, Du bist für ${name} gebucht.\n${dates}\nBitte ${price} bis ${payday} überweisen.",
            "waiting_template": "Hallo ${firstname}, Du stehst auf der Warteliste für ${name}.",
            "sheet_id": "sheet-1",
            "gid": 0,
        }
        values.update(fields)
        event = Event(**values)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def booking_payload():
    return {
        "eventId": "event-1",
        "firstName": " Max ",
        "lastName": "Mustermann",
        "street": "Hauptstraße 1",
        "city": "72184 Eutingen",
        "email": "max@mustermann.de",
        "phone": "07457 1234",
        "member": True,
        "updates": False,
        "comments": "",
    }
