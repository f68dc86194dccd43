import base64
import json
import os

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./events.db")

# Redis configuration
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# SMTP relay, every account logs in separately
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", "30"))

# JSON list of {"type": ..., "address": ..., "password": <base64>}
MAIL_ACCOUNTS = os.getenv("MAIL_ACCOUNTS", "[]")

# Google Sheets (ledger)
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")

UNSUBSCRIBE_URL = os.getenv("UNSUBSCRIBE_URL", "https://www.sv-eutingen.de/newsletter")
PAYDAY_LEAD_DAYS = int(os.getenv("PAYDAY_LEAD_DAYS", "14"))
CLUB_TAG = os.getenv("CLUB_TAG", "SVE")
CLUB_TIMEZONE = os.getenv("CLUB_TIMEZONE", "Europe/Berlin")
PREBOOKING_LOCK_TIMEOUT = int(os.getenv("PREBOOKING_LOCK_TIMEOUT", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def get_redis_url():
    return REDIS_URL


def get_database_url():
    return DATABASE_URL


def get_mail_accounts(raw: str | None = None) -> list[dict]:
    """Decode the configured sender accounts, passwords are stored base64 encoded."""
    accounts = []
    for entry in json.loads(raw if raw is not None else MAIL_ACCOUNTS):
        accounts.append(
            {
                "type": entry["type"],
                "address": entry["address"],
                "password": base64.b64decode(entry["password"]).decode("utf-8"),
            }
        )
    return accounts
