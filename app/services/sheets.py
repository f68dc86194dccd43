"""
Booking ledger on Google Sheets.

Each event points at a spreadsheet (``sheet_id``) and a tab inside it
(``gid``). The first row of the tab holds the column titles listed in
``REQUIRED_HEADERS`` starting at column B; one booking is one row.
"""
import logging
import time
from datetime import datetime
from functools import lru_cache
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from app.core.config import (
    CLUB_TIMEZONE,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
)
from app.models.events import Event
from app.schemas.bookings import EventBooking
from app.services.templates import format_euro

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"

REQUIRED_HEADERS = [
    "buchungsdatum",
    "vorname",
    "nachname",
    "straße & nr",
    "plz & ort",
    "email",
    "telefon",
    "sve-mitglied",
    "betrag",
    "bezahlt",
    "kommentar",
]


class LedgerError(Exception):
    pass


def booking_row(booking: EventBooking, event: Event, now: datetime | None = None) -> list[str]:
    """Row values in the order of ``REQUIRED_HEADERS``."""
    now = now or datetime.now(ZoneInfo(CLUB_TIMEZONE))
    return [
        now.strftime("%d.%m.%Y %H:%M:%S"),
        booking.first_name,
        booking.last_name,
        booking.street,
        booking.city,
        booking.email,
        # keeps leading zeros, the sheet drops the quote on input
        f"'{booking.phone}" if booking.phone else "",
        "J" if booking.is_member else "N",
        format_euro(event.cost(booking.is_member)),
        "N",
        booking.comments or "",
    ]


def is_blank(row: list) -> bool:
    return not any(str(cell).strip() for cell in row)


def first_empty_row(rows: list[list]) -> int:
    """1-based sheet row of the first blank line below the header, where the ledger ends."""
    for offset, row in enumerate(rows[1:]):
        if is_blank(row):
            return offset + 2
    return len(rows) + 1


def column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


class SheetRecorder:
    def __init__(
        self,
        client_id: str | None = GOOGLE_CLIENT_ID,
        client_secret: str | None = GOOGLE_CLIENT_SECRET,
        refresh_token: str | None = GOOGLE_REFRESH_TOKEN,
        http: httpx.Client | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.http = http or httpx.Client(timeout=30)
        self._token: str | None = None
        self._token_expires_at = 0.0

    def append_row(self, spreadsheet_id: str, gid: int, values: list[str]) -> str:
        """Write ``values`` (``REQUIRED_HEADERS`` order) into the first empty row."""
        title = self._sheet_title(spreadsheet_id, gid)
        rows = self._values(spreadsheet_id, f"'{title}'!B1:L1000")
        if not rows:
            raise LedgerError(f"Found no values in sheet '{title}' of spreadsheet '{spreadsheet_id}'")

        headers = [str(h).strip().lower() for h in rows[0]]
        missing = [h for h in REQUIRED_HEADERS if h not in headers]
        if missing:
            raise LedgerError(
                f"Headers {missing} are missing in sheet '{title}' of spreadsheet '{spreadsheet_id}'"
            )
        by_header = dict(zip(REQUIRED_HEADERS, values))
        ordered = [by_header.get(h, "") for h in headers]

        row_index = first_empty_row(rows)
        last_column = column_letter(len(ordered))
        cell_range = f"'{title}'!B{row_index}:{last_column}{row_index}"
        result = self._request(
            "PUT",
            f"{SHEETS_API}/{spreadsheet_id}/values/{quote(cell_range, safe='')}",
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": [ordered]},
        )
        updated = result.get("updatedCells", 0)
        logger.info("Ledger row %s written to sheet '%s' (%s cells)", row_index, title, updated)
        return f"{updated} cells updated in row {row_index} of '{title}'"

    def read_rows(self, spreadsheet_id: str, gid: int, keys: list[str]) -> list[dict[str, str]]:
        """Rows between the header and the first blank line as ``{key: value}`` for the requested titles."""
        title = self._sheet_title(spreadsheet_id, gid)
        rows = self._values(spreadsheet_id, f"'{title}'!A1:Z1000")
        if not rows:
            return []

        mapping = {key: index for index, key in enumerate(str(h) for h in rows[0]) if key in keys}
        if len(mapping) != len(keys):
            raise LedgerError(f"Not all keys ({keys}) have been found in the first row ({rows[0]})")

        result = []
        for row in rows[1:]:
            if is_blank(row):
                break
            result.append({key: str(row[i]) if i < len(row) else "" for key, i in mapping.items()})
        return result

    def _sheet_title(self, spreadsheet_id: str | None, gid: int | None) -> str:
        if not spreadsheet_id or gid is None:
            raise LedgerError("Event has no ledger sheet configured")
        spreadsheet = self._request(
            "GET",
            f"{SHEETS_API}/{spreadsheet_id}",
            params={"fields": "sheets(properties(sheetId,title))"},
        )
        for sheet in spreadsheet.get("sheets", []):
            properties = sheet.get("properties", {})
            if properties.get("sheetId") == gid:
                return properties["title"]
        raise LedgerError(f"Sheet with sheetId '{gid}' does not exist in spreadsheet '{spreadsheet_id}'.")

    def _values(self, spreadsheet_id: str, cell_range: str) -> list[list]:
        response = self._request("GET", f"{SHEETS_API}/{spreadsheet_id}/values/{quote(cell_range, safe='')}")
        return response.get("values", [])

    def _request(self, method: str, url: str, **kwargs) -> dict:
        headers = {"Authorization": f"Bearer {self._access_token()}"}
        try:
            response = self.http.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LedgerError(f"Sheets request {method} {url} failed: {e}") from e
        return response.json()

    def _access_token(self) -> str:
        if self._token and self._token_expires_at > time.time() + 60:
            return self._token
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise LedgerError("Google credentials are not configured")
        try:
            response = self.http.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LedgerError(f"Token refresh failed: {e}") from e
        tokens = response.json()
        self._token = tokens["access_token"]
        self._token_expires_at = time.time() + tokens.get("expires_in", 3600)
        return self._token


@lru_cache(maxsize=1)
def get_sheet_recorder() -> SheetRecorder:
    return SheetRecorder()
