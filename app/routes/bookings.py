from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.bookings import BookingResponse, EventBooking
from app.services.bookings import confirm_prebooking, submit_booking
from app.services.mailer import Mailer, get_mailer
from app.services.sheets import SheetRecorder, get_sheet_recorder

router = APIRouter(prefix="/events", tags=["bookings"])


async def read_token(request: Request) -> str:
    """Pre-booking tokens arrive as plain text body."""
    return (await request.body()).decode("utf-8", errors="replace")


@router.post("/booking", response_model=BookingResponse)
def booking(
    payload: EventBooking,
    db: Session = Depends(get_db),
    recorder: SheetRecorder = Depends(get_sheet_recorder),
    mailer: Mailer = Depends(get_mailer),
):
    return submit_booking(db, payload, recorder, mailer)


@router.post("/prebooking", response_model=BookingResponse)
def prebooking(
    token: str = Depends(read_token),
    db: Session = Depends(get_db),
    recorder: SheetRecorder = Depends(get_sheet_recorder),
    mailer: Mailer = Depends(get_mailer),
):
    return confirm_prebooking(db, token, recorder, mailer)
