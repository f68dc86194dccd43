import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database.db import get_db
from app.schemas.events import EventCounter, EventDelete, EventOut, EventUpdate
from app.services.events import EventNotFoundError, delete_event, event_counters, load_events, save_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=list[EventOut])
def list_events(all: bool = False, beta: bool | None = None, db: Session = Depends(get_db)):
    return load_events(db, all=all, beta=beta)


@router.get("/counter", response_model=list[EventCounter])
def counter(db: Session = Depends(get_db)):
    return event_counters(db)


@router.post("/update", response_model=EventOut)
def update_event(payload: EventUpdate, db: Session = Depends(get_db)):
    try:
        event = save_event(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("Event (%s) has been updated", event.id)
    return event


@router.post("/delete")
def remove_event(payload: EventDelete, db: Session = Depends(get_db)):
    try:
        delete_event(db, payload.id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("Event (%s) has been deleted", payload.id)
    return {"id": payload.id}
