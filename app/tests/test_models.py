"""
Test the Event and Subscription models.
"""
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.events import UNLIMITED, CapacityState, Event
from app.models.subscriptions import Subscription


class TestEventModel:
    """Test Event model"""

    def test_create_event(self, db_session: Session):
        """Test creating an event with defaults."""
        event = Event(id="yoga", name="Yoga", dates=["2022-03-07T19:00:00"])
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)

        assert event.type == "events"
        assert event.max_subscribers == UNLIMITED
        assert event.subscribers == 0
        assert event.waiting_list == 0
        assert event.visible is False
        assert event.session_dates == [datetime(2022, 3, 7, 19, 0)]

    def test_capacity_state(self, make_event):
        assert make_event(id="open", subscribers=9).state == CapacityState.OPEN
        assert make_event(id="waiting", subscribers=10, waiting_list=4).state == CapacityState.WAITLIST_OPEN

        full = make_event(id="full", subscribers=10, waiting_list=5)
        assert full.state == CapacityState.FULL
        assert full.is_booked_up

    def test_unlimited_event_is_never_booked_up(self, make_event):
        event = make_event(max_subscribers=UNLIMITED, subscribers=500, max_waiting_list=0)
        assert event.is_unlimited
        assert event.state == CapacityState.OPEN
        assert not event.is_booked_up

    def test_cost_by_membership(self, make_event):
        event = make_event()
        assert event.cost(True) == 5.0
        assert event.cost(False) == 10.0


class TestSubscriptionModel:
    """Test Subscription model"""

    def test_create_subscription(self, db_session: Session):
        subscription = Subscription(email="max@mustermann.de", topics=["events", "fitness"])
        db_session.add(subscription)
        db_session.commit()

        stored = db_session.get(Subscription, "max@mustermann.de")
        assert stored is not None
        assert stored.topics == ["events", "fitness"]
