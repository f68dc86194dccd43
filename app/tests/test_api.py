"""
Test API endpoints.
"""
from unittest.mock import patch

from fastapi.testclient import TestClient

from app.schemas.bookings import EventBooking
from app.services.bookings import MESSAGE_BOOKED, MESSAGE_LINK_USED, encode_prebooking
from app.services.mailer import MailError


class TestEventEndpoints:
    """Test event endpoints"""

    def test_list_events(self, client: TestClient, make_event):
        make_event(id="full", subscribers=10, waiting_list=5)
        make_event(id="open", sort_index=3)
        make_event(id="hidden", visible=False)

        response = client.get("/events")

        assert response.status_code == 200
        data = response.json()
        assert [e["id"] for e in data] == ["open", "full"]
        assert data[0]["maxSubscribers"] == 10
        assert data[0]["bookingTemplate"].startswith("Hallo ${firstname}")
        assert len(data[0]["dates"]) == 2

    def test_list_all_events(self, client: TestClient, make_event):
        make_event(id="open")
        make_event(id="hidden", visible=False)

        response = client.get("/events", params={"all": True})

        assert {e["id"] for e in response.json()} == {"open", "hidden"}

    def test_counter(self, client: TestClient, make_event):
        make_event(subscribers=4, waiting_list=1)

        response = client.get("/events/counter")

        assert response.status_code == 200
        assert response.json() == [
            {"id": "event-1", "maxSubscribers": 10, "subscribers": 4, "waitingList": 1, "maxWaitingList": 5}
        ]

    def test_update_event(self, client: TestClient, make_event):
        make_event()

        response = client.post("/events/update", json={"id": "event-1", "maxSubscribers": -1})

        assert response.status_code == 200
        data = response.json()
        assert data["maxSubscribers"] == -1
        assert data["name"] == " Kletterkurs "

    def test_create_event(self, client: TestClient):
        response = client.post(
            "/events/update",
            json={"id": "yoga", "type": "fitness", "name": "Yoga", "dates": ["2022-03-07T19:00:00"]},
        )

        assert response.status_code == 200
        assert response.json()["dates"] == ["2022-03-07T19:00:00"]
        assert response.json()["maxSubscribers"] == -1

    def test_create_event_without_dates(self, client: TestClient):
        response = client.post("/events/update", json={"id": "yoga", "name": "Yoga"})

        assert response.status_code == 400

    def test_update_with_invalid_capacity(self, client: TestClient, make_event):
        make_event()

        response = client.post("/events/update", json={"id": "event-1", "maxSubscribers": -2})

        assert response.status_code == 422

    def test_delete_event(self, client: TestClient, make_event):
        make_event()

        response = client.post("/events/delete", json={"id": "event-1"})
        assert response.status_code == 200
        assert response.json() == {"id": "event-1"}

        response = client.post("/events/delete", json={"id": "event-1"})
        assert response.status_code == 404


class TestBookingEndpoints:
    """Test booking endpoints"""

    def test_booking(self, client: TestClient, make_event, booking_payload, mailer):
        make_event()

        response = client.post("/events/booking", json=booking_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == MESSAGE_BOOKED
        assert data["counter"][0]["subscribers"] == 1
        assert len(mailer.sent) == 1

    def test_booking_with_invalid_email(self, client: TestClient, make_event, booking_payload):
        make_event()

        response = client.post("/events/booking", json={**booking_payload, "email": "not-an-email"})

        assert response.status_code == 422

    def test_booked_out_event(self, client: TestClient, make_event, booking_payload):
        make_event(subscribers=10, waiting_list=5)

        response = client.post("/events/booking", json=booking_payload)

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["counter"] == []

    def test_prebooking(self, client: TestClient, make_event, redis_client):
        make_event()
        token = encode_prebooking(
            EventBooking(
                event_id="event-1",
                first_name="Max",
                last_name="Mustermann",
                street="Hauptstraße 1",
                city="72184 Eutingen",
                email="max@mustermann.de",
                member=True,
            )
        )

        first = client.post("/events/prebooking", content=token)
        second = client.post("/events/prebooking", content=token)

        assert first.json()["success"] is True
        assert second.json() == {"success": False, "message": MESSAGE_LINK_USED, "counter": []}


class TestNewsEndpoints:
    """Test newsletter endpoints"""

    @patch("app.routes.news.send_subscription_mail_task")
    def test_subscribe(self, task, client: TestClient):
        response = client.post(
            "/news/subscribe", json={"email": "max@mustermann.de", "types": ["fitness", "events"]}
        )

        assert response.status_code == 200
        assert response.json() == {"email": "max@mustermann.de", "types": ["events", "fitness"]}
        task.delay.assert_called_once_with("max@mustermann.de", ["events", "fitness"])

    @patch("app.routes.news.send_subscription_mail_task")
    def test_subscribe_survives_broker_outage(self, task, client: TestClient):
        task.delay.side_effect = ConnectionError("broker down")

        response = client.post("/news/subscribe", json={"email": "max@mustermann.de", "types": ["general"]})

        assert response.status_code == 200

    def test_subscribe_without_topics(self, client: TestClient):
        response = client.post("/news/subscribe", json={"email": "max@mustermann.de", "types": []})

        assert response.status_code == 422

    @patch("app.routes.news.send_subscription_mail_task")
    def test_unsubscribe_and_subscribers(self, task, client: TestClient):
        client.post("/news/subscribe", json={"email": "max@mustermann.de", "types": ["events", "fitness"]})
        client.post("/news/subscribe", json={"email": "erika@musterfrau.de", "types": ["events"]})

        response = client.post("/news/unsubscribe", json={"email": "max@mustermann.de", "types": ["events"]})
        assert response.json() == {"email": "max@mustermann.de", "types": ["fitness"]}

        response = client.get("/news/subscribers")
        assert response.json() == {
            "general": [],
            "events": ["erika@musterfrau.de"],
            "fitness": ["max@mustermann.de"],
        }

    def test_unsubscribe_unknown_email(self, client: TestClient):
        response = client.post("/news/unsubscribe", json={"email": "max@mustermann.de", "types": ["events"]})

        assert response.json() == {"email": "max@mustermann.de", "types": []}


class TestContactEndpoint:
    """Test the contact form endpoint"""

    payload = {
        "type": "general",
        "to": "info@sv-eutingen.de",
        "name": "Max Mustermann",
        "email": "max@mustermann.de",
        "message": "Hallo",
    }

    def test_send_message(self, client: TestClient, mailer):
        response = client.post("/contact/message", json=self.payload)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert mailer.sent[0]["reply_to"] == "max@mustermann.de"

    def test_send_message_failure(self, client: TestClient, mailer):
        def fail(*args, **kwargs):
            raise MailError("relay down")

        mailer.send = fail

        response = client.post("/contact/message", json=self.payload)

        assert response.status_code == 500
        assert response.json() == {"detail": "Message could not be sent"}

    def test_unknown_message_type(self, client: TestClient):
        response = client.post("/contact/message", json={**self.payload, "type": "jugend"})

        assert response.status_code == 422
