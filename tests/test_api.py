"""End-to-end tests for the Huddle HTTP API."""

from __future__ import annotations

import json
import tempfile
import time
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from huddle.api import create_app
from huddle.config import Settings
from huddle.seed import resolve_seed_path


class HuddleAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.data_path = Path(self._tempdir.name) / "data.json"
        self.settings = Settings(
            data_path=self.data_path,
            seed_path=resolve_seed_path(None),
            flush_delay=0.02,
        )
        self.app = create_app(settings=self.settings)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        time.sleep(0.05)
        self._tempdir.cleanup()

    def _wait_for_flush(self) -> None:
        store = self.app.state.service.store
        deadline = time.monotonic() + 2.0
        while store.flush_pending and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.05)

    def test_healthcheck(self) -> None:
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_first_start_seeds_circles_and_meetups(self) -> None:
        circles = self.client.get("/api/circles")
        self.assertEqual(circles.status_code, 200, circles.text)
        names = [circle["name"] for circle in circles.json()]
        self.assertEqual(len(names), 4)
        self.assertIn("📚 Study Buddies", names)

        first = circles.json()[0]
        chat = self.client.get(f"/api/chat/{first['id']}").json()
        self.assertEqual(len(chat), 1)
        self.assertEqual(chat[0]["authorName"], "System")
        self.assertEqual(chat[0]["message"], "Welcome to Study Buddies!")

        meetups = self.client.get("/api/meetups").json()
        self.assertEqual([meetup["title"] for meetup in meetups][:2], ["Study Session", "Coffee Break"])
        self.assertTrue(self.data_path.exists())

    def test_register_user_keeps_first_name(self) -> None:
        created = self.client.post("/api/users", json={"userId": "u1", "name": "Ada"})
        self.assertEqual(created.status_code, 200, created.text)
        self.assertEqual(
            created.json(),
            {"userId": "u1", "name": "Ada", "status": "free", "availability": {}},
        )

        again = self.client.post("/api/users", json={"userId": "u1", "name": "Grace"})
        self.assertEqual(again.json()["name"], "Ada")

    def test_register_user_requires_id(self) -> None:
        response = self.client.post("/api/users", json={"name": "Ada"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "userId required"})

        empty = self.client.post("/api/users")
        self.assertEqual(empty.status_code, 400)

    def test_create_circle_scenario(self) -> None:
        response = self.client.post("/api/circles", json={"name": "Book Club"})
        self.assertEqual(response.status_code, 200, response.text)
        circle = response.json()
        self.assertEqual(len(circle["id"]), 8)
        self.assertEqual(circle["members"], [])
        self.assertEqual(circle["status"], "online")
        self.assertEqual(circle["info"], "New circle")

        chat = self.client.get(f"/api/chat/{circle['id']}").json()
        self.assertEqual(len(chat), 1)
        self.assertIn("Book Club", chat[0]["message"])
        self.assertEqual(set(chat[0]), {"id", "authorId", "authorName", "message", "ts"})

        listed = [item["id"] for item in self.client.get("/api/circles").json()]
        self.assertEqual(listed[-1], circle["id"])

    def test_create_circle_requires_name(self) -> None:
        response = self.client.post("/api/circles", json={"status": "busy"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "name is required"})

    def test_create_circle_with_creator_adds_member(self) -> None:
        circle = self.client.post("/api/circles", json={"name": "Runners", "userId": "u7"}).json()
        self.assertEqual(circle["members"], ["u7"])
        status = self.client.get("/api/status/u7").json()
        self.assertEqual(status, {"userId": "u7", "status": "free"})

    def test_join_circle_twice_keeps_single_membership(self) -> None:
        circle = self.client.post("/api/circles", json={"name": "Chess"}).json()

        first = self.client.post(f"/api/circles/{circle['id']}/join", json={"userId": "u1"})
        second = self.client.post(f"/api/circles/{circle['id']}/join", json={"userId": "u1"})

        self.assertEqual(first.json()["members"], ["u1"])
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["members"], ["u1"])

    def test_join_missing_circle_is_not_found(self) -> None:
        response = self.client.post("/api/circles/nope/join", json={"userId": "u1"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "circle not found"})

    def test_chat_messages_keep_submission_order(self) -> None:
        circle = self.client.post("/api/circles", json={"name": "Talk"}).json()
        sent = []
        for index in range(5):
            response = self.client.post(
                f"/api/chat/{circle['id']}",
                json={"authorId": "u1", "authorName": "Ada", "message": f"msg {index}"},
            )
            self.assertEqual(response.status_code, 200, response.text)
            sent.append(response.json())

        messages = self.client.get(f"/api/chat/{circle['id']}").json()[1:]
        self.assertEqual([message["message"] for message in messages], [f"msg {i}" for i in range(5)])
        self.assertEqual(messages, sent)
        timestamps = [message["ts"] for message in messages]
        self.assertEqual(timestamps, sorted(timestamps))

    def test_chat_for_unknown_circle(self) -> None:
        self.assertEqual(self.client.get("/api/chat/ghost").json(), [])

        posted = self.client.post("/api/chat/ghost", json={"message": "anyone?"})
        self.assertEqual(posted.status_code, 200, posted.text)
        self.assertEqual(posted.json()["authorId"], "anon")
        self.assertEqual(posted.json()["authorName"], "Anon")
        self.assertEqual(len(self.client.get("/api/chat/ghost").json()), 1)

    def test_chat_requires_message(self) -> None:
        response = self.client.post("/api/chat/ghost", json={"authorId": "u1"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "message required"})

    def test_status_round_trip(self) -> None:
        updated = self.client.post("/api/status/u1", json={"status": "studying"})
        self.assertEqual(updated.json(), {"userId": "u1", "status": "studying"})

        unchanged = self.client.post("/api/status/u1", json={})
        self.assertEqual(unchanged.json()["status"], "studying")
        self.assertEqual(self.client.get("/api/status/u1").json()["status"], "studying")

    def test_availability_scenario(self) -> None:
        response = self.client.post("/api/availability/u1", json={"day": "Mon", "state": "busy"})
        self.assertEqual(response.status_code, 200, response.text)

        fetched = self.client.get("/api/availability/u1")
        self.assertEqual(fetched.json(), {"userId": "u1", "availability": {"Mon": "busy"}})

    def test_availability_requires_day_and_state(self) -> None:
        response = self.client.post("/api/availability/u2", json={"day": "Mon"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "day and state required"})
        self.assertEqual(self.client.get("/api/availability/u2").json()["availability"], {})

    def test_meetup_capacity_scenario(self) -> None:
        created = self.client.post("/api/meetups", json={"title": "Tea", "total": 1})
        self.assertEqual(created.status_code, 200, created.text)
        meetup = created.json()
        self.assertEqual(meetup["attendees"], [])
        self.assertEqual(meetup["total"], 1)

        first = self.client.post(f"/api/meetups/{meetup['id']}/join", json={"userId": "u1"})
        self.assertEqual(first.json()["people"], 1)
        repeat = self.client.post(f"/api/meetups/{meetup['id']}/join", json={"userId": "u1"})
        self.assertEqual(repeat.status_code, 200)
        self.assertEqual(repeat.json()["people"], 1)

        over = self.client.post(f"/api/meetups/{meetup['id']}/join", json={"userId": "u2"})
        self.assertEqual(over.status_code, 200)
        self.assertEqual(over.json()["people"], 1)
        self.assertNotIn("attendees", over.json())

    def test_meetup_listing_hides_attendees(self) -> None:
        created = self.client.post(
            "/api/meetups",
            json={"title": "Hike", "details": "Ridge trail", "time": "Sunday, 9:00 AM"},
        ).json()
        self.assertEqual(created["total"], 6)
        self.client.post(f"/api/meetups/{created['id']}/join", json={"userId": "u1"})

        listed = {meetup["id"]: meetup for meetup in self.client.get("/api/meetups").json()}
        self.assertEqual(
            listed[created["id"]],
            {
                "id": created["id"],
                "title": "Hike",
                "details": "Ridge trail",
                "time": "Sunday, 9:00 AM",
                "total": 6,
                "people": 1,
            },
        )

    def test_meetup_validation_and_not_found(self) -> None:
        missing_title = self.client.post("/api/meetups", json={"details": "x"})
        self.assertEqual(missing_title.status_code, 400)
        self.assertEqual(missing_title.json(), {"error": "title required"})

        bad_total = self.client.post("/api/meetups", json={"title": "x", "total": "many"})
        self.assertEqual(bad_total.status_code, 400)

        missing = self.client.post("/api/meetups/nope/join", json={"userId": "u1"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "meetup not found"})

    def test_malformed_json_is_a_client_error(self) -> None:
        response = self.client.post(
            "/api/circles",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_cross_origin_requests_are_allowed(self) -> None:
        response = self.client.get("/api/circles", headers={"Origin": "http://example.com"})
        self.assertEqual(response.headers.get("access-control-allow-origin"), "*")

        preflight = self.client.options(
            "/api/circles",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        self.assertEqual(preflight.status_code, 200)

    def test_state_survives_restart_without_reseeding(self) -> None:
        circle = self.client.post("/api/circles", json={"name": "Book Club", "userId": "u1"}).json()
        self.client.post(f"/api/chat/{circle['id']}", json={"authorId": "u1", "message": "hello"})
        self.client.post("/api/availability/u1", json={"day": "Fri", "state": "available"})
        self._wait_for_flush()

        persisted = json.loads(self.data_path.read_text(encoding="utf-8"))
        self.assertEqual(len(persisted["circles"]), 5)
        self.assertEqual(persisted["users"]["u1"]["availability"], {"Fri": "available"})

        restarted = create_app(settings=self.settings)
        self.assertEqual(restarted.state.service.community, self.app.state.service.community)
        with TestClient(restarted) as client:
            circles = client.get("/api/circles").json()
            self.assertEqual(len(circles), 5)
            chat = client.get(f"/api/chat/{circle['id']}").json()
            self.assertEqual([message["message"] for message in chat], ["Welcome to Book Club!", "hello"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
