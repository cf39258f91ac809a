import os
import shutil
import sys
import unittest

import requests
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import FitnessClient
from rest_api import FitnessAPI
from timer_service import ApiTimerStore, TimerController


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "client_test.db"
        self.yaml_path = "client_test.yaml"
        self.upload_dir = "client_uploads"
        self._cleanup()
        self.api = FitnessAPI(
            db_path=self.db_path, yaml_path=self.yaml_path, upload_dir=self.upload_dir
        )
        self.client = FitnessClient(
            "http://testserver", session=TestClient(self.api.app)
        )

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        shutil.rmtree(self.upload_dir, ignore_errors=True)

    def test_health(self) -> None:
        self.assertEqual(self.client.health()["status"], "ok")

    def test_exercise_crud(self) -> None:
        created = self.client.create_exercise("Bench Press", "push", weight=135, reps=8)
        self.assertEqual(created["name"], "Bench Press")
        listed = self.client.list("exercises", category="push")
        self.assertEqual([e["id"] for e in listed], [created["id"]])
        updated = self.client.update("exercises", created["id"], {"weight": 185})
        self.assertEqual(updated["weight"], 185)
        self.client.delete("exercises", created["id"])
        with self.assertRaises(requests.HTTPError):
            self.client.get("exercises", created["id"])

    def test_invalid_payload_raises(self) -> None:
        with self.assertRaises(requests.HTTPError):
            self.client.create_exercise("Mystery", "not-a-category")

    def test_weight_csv_roundtrip(self) -> None:
        result = self.client.import_weight_csv(
            "date,weight,bodyFat,muscle,notes\n2024-01-01,180.5,15,,\n2024-01-08,179,,,light\n"
        )
        self.assertEqual(result["imported"], 2)
        exported = self.client.export_weight_csv()
        self.assertTrue(exported.startswith("date,weight,bodyFat,muscle,notes"))
        self.assertIn("179", exported)

    def test_bad_csv_rejected(self) -> None:
        with self.assertRaises(requests.HTTPError):
            self.client.import_weight_csv("date,weight\nyesterday,heavy\n")
        self.assertEqual(self.client.list("weight-entries"), [])

    def test_missing_timer_is_none(self) -> None:
        self.assertIsNone(self.client.get_timer("workout-timer"))

    def test_timer_save_and_lap(self) -> None:
        saved = self.client.save_timer(
            "workout-timer", {"is_running": True, "session_start_epoch_ms": 1000}
        )
        self.assertTrue(saved["is_running"])
        lap = self.client.add_lap("workout-timer", 65000, started_at_ms=1000)
        self.assertEqual(lap["lap_id"], 1)
        self.assertEqual(lap["lap_time"], "1:05")
        timer = self.client.get_timer("workout-timer")
        self.assertEqual(len(timer["lap_times"]), 1)
        self.client.delete_timer("workout-timer")
        self.assertIsNone(self.client.get_timer("workout-timer"))

    def test_controller_persists_through_api(self) -> None:
        now = [10_000]
        store = ApiTimerStore(self.client)
        controller = TimerController(
            "workout-timer",
            store,
            clock=lambda: now[0],
            today=lambda: "2024-01-01",
        )
        controller.start()
        now[0] += 30_000
        controller.lap()
        now[0] += 5_000
        controller.pause()

        other = TimerController(
            "workout-timer",
            ApiTimerStore(self.client),
            clock=lambda: now[0],
            today=lambda: "2024-01-01",
        )
        self.assertFalse(other.state.is_running)
        self.assertEqual(other.state.elapsed_before_start_ms, 35_000)
        self.assertEqual([lap.lap_time_ms for lap in other.state.laps], [30_000])
        self.assertEqual(other.display(), "0:35")

    def test_login_without_password_fails(self) -> None:
        with self.assertRaises(requests.HTTPError):
            self.client.login("anything")


if __name__ == "__main__":
    unittest.main()
