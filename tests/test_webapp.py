from __future__ import annotations

import tempfile
import unittest
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi.testclient import TestClient

from screen_time.config import ScreenTimeSettings
from screen_time.models import RawInterval
from screen_time.resolver import NameResolver
from screen_time.store import QueryFailedError
from screen_time.timeline import app_color
from screen_time.webapp import create_app

TODAY = date(2026, 2, 11)


class NoLookup:
    def find_path(self, identifier: str) -> Optional[str]:
        return None

    def display_name(self, path: str) -> Optional[str]:
        return None


def _query(day: str) -> list[RawInterval]:
    if day == "2026-02-09":
        raise QueryFailedError("Failed to query store: locked")
    if day == "2026-02-11":
        return [
            RawInterval("com.apple.Safari", "09:00:00", "09:45:00", 2700),
            RawInterval("md.obsidian", "09:50:00", "10:20:00", 1800),
            RawInterval("com.apple.mail", "11:00:00", "11:00:30", 30),
        ]
    if day == "2026-02-12":
        return [RawInterval("com.apple.Terminal", "05:00:00", "05:30:00", 1800)]
    return []


class WebAppTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.note_folder = Path(self._tmp.name)
        settings = ScreenTimeSettings(note_folder=self.note_folder, minimum_duration_seconds=60)
        app = create_app(
            settings=settings,
            resolver=NameResolver(lookup=NoLookup()),
            query=_query,
            today=lambda: TODAY,
        )
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_summary(self) -> None:
        response = self.client.get("/api/summary", params={"date": "2026-02-11"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total_minutes"], 75)
        self.assertEqual(body["total_label"], "1h 15m")
        self.assertEqual(
            body["hourly"][0]["apps"],
            [
                {"name": "Safari", "minutes": 45, "label": "45m"},
                {"name": "Obsidian", "minutes": 30, "label": "30m"},
            ],
        )

    def test_summary_rejects_bad_date(self) -> None:
        response = self.client.get("/api/summary", params={"date": "02/11/2026"})
        self.assertEqual(response.status_code, 400)

    def test_summary_reports_query_failure(self) -> None:
        response = self.client.get("/api/summary", params={"date": "2026-02-09"})
        self.assertEqual(response.status_code, 502)

    def test_timeline_navigation_and_error_state(self) -> None:
        body = self.client.get("/api/timeline").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["state"], {"current_date": "2026-02-11", "hour_height": 80})
        self.assertEqual(len(body["blocks"]), 2)

        body = self.client.post("/api/timeline/navigate", json={"days": -1}).json()
        self.assertEqual(body["status"], "empty")
        body = self.client.post("/api/timeline/navigate", json={"days": -1}).json()
        self.assertEqual(body["status"], "error")
        self.assertEqual(body["state"]["current_date"], "2026-02-09")

        body = self.client.post("/api/timeline/today").json()
        self.assertEqual(body["state"]["current_date"], "2026-02-11")
        self.assertTrue(body["is_today"])

    def test_navigate_rejects_large_jumps(self) -> None:
        response = self.client.post("/api/timeline/navigate", json={"days": 7})
        self.assertEqual(response.status_code, 422)

    def test_zoom_and_reset(self) -> None:
        body = self.client.post(
            "/api/timeline/zoom",
            json={"delta": 20, "scroll_top": 100, "scroll_height": 1000, "client_height": 600},
        ).json()
        self.assertEqual(body["state"]["hour_height"], 100)
        self.assertAlmostEqual(body["scroll_ratio"], 0.25)
        self.assertEqual(body["zoom_percent"], 125)

        body = self.client.post("/api/timeline/zoom/reset").json()
        self.assertEqual(body["state"]["hour_height"], 80)

    def test_zoom_rejects_steps_off_the_grid(self) -> None:
        response = self.client.post("/api/timeline/zoom", json={"delta": 7})
        self.assertEqual(response.status_code, 422)
        body = self.client.get("/api/timeline").json()
        self.assertEqual(body["state"]["hour_height"], 80)

    def test_app_totals_carry_colors_without_blocks(self) -> None:
        body = self.client.post("/api/timeline/navigate", json={"days": 1}).json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["blocks"], [])
        self.assertEqual(
            body["app_totals"],
            [{"name": "Terminal", "minutes": 30, "color": app_color("Terminal")}],
        )

    def test_insert_note(self) -> None:
        note = self.note_folder / "2026" / "02" / "2026-02-11.md"
        note.parent.mkdir(parents=True)
        note.write_text("# 2026-02-11\n", encoding="utf-8")

        response = self.client.post("/api/notes", json={"date": "2026-02-11"})

        self.assertEqual(response.status_code, 200)
        self.assertIn("| **Total** | - | **1h 15m** |", note.read_text(encoding="utf-8"))

    def test_insert_note_missing_file(self) -> None:
        response = self.client.post("/api/notes", json={"date": "2026-02-11"})
        self.assertEqual(response.status_code, 404)
        self.assertIn("Daily note not found", response.json()["detail"])

    def test_status(self) -> None:
        body = self.client.get("/api/status").json()
        self.assertEqual(body["minimum_duration_seconds"], 60)
        self.assertEqual(body["current_date"], "2026-02-11")


if __name__ == "__main__":
    unittest.main()
