import os
import tempfile
import unittest
from unittest import mock

from hwbot.core.timeline import Timeline
from hwbot.ui.server import create_app

MODES = ("dungeon", "tower", "daily")


class FakeRuntime:
    def __init__(self) -> None:
        self.timeline = Timeline()
        self.running = {m: False for m in MODES}
        self.offline = False
        self.saved = []

    def _check(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        if self.offline:
            raise RuntimeError("Browser session is not running")

    def mode_names(self):
        return list(MODES)

    def start_mode(self, mode):
        self._check(mode)
        changed = not self.running[mode]
        self.running[mode] = True
        return changed

    def stop_mode(self, mode):
        self._check(mode)
        changed = self.running[mode]
        self.running[mode] = False
        return changed

    def toggle_mode(self, mode):
        self._check(mode)
        self.running[mode] = not self.running[mode]
        return self.running[mode]

    def mode_status(self, mode):
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        return {"mode": mode, "running": self.running[mode], "status": "Ready", "elapsed_min": 0}

    def snapshot(self):
        return {"browser_ready": True, "modes": {m: self.mode_status(m) for m in MODES}}

    def list_coord_records(self):
        return [{"x": 0.5, "y": 0.25}]

    def save_coords(self, mode, name, *, coords, table="buttons", index=None):
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        self.saved.append((mode, name, coords, table, index))
        return {table: {name: list(coords)}}


class ServerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self._env = mock.patch.dict(os.environ, {"LOG_DIR": self._tmp.name})
        self._env.start()
        self.runtime = FakeRuntime()
        self.app = create_app(self.runtime, enable_hotkeys=False)
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        self._env.stop()
        self._tmp.cleanup()

    def test_index_lists_modes(self) -> None:
        res = self.client.get("/")
        self.assertEqual(res.status_code, 200)
        self.assertIn(b"row-dungeon", res.data)
        self.assertIn(b"row-daily", res.data)

    def test_status(self) -> None:
        data = self.client.get("/api/status").get_json()
        self.assertTrue(data["browser_ready"])
        self.assertEqual(set(data["modes"]), set(MODES))
        self.assertIn("keys", data)

    def test_start_stop_toggle(self) -> None:
        res = self.client.post("/api/tower/start")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.get_json()["changed"])
        self.assertFalse(self.client.post("/api/tower/start").get_json()["changed"])
        self.assertTrue(self.client.post("/api/tower/stop").get_json()["changed"])
        toggled = self.client.post("/api/daily/toggle").get_json()
        self.assertTrue(toggled["status"]["running"])

    def test_unknown_mode(self) -> None:
        self.assertEqual(self.client.post("/api/arena/start").status_code, 404)
        self.assertEqual(self.client.get("/api/arena/status").status_code, 404)

    def test_offline_runtime_conflict(self) -> None:
        self.runtime.offline = True
        self.assertEqual(self.client.post("/api/dungeon/toggle").status_code, 409)

    def test_timeline(self) -> None:
        self.runtime.timeline.add("dungeon", "click", "ok")
        self.runtime.timeline.add("tower", "click", "proceed")
        data = self.client.get("/api/timeline?mode=tower").get_json()
        self.assertEqual([e["label"] for e in data], ["proceed"])

    def test_logs_tail(self) -> None:
        with open(os.path.join(self._tmp.name, "app.log"), "w", encoding="utf-8") as fh:
            fh.write("line one\nline two\n")
        res = self.client.get("/api/logs/tail?n=1")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_data(as_text=True), "line two\n")

    def test_logs_tail_without_file(self) -> None:
        with tempfile.TemporaryDirectory() as empty, mock.patch.dict(os.environ, {"LOG_DIR": empty}):
            self.assertEqual(self.client.get("/api/logs/tail").status_code, 204)

    def test_coords(self) -> None:
        self.assertEqual(self.client.get("/api/coords").get_json(), [{"x": 0.5, "y": 0.25}])

    def test_coords_save(self) -> None:
        res = self.client.post("/api/coords/save", json={"mode": "tower", "name": "proceed", "coords": [0.7763, 0.853]})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["table"], {"proceed": [0.7763, 0.853]})
        res = self.client.post(
            "/api/coords/save",
            json={"mode": "dungeon", "name": "door", "coords": [0.5, 0.4], "table": "doors", "index": "3"},
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(self.runtime.saved[-1], ("dungeon", "door", (0.5, 0.4), "doors", 3))

    def test_coords_save_validation(self) -> None:
        bad = [
            {"mode": "tower", "coords": [0.5, 0.5]},
            {"mode": "tower", "name": "x", "coords": [0.5]},
            {"mode": "tower", "name": "x", "coords": ["a", 0.5]},
            {"mode": "tower", "name": "x", "coords": [1.5, 0.5]},
            {"mode": "tower", "name": "x", "coords": [0.5, 0.5], "index": "first"},
            {"mode": "dungeon", "name": "door", "coords": [0.5, 0.5], "table": "doors", "index": -1},
            {"mode": "dungeon", "name": "door", "coords": [0.5, 0.5], "table": "doors", "index": True},
        ]
        for payload in bad:
            self.assertEqual(self.client.post("/api/coords/save", json=payload).status_code, 400, payload)
        self.assertEqual(self.runtime.saved, [])
        res = self.client.post("/api/coords/save", json={"mode": "arena", "name": "x", "coords": [0.5, 0.5]})
        self.assertEqual(res.status_code, 404)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
