import random
import unittest

from playwright.async_api import Error as PlaywrightError

from hwbot.core.models import Coordinate
from hwbot.platform.input import CLICK_SEQUENCE, InputSimulator, jittered_point


class FakeLocator:
    def __init__(self, count: int = 1, box=None, error: Exception = None) -> None:
        self._count = count
        self.box = box
        self.error = error
        self.dispatched = []

    async def count(self) -> int:
        return self._count

    @property
    def first(self) -> "FakeLocator":
        return self

    async def bounding_box(self):
        return self.box

    async def dispatch_event(self, type_, init) -> None:
        if self.error is not None:
            raise self.error
        self.dispatched.append((type_, dict(init)))


class FakePage:
    def __init__(self, **locators) -> None:
        self.locators = locators

    def locator(self, selector: str) -> FakeLocator:
        return self.locators[selector]


BOX = {"x": 10.0, "y": 20.0, "width": 1000.0, "height": 500.0}


class JitterTests(unittest.TestCase):
    def test_point_within_jitter_bounds(self) -> None:
        rng = random.Random(7)
        coord = Coordinate(0.5, 0.5)
        for _ in range(300):
            x, y = jittered_point(BOX, coord, 10, rng)
            self.assertTrue(500.0 <= x <= 520.0)
            self.assertTrue(260.0 <= y <= 280.0)
            # jitter is a whole number of pixels
            self.assertEqual(x - 510.0, int(x - 510.0))

    def test_no_jitter_is_exact(self) -> None:
        self.assertEqual(jittered_point(BOX, Coordinate(0.25, 0.1), 0), (260.0, 70.0))


class InputSimulatorTests(unittest.IsolatedAsyncioTestCase):
    async def test_click_dispatches_full_sequence_at_one_point(self) -> None:
        canvas = FakeLocator(box=BOX)
        sim = InputSimulator(FakePage(canvas=canvas), rng=random.Random(1))

        self.assertTrue(await sim.click_at(Coordinate(0.5, 0.5)))

        self.assertEqual([t for t, _ in canvas.dispatched], list(CLICK_SEQUENCE))
        points = {(init["clientX"], init["clientY"]) for _, init in canvas.dispatched}
        self.assertEqual(len(points), 1)
        self.assertTrue(all(init["bubbles"] for _, init in canvas.dispatched))

    async def test_missing_surface_reports_false(self) -> None:
        canvas = FakeLocator(count=0)
        sim = InputSimulator(FakePage(canvas=canvas))
        self.assertFalse(await sim.click_at(Coordinate(0.5, 0.5)))
        self.assertEqual(canvas.dispatched, [])

    async def test_unbound_simulator_reports_false(self) -> None:
        sim = InputSimulator()
        self.assertFalse(await sim.click_at(Coordinate(0.5, 0.5)))

    async def test_escape_sends_keydown_then_keyup(self) -> None:
        root = FakeLocator()
        sim = InputSimulator(FakePage(html=root, canvas=FakeLocator(box=BOX)))
        await sim.press_escape()
        self.assertEqual([t for t, _ in root.dispatched], ["keydown", "keyup"])
        self.assertTrue(all(init["key"] == "Escape" for _, init in root.dispatched))

    async def test_closed_page_skips_click(self) -> None:
        for error in (PlaywrightError("Target page, context or browser has been closed"), RuntimeError("detached")):
            sim = InputSimulator(FakePage(canvas=FakeLocator(box=BOX, error=error)))
            with self.assertLogs("hwbot.input", level="WARNING"):
                self.assertFalse(await sim.click_at(Coordinate(0.5, 0.5)))

    async def test_closed_page_skips_escape(self) -> None:
        root = FakeLocator(error=PlaywrightError("Target closed"))
        sim = InputSimulator(FakePage(html=root))
        with self.assertLogs("hwbot.input", level="WARNING"):
            await sim.press_escape()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
