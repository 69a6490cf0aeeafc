import unittest

from seatmap_core.compiler import compile_layout
from seatmap_core.layout import OrchestraCurve, Rect, SectionConfig
from seatmap_core.transform import (
    MIN_CONTAINER_HEIGHT,
    MIN_CONTAINER_WIDTH,
    frame,
    normalize,
    stage_rect,
    to_container,
)


def _snapshot():
    sections = []
    for section_id, start, end in (("sectionA", 150.0, 180.0), ("sectionB", 0.0, 30.0)):
        shape = OrchestraCurve(
            center_x=500.0, center_y=400.0, start_angle=start, end_angle=end,
            inner_radius=100.0, outer_radius=200.0, row_depth=20.0,
        )
        sections.append(
            SectionConfig(id=section_id, name=section_id, shape=shape, rows=5, capacity=70, row_seat_counts=(10, 12, 14, 16, 18))
        )
    return compile_layout("venue-1", "show-1", sections, Rect.from_origin(450.0, 200.0, 100.0, 50.0))


class TestFrame(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # seats span x 320..680, y 400..490
        cls.snap = _snapshot()

    def test_bounds_include_padding(self):
        view = frame(self.snap, 1000, 1000, padding=10)
        self.assertEqual(view.bounds, Rect(310.0, 390.0, 690.0, 500.0))

    def test_fits_width_first(self):
        view = frame(self.snap, 1000, 1000, padding=10)
        self.assertEqual(view.container_width, 1000)
        self.assertAlmostEqual(view.container_height, 1000 / (380 / 110), places=1)

    def test_rescales_by_height_when_too_tall(self):
        view = frame(self.snap, 1000, 250, padding=10)
        self.assertEqual(view.container_height, 250)
        self.assertAlmostEqual(view.container_width, 250 * 380 / 110, places=1)

    def test_minimum_container(self):
        view = frame(self.snap, 100, 100)
        self.assertEqual(view.container_width, MIN_CONTAINER_WIDTH)
        self.assertEqual(view.container_height, MIN_CONTAINER_HEIGHT)

    def test_idempotent(self):
        self.assertEqual(frame(self.snap, 800, 600, 20), frame(self.snap, 800, 600, 20))

    def test_every_seat_normalized_in_unit_square(self):
        view = frame(self.snap, 800, 600, 0)
        self.assertEqual(len(view.seats), len(self.snap.seats))
        for s in view.seats:
            self.assertTrue(0.0 <= s.nx <= 1.0 and 0.0 <= s.ny <= 1.0)
            self.assertTrue(0.0 <= s.px <= view.container_width)
            self.assertTrue(0.0 <= s.py <= view.container_height)

    def test_extreme_seats_hit_the_corners_without_padding(self):
        view = frame(self.snap, 800, 600, 0)
        by_id = {s.seat_id: s for s in view.seats}
        # E-18 of sectionA sits at angle 180, radius 180: leftmost, top edge
        self.assertEqual((by_id["sectionA-E-18"].nx, by_id["sectionA-E-18"].ny), (0.0, 0.0))
        self.assertEqual(by_id["sectionB-E-1"].nx, 1.0)

    def test_stage_independent_of_seats(self):
        view = frame(self.snap, 1000, 1000, padding=10)
        self.assertEqual(view.stage, stage_rect(view.container_width, view.container_height))

    def test_invalid_viewport(self):
        with self.assertRaises(ValueError):
            frame(self.snap, 0, 600)
        with self.assertRaises(ValueError):
            frame(self.snap, 800, 600, padding=-1)


class TestHelpers(unittest.TestCase):
    def test_normalize_clamps(self):
        bounds = Rect(0, 0, 100, 50)
        self.assertEqual(normalize(50, 25, bounds), (0.5, 0.5))
        self.assertEqual(normalize(-10, 80, bounds), (0.0, 1.0))
        self.assertEqual(normalize(150, -5, bounds), (1.0, 0.0))

    def test_normalize_degenerate_bounds(self):
        nx, ny = normalize(5, 5, Rect(5, 5, 5, 5))
        self.assertTrue(0.0 <= nx <= 1.0 and 0.0 <= ny <= 1.0)

    def test_to_container(self):
        self.assertEqual(to_container(0.5, 0.5, 200, 100), (100.0, 50.0))
        self.assertEqual(to_container(1.0, 0.0, 200, 100), (200.0, 0.0))

    def test_stage_bottom_center(self):
        r = stage_rect(1000, 500)
        self.assertEqual(r, Rect(200.0, 450.0, 800.0, 490.0))
        self.assertEqual(r.center[0], 500.0)


if __name__ == "__main__":
    unittest.main()
