import unittest

from seatmap_core.boundary import compute_boundary, overlaps, validate_no_overlap
from seatmap_core.geometry import GeometryError
from seatmap_core.layout import Rect


class TestComputeBoundary(unittest.TestCase):
    def test_min_max_with_buffer(self):
        r = compute_boundary([(10.0, 20.0), (30.0, 5.0), (15.0, 40.0)], buffer=5.0)
        self.assertEqual(r, Rect(5.0, 0.0, 35.0, 45.0))

    def test_single_point(self):
        r = compute_boundary([(3.0, 4.0)], buffer=1.0)
        self.assertEqual(r, Rect(2.0, 3.0, 4.0, 5.0))

    def test_empty_raises(self):
        with self.assertRaises(GeometryError):
            compute_boundary([], buffer=1.0)

    def test_negative_buffer_raises(self):
        with self.assertRaises(GeometryError):
            compute_boundary([(0.0, 0.0)], buffer=-1.0)


class TestOverlap(unittest.TestCase):
    def test_identical_rects_overlap(self):
        a = Rect(100, 100, 300, 200)
        b = Rect(100, 100, 300, 200)
        self.assertTrue(overlaps(a, b))
        self.assertEqual(validate_no_overlap([a, b]), [(0, 1)])

    def test_symmetric(self):
        cases = [
            (Rect(0, 0, 10, 10), Rect(5, 5, 15, 15)),
            (Rect(0, 0, 10, 10), Rect(20, 0, 30, 10)),
            (Rect(0, 0, 10, 10), Rect(0, 20, 10, 30)),
            (Rect(0, 0, 100, 100), Rect(10, 10, 20, 20)),
        ]
        for a, b in cases:
            self.assertEqual(overlaps(a, b), overlaps(b, a))

    def test_separated_each_side(self):
        center = Rect(10, 10, 20, 20)
        self.assertFalse(overlaps(center, Rect(0, 10, 5, 20)))  # left
        self.assertFalse(overlaps(center, Rect(25, 10, 30, 20)))  # right
        self.assertFalse(overlaps(center, Rect(10, 0, 20, 5)))  # above
        self.assertFalse(overlaps(center, Rect(10, 25, 20, 30)))  # below

    def test_touching_edges_do_not_overlap(self):
        self.assertFalse(overlaps(Rect(0, 0, 10, 10), Rect(10, 0, 20, 10)))

    def test_containment_overlaps(self):
        self.assertTrue(overlaps(Rect(0, 0, 100, 100), Rect(10, 10, 20, 20)))

    def test_single_rect_never_conflicts_with_itself(self):
        self.assertEqual(validate_no_overlap([Rect(0, 0, 10, 10)]), [])

    def test_reports_every_pair(self):
        rects = [
            Rect(0, 0, 10, 10),
            Rect(5, 5, 15, 15),
            Rect(8, 8, 20, 20),
            Rect(100, 100, 110, 110),
        ]
        self.assertEqual(validate_no_overlap(rects), [(0, 1), (0, 2), (1, 2)])

    def test_no_conflicts(self):
        self.assertEqual(validate_no_overlap([Rect(0, 0, 1, 1), Rect(2, 2, 3, 3)]), [])


if __name__ == "__main__":
    unittest.main()
