import threading
import unittest

from seatmap_core.cache import LayoutCache, StaleSnapshotError, StoreUnavailable
from seatmap_core.compiler import LayoutCompiler, compile_layout
from seatmap_core.geometry import generate_curved_seats
from seatmap_core.layout import OrchestraCurve, Rect, SectionConfig


STAGE = Rect.from_origin(450.0, 200.0, 100.0, 50.0)


def _section(section_id, start, end):
    shape = OrchestraCurve(
        center_x=500.0, center_y=400.0, start_angle=start, end_angle=end,
        inner_radius=100.0, outer_radius=200.0, row_depth=20.0,
    )
    return SectionConfig(
        id=section_id, name=section_id, shape=shape, rows=5, capacity=70, row_seat_counts=(10, 12, 14, 16, 18)
    )


def _layout(version=1, venue="venue-1", show="show-1"):
    return compile_layout(
        venue, show, [_section("sectionA", 150, 180), _section("sectionB", 0, 30)], STAGE, version=version
    )


class FlakyStore:
    def __init__(self, snapshot, failures):
        self.snapshot = snapshot
        self.failures = failures
        self.loads = 0
        self.saved = []

    def load(self, venue_id, show_id):
        self.loads += 1
        if self.loads <= self.failures:
            raise StoreUnavailable("connection reset")
        if self.snapshot is not None and self.snapshot.key == (venue_id, show_id):
            return self.snapshot
        return None

    def save(self, snapshot):
        self.saved.append(snapshot)


class TestLayoutCache(unittest.TestCase):
    def test_get_empty(self):
        self.assertIsNone(LayoutCache().get("v", "s"))
        self.assertEqual(LayoutCache().current_version("v", "s"), 0)

    def test_publish_and_get(self):
        cache = LayoutCache()
        snap = _layout()
        cache.publish(snap)
        self.assertIs(cache.get("venue-1", "show-1"), snap)
        self.assertEqual(cache.keys(), [("venue-1", "show-1")])

    def test_newer_version_replaces(self):
        cache = LayoutCache()
        cache.publish(_layout(1))
        newer = _layout(2)
        cache.publish(newer)
        self.assertIs(cache.get("venue-1", "show-1"), newer)

    def test_stale_publish_rejected(self):
        cache = LayoutCache()
        current = _layout(2)
        cache.publish(current)
        with self.assertRaises(StaleSnapshotError):
            cache.publish(_layout(2))
        with self.assertRaises(StaleSnapshotError):
            cache.publish(_layout(1))
        self.assertIs(cache.get("venue-1", "show-1"), current)

    def test_evict(self):
        cache = LayoutCache()
        cache.publish(_layout())
        self.assertTrue(cache.evict("venue-1", "show-1"))
        self.assertFalse(cache.evict("venue-1", "show-1"))
        self.assertIsNone(cache.get("venue-1", "show-1"))

    def test_publish_writes_store(self):
        store = FlakyStore(None, failures=0)
        cache = LayoutCache(store)
        snap = _layout()
        cache.publish(snap)
        self.assertEqual(store.saved, [snap])

    def test_read_through_retries_transient_failures(self):
        snap = _layout()
        store = FlakyStore(snap, failures=2)
        cache = LayoutCache(store, read_attempts=3, retry_delay=0)
        with self.assertLogs("seatmap_core.cache", level="WARNING"):
            self.assertIs(cache.get("venue-1", "show-1"), snap)
        self.assertEqual(store.loads, 3)
        # memoised: no further store reads
        cache.get("venue-1", "show-1")
        self.assertEqual(store.loads, 3)

    def test_read_through_gives_up(self):
        store = FlakyStore(_layout(), failures=10)
        cache = LayoutCache(store, read_attempts=3, retry_delay=0)
        with self.assertRaises(StoreUnavailable):
            cache.get("venue-1", "show-1")
        self.assertEqual(store.loads, 3)


class TestTranslate(unittest.TestCase):
    def setUp(self):
        self.cache = LayoutCache()
        LayoutCompiler(self.cache).compile(
            "venue-1", "show-1", [_section("sectionA", 150, 180), _section("sectionB", 0, 30)], STAGE
        )

    def test_known_id_matches_generation_output(self):
        [(seat_id, seat)] = self.cache.translate("venue-1", "show-1", ["sectionA-A-1"])
        expected = generate_curved_seats(_section("sectionA", 150, 180).shape, [10, 12, 14, 16, 18])[0]
        self.assertEqual(seat_id, "sectionA-A-1")
        self.assertEqual((seat.x, seat.y, seat.row, seat.number), (expected.x, expected.y, "A", 1))

    def test_end_to_end_seat_inside_its_section(self):
        snap = self.cache.get("venue-1", "show-1")
        self.assertEqual(len(snap.seats), 140)
        [(_, seat)] = self.cache.translate("venue-1", "show-1", ["sectionA-A-1"])
        self.assertTrue(snap.section("sectionA").boundary.contains_point(seat.x, seat.y))
        self.assertFalse(snap.section("sectionB").boundary.contains_point(seat.x, seat.y))

    def test_unknown_ids_are_none_and_order_kept(self):
        ids = ["sectionB-E-18", "nope-A-1", "sectionA-Z-1", "sectionA-C-3"]
        with self.assertLogs("seatmap_core.cache", level="WARNING"):
            result = self.cache.translate("venue-1", "show-1", ids)
        self.assertEqual([sid for sid, _ in result], ids)
        self.assertEqual([seat is not None for _, seat in result], [True, False, False, True])

    def test_no_layout_gives_all_none(self):
        with self.assertLogs("seatmap_core.cache", level="WARNING"):
            result = self.cache.translate("venue-1", "other-show", ["sectionA-A-1"])
        self.assertEqual(result, [("sectionA-A-1", None)])

    def test_translate_never_returns_commercial_fields(self):
        [(_, seat)] = self.cache.translate("venue-1", "show-1", ["sectionA-A-1"])
        self.assertNotIn("price", seat.to_dict())
        self.assertNotIn("available", seat.to_dict())


class TestConcurrentReaders(unittest.TestCase):
    def test_readers_see_whole_snapshots(self):
        cache = LayoutCache()
        cache.publish(_layout(1))
        errors = []
        stop = threading.Event()

        def reader():
            last = 0
            while not stop.is_set():
                snap = cache.get("venue-1", "show-1")
                if snap.version < last or len(snap.seats) != 140 or snap.find("sectionA-A-1") is None:
                    errors.append(snap.version)
                last = snap.version

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for v in range(2, 30):
            cache.publish(_layout(v))
        stop.set()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertEqual(cache.current_version("venue-1", "show-1"), 29)

    def test_keys_while_layouts_come_and_go(self):
        cache = LayoutCache()
        snaps = [_layout(show=f"show-{i}") for i in range(20)]
        errors = []
        stop = threading.Event()

        def lister():
            while not stop.is_set():
                try:
                    keys = cache.keys()
                except RuntimeError as e:
                    errors.append(e)
                    return
                if keys != sorted(keys):
                    errors.append(keys)

        threads = [threading.Thread(target=lister) for _ in range(4)]
        for t in threads:
            t.start()
        for _ in range(25):
            for snap in snaps:
                cache.evict(*snap.key)
                cache.publish(snap)
        stop.set()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertEqual(len(cache.keys()), 20)


if __name__ == "__main__":
    unittest.main()
