import unittest

from app.core.analysis_cache import NormalizedCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class NormalizedCacheTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = NormalizedCache(ttl_seconds=60, clock=self.clock)

    def test_inputs_differing_in_case_and_whitespace_share_an_entry(self):
        self.cache.set("Senior  Python\nEngineer ", "Job Text", result={"score": 71})
        self.assertEqual(self.cache.get("senior python engineer", "  JOB   text"), {"score": 71})
        self.assertEqual(
            self.cache.make_key("A  b", "C"),
            self.cache.make_key(" a b ", "c"),
        )

    def test_key_is_a_sha256_hex_digest(self):
        key = self.cache.make_key("resume", "job")
        self.assertEqual(len(key), 64)
        self.assertTrue(all(char in "0123456789abcdef" for char in key))

    def test_part_boundaries_are_part_of_the_key(self):
        self.assertNotEqual(self.cache.make_key("ab", "c"), self.cache.make_key("a", "bc"))

    def test_miss_returns_none(self):
        self.assertIsNone(self.cache.get("resume", "jd"))

    def test_entry_expires_after_ttl(self):
        self.cache.set("resume", "jd", result={"ok": True})
        self.clock.now += 60
        self.assertEqual(self.cache.get("resume", "jd"), {"ok": True})
        self.clock.now += 0.5
        self.assertIsNone(self.cache.get("resume", "jd"))
        self.assertEqual(len(self.cache), 0)

    def test_returned_results_are_copies(self):
        self.cache.set("resume", "jd", result={"items": [1, 2]})
        first = self.cache.get("resume", "jd")
        first["items"].append(3)
        self.assertEqual(self.cache.get("resume", "jd"), {"items": [1, 2]})

    def test_purge_expired_removes_only_stale_entries(self):
        self.cache.set("old", result=1)
        self.clock.now += 45
        self.cache.set("new", result=2)
        self.clock.now += 30
        self.assertEqual(self.cache.purge_expired(), 1)
        self.assertIsNone(self.cache.get("old"))
        self.assertEqual(self.cache.get("new"), 2)

    def test_clear_reports_removed_count(self):
        self.cache.set("a", result=1)
        self.cache.set("b", result=2)
        self.assertEqual(self.cache.clear(), 2)
        self.assertEqual(len(self.cache), 0)

    def test_rejects_non_positive_ttl(self):
        with self.assertRaises(ValueError):
            NormalizedCache(ttl_seconds=0)


if __name__ == "__main__":
    unittest.main()
