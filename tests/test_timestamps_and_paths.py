import unittest
from datetime import datetime, timedelta, timezone

from bib.core.timestamps import clamp_limit, is_stale, parse_timestamp
from bib.modules.watch_reminders.paths import get_friend_reminder_open_path, get_watch_reminder_open_path


class TestTimestamps(unittest.TestCase):
    def test_parse_accepts_trailing_z(self):
        parsed = parse_timestamp("2024-03-01T20:00:00Z")
        self.assertEqual(parsed, datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc))

    def test_parse_converts_offsets_to_utc(self):
        parsed = parse_timestamp("2024-03-01T20:00:00+05:30")
        self.assertEqual(parsed, datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc))

    def test_parse_garbage(self):
        self.assertIsNone(parse_timestamp(""))
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp("tomorrow"))

    def test_stale_allows_a_minute_of_skew(self):
        now = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)
        self.assertFalse(is_stale(now - timedelta(seconds=59), now))
        self.assertTrue(is_stale(now - timedelta(seconds=61), now))

    def test_clamp_limit(self):
        self.assertEqual(clamp_limit(None), 5)
        self.assertEqual(clamp_limit("abc"), 5)
        self.assertEqual(clamp_limit(0), 1)
        self.assertEqual(clamp_limit(50), 10)
        self.assertEqual(clamp_limit("3"), 3)
        self.assertEqual(clamp_limit(2.9), 2)
        self.assertEqual(clamp_limit(float("inf")), 5)


class TestOpenPaths(unittest.TestCase):
    def test_watch_reminder_paths(self):
        self.assertEqual(get_watch_reminder_open_path(""), "/movies")
        self.assertEqual(get_watch_reminder_open_path(None), "/movies")
        self.assertEqual(get_watch_reminder_open_path("show::"), "/shows")
        self.assertEqual(get_watch_reminder_open_path("show::the office"), "/show/the%20office")
        self.assertEqual(get_watch_reminder_open_path("tmdbtv-1399"), "/show/tmdbtv-1399")
        self.assertEqual(get_watch_reminder_open_path("tmdb-438631"), "/movie/tmdb-438631")
        self.assertEqual(get_watch_reminder_open_path("a/b"), "/movie/a%2Fb")

    def test_friend_reminder_paths(self):
        self.assertEqual(get_friend_reminder_open_path("438631", True), "/movie/tmdb-438631")
        self.assertEqual(get_friend_reminder_open_path("local-7", False), "/movie/local-7")
        self.assertEqual(get_friend_reminder_open_path("", True), "/movies")
        self.assertEqual(get_friend_reminder_open_path("", False), "/movies")

    def test_friend_reminder_paths_ignore_show_prefixes(self):
        self.assertEqual(get_friend_reminder_open_path("show::the office", False), "/movie/show%3A%3Athe%20office")
        self.assertEqual(get_friend_reminder_open_path("tmdbtv-1399", False), "/movie/tmdbtv-1399")


if __name__ == "__main__":
    unittest.main()
