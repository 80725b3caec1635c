import asyncio
import unittest

import httpx

from bib.client.api import BibApi
from bib.client.gateway import RestGateway
from bib.client.reminder_center import LogNotifier, friend_reminder_center, watch_reminder_center
from bib.core.dependencies import get_current_user, get_optional_service_supabase, get_user_supabase
from bib.main import app
from tests.fakes import FakeSupabase


class TestClientAgainstApp(unittest.IsolatedAsyncioTestCase):
    """The companion client talking to the real app in-process"""

    def setUp(self):
        self.db = FakeSupabase()
        self.db.seed("users", {"id": "alice", "name": "Alice", "username": "alice"})
        self.db.seed("users", {"id": "bob", "name": "Bob", "username": "bob"})
        self.db.seed("friends", {"user_id": "alice", "friend_id": "bob"})
        self.user = {"id": "alice"}
        app.dependency_overrides[get_current_user] = lambda: self.user
        app.dependency_overrides[get_user_supabase] = lambda: self.db
        app.dependency_overrides[get_optional_service_supabase] = lambda: self.db

    def tearDown(self):
        app.dependency_overrides.clear()

    async def asyncSetUp(self):
        self.gateway = RestGateway("http://testserver/api/v1", transport=httpx.ASGITransport(app=app))
        self.api = BibApi(self.gateway)

    async def asyncTearDown(self):
        await self.gateway.aclose()

    async def test_watch_reminder_upsert_then_get(self):
        saved = await self.api.upsert_watch_reminder("tmdb-438631", "Dune", "2099-06-01T19:30:00Z", movie_year=2021)
        self.assertEqual(saved["movie_title"], "Dune")
        fetched = await self.api.get_watch_reminder_for_movie("tmdb-438631")
        self.assertEqual(fetched["id"], saved["id"])
        self.assertEqual(fetched["remind_at"], "2099-06-01T19:30:00+00:00")

        await self.api.delete_watch_reminder("tmdb-438631")
        self.assertIsNone(await self.api.get_watch_reminder_for_movie("tmdb-438631"))

    async def test_due_watch_reminder_becomes_a_toast(self):
        self.db.seed("watch_reminders", {
            "user_id": "alice",
            "movie_id": "tmdb-438631",
            "movie_title": "Dune",
            "remind_at": "2020-01-01T00:00:00+00:00",
        })
        notifier = LogNotifier(permission="granted")
        center = watch_reminder_center(self.api, notifier, interval_seconds=3600)
        center.start("alice")
        try:
            for _ in range(50):
                if center.toasts:
                    break
                await asyncio.sleep(0.01)
            [toast] = center.toasts
            self.assertEqual(toast.title, "Watch reminder: Dune")
            self.assertEqual(toast.open_path, "/movie/tmdb-438631")
            # claimed on the server: polling again finds nothing new
            self.assertEqual(await self.api.poll_due_watch_reminders(), [])
        finally:
            center.stop()

    async def test_friend_reminder_round_trip(self):
        result = await self.api.send_friend_recommendations([{
            "sender_id": "alice",
            "recipient_id": "bob",
            "movie_title": "Dune",
            "tmdb_id": 438631,
        }])
        self.assertEqual(result["sent"], 1)
        # a reminder that has already come due
        self.db.rows("friend_recommendations")[0]["remind_at"] = "2020-01-01T00:00:00+00:00"

        self.user = {"id": "bob"}
        center = friend_reminder_center(self.api, LogNotifier(permission="denied"))
        center.user_id = "bob"
        [item] = await center.tick()
        self.assertEqual(item["sender_name"], "Alice")
        [toast] = center.toasts
        self.assertEqual(toast.title, "Friend reminder: Dune")
        self.assertEqual(toast.body, "Alice reminded you to watch Dune")
        self.assertEqual(toast.open_path, "/movie/tmdb-438631")
        center.stop()

    async def test_duplicate_send_is_reported(self):
        row = {"sender_id": "alice", "recipient_id": "bob", "movie_title": "Dune"}
        await self.api.send_friend_recommendations([row])
        result = await self.api.send_friend_recommendations([row])
        self.assertEqual(result["sent"], 0)
        self.assertEqual(result["skipped"]["duplicates"], ["bob"])


if __name__ == "__main__":
    unittest.main()
