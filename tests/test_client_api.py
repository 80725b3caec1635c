import tempfile
import unittest
from pathlib import Path

import httpx

from bib.client.api import BibApi, DuplicateRecommendationError, create_api
from bib.client.config import ClientSettings
from bib.client.gateway import GatewayError, RestGateway
from bib.core.errors import SERVER_BUSY_MESSAGE

BUSY = (500, {"detail": SERVER_BUSY_MESSAGE, "code": "XX000"})
SENT = (200, {"sent": 1, "sent_recipient_ids": ["bob"], "skipped": {"duplicates": [], "not_allowed": []}})


class TestSendFriendRecommendations(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.responses = []
        self.calls = 0
        self.sleeps = []

    def handler(self, request):
        self.calls += 1
        status, body = self.responses.pop(0)
        return httpx.Response(status, json=body)

    async def fake_sleep(self, seconds):
        self.sleeps.append(seconds)

    def api(self):
        gateway = RestGateway("https://api.test/api/v1", transport=httpx.MockTransport(self.handler))
        return BibApi(gateway, sleep=self.fake_sleep)

    async def test_retries_while_busy(self):
        self.responses = [BUSY, BUSY, SENT]
        result = await self.api().send_friend_recommendations([{"recipient_id": "bob"}])
        self.assertEqual(result["sent"], 1)
        self.assertEqual(result["sent_recipient_ids"], ["bob"])
        self.assertEqual(self.sleeps, [1.5, 3.0])

    async def test_gives_up_after_two_retries(self):
        self.responses = [BUSY, BUSY, BUSY]
        with self.assertRaises(GatewayError) as ctx:
            await self.api().send_friend_recommendations([{"recipient_id": "bob"}])
        self.assertEqual(ctx.exception.message, SERVER_BUSY_MESSAGE)
        self.assertEqual(self.calls, 3)

    async def test_other_errors_are_not_retried(self):
        self.responses = [(500, {"detail": "permission denied", "code": "42501"})]
        with self.assertRaises(GatewayError):
            await self.api().send_friend_recommendations([{"recipient_id": "bob"}])
        self.assertEqual(self.sleeps, [])

    async def test_unique_violation_is_a_duplicate(self):
        self.responses = [(409, {"detail": "duplicate", "code": "23505"})]
        with self.assertRaises(DuplicateRecommendationError) as ctx:
            await self.api().send_friend_recommendations([{"recipient_id": "bob"}])
        self.assertEqual(ctx.exception.code, "23505")
        self.assertEqual(self.sleeps, [])

    async def test_non_numeric_sent_is_an_error(self):
        self.responses = [(200, {"sent": "1"})]
        with self.assertRaises(GatewayError) as ctx:
            await self.api().send_friend_recommendations([{"recipient_id": "bob"}])
        self.assertEqual(str(ctx.exception), "Unexpected response from server. Please try again.")

    async def test_missing_skip_lists_default_to_empty(self):
        self.responses = [(200, {"sent": 0})]
        result = await self.api().send_friend_recommendations([])
        self.assertEqual(result, {
            "sent": 0,
            "sent_recipient_ids": [],
            "skipped": {"duplicates": [], "not_allowed": []},
        })


class TestApiWrappers(unittest.IsolatedAsyncioTestCase):
    async def test_unread_count_errors_are_zero(self):
        gateway = RestGateway(
            "https://api.test/api/v1",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "boom"})),
        )
        self.assertEqual(await BibApi(gateway).friend_recommendations_unread_count(), 0)

    async def test_update_group_checks_name_locally(self):
        gateway = RestGateway("https://api.test/api/v1", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with self.assertRaises(GatewayError) as ctx:
            await BibApi(gateway).update_watch_group("g1", " x ")
        self.assertEqual(str(ctx.exception), "Group name must be at least 2 characters.")

    async def test_empty_reminder_response(self):
        gateway = RestGateway(
            "https://api.test/api/v1",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        with self.assertRaises(GatewayError) as ctx:
            await BibApi(gateway).upsert_watch_reminder("m1", "Dune", "2099-01-01T00:00:00Z")
        self.assertEqual(str(ctx.exception), "Reminder saved but response was empty.")


class TestCreateApi(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.seen = []
        self.settings = ClientSettings(
            api_url="https://api.test/api/v1",
            supabase_url="https://abcd1234.supabase.co",
            supabase_anon_key="anon-key",
            session_path=str(Path(self.tmp.name) / "session.json"),
            request_timeout_seconds=7,
        )

    def tearDown(self):
        self.tmp.cleanup()

    def handler(self, request):
        self.seen.append(request)
        return httpx.Response(200, json=[])

    async def test_wires_settings_into_gateway(self):
        api = create_api(self.settings, transport=httpx.MockTransport(self.handler))
        store = api.gateway.session_store
        self.assertEqual(store.session_key, "sb-abcd1234-auth-token")
        self.assertEqual(api.gateway.timeout, 7)
        self.assertEqual(api.gateway.base_url, "https://api.test/api/v1")

        store.save_session({"access_token": "user-token", "user": {"id": "alice"}})
        await api.received_friend_recommendations()
        await api.gateway.aclose()

        [request] = self.seen
        self.assertEqual(str(request.url), "https://api.test/api/v1/friend-recommendations/received")
        self.assertEqual(request.headers["apikey"], "anon-key")
        self.assertEqual(request.headers["Authorization"], "Bearer user-token")


if __name__ == "__main__":
    unittest.main()
