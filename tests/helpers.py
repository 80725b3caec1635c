import unittest

from fastapi.testclient import TestClient

from bib.core.dependencies import get_current_user, get_optional_service_supabase, get_user_supabase
from bib.core.rate_limit import limiter
from bib.main import app
from bib.modules.auth.service import clear_auth_cache
from tests.fakes import FakeSupabase

ALICE = {"id": "alice", "email": "alice@example.com", "user_metadata": {}}
BOB = {"id": "bob", "email": "bob@example.com", "user_metadata": {}}
CAROL = {"id": "carol", "email": "carol@example.com", "user_metadata": {}}


class RouteTestCase(unittest.TestCase):
    """Runs the app against an in-memory database with the caller swapped in per test"""

    use_service_client = False

    def setUp(self):
        limiter.reset()
        clear_auth_cache()
        self.db = FakeSupabase()
        self.db.seed(
            "users",
            {"id": "alice", "email": "alice@example.com", "name": "Alice", "username": "alice", "avatar": "🍿"},
            {"id": "bob", "email": "bob@example.com", "name": "Bob", "username": "bob", "avatar": "🎬"},
            {"id": "carol", "email": "carol@example.com", "name": "Carol", "username": "carol", "avatar": "⭐"},
        )
        self.current_user = ALICE
        app.dependency_overrides[get_current_user] = lambda: self.current_user
        app.dependency_overrides[get_user_supabase] = lambda: self.db
        app.dependency_overrides[get_optional_service_supabase] = (
            lambda: self.db if self.use_service_client else None
        )
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def act_as(self, user):
        self.current_user = user

    def befriend(self, user_id, friend_id):
        return self.db.seed("friends", {"user_id": user_id, "friend_id": friend_id})[0]
