import unittest

from tests.helpers import BOB, RouteTestCase


class TestFriendRoutes(RouteTestCase):
    def test_add_and_list_friends(self):
        response = self.client.post("/api/v1/friends", json={"friend_id": "bob"})
        self.assertEqual(response.status_code, 201)
        friendship = response.json()
        self.assertEqual(friendship["friend_id"], "bob")

        friends = self.client.get("/api/v1/friends").json()
        self.assertEqual([f["username"] for f in friends], ["bob"])
        self.assertEqual(friends[0]["friendship_id"], friendship["id"])

    def test_cannot_add_self(self):
        response = self.client.post("/api/v1/friends", json={"friend_id": "alice"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "You cannot add yourself as a friend.")

    def test_duplicate_friend(self):
        self.befriend("alice", "bob")
        response = self.client.post("/api/v1/friends", json={"friend_id": "bob"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"detail": "Already friends.", "code": "23505"})

    def test_remove_friend(self):
        friendship = self.befriend("alice", "bob")
        response = self.client.delete(f"/api/v1/friends/{friendship['id']}")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/v1/friends").json(), [])

    def test_cannot_remove_someone_elses_friendship(self):
        friendship = self.befriend("bob", "carol")
        response = self.client.delete(f"/api/v1/friends/{friendship['id']}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(len(self.db.rows("friends")), 1)


class TestUserRoutes(RouteTestCase):
    def test_search_excludes_caller(self):
        results = self.client.get("/api/v1/users/search", params={"q": "a"}).json()
        self.assertEqual(results, [])

        results = self.client.get("/api/v1/users/search", params={"q": "CAR"}).json()
        self.assertEqual([u["id"] for u in results], ["carol"])

        results = self.client.get("/api/v1/users/search", params={"q": "ali"}).json()
        self.assertEqual(results, [])

    def test_update_profile(self):
        response = self.client.put("/api/v1/users/me", json={"username": "Alice_2", "name": " Ali "})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "alice_2")
        self.assertEqual(response.json()["name"], "Ali")

    def test_username_taken_on_update(self):
        self.act_as(BOB)
        response = self.client.put("/api/v1/users/me", json={"username": "carol"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Username is already taken.")

    def test_invalid_username_on_update(self):
        response = self.client.put("/api/v1/users/me", json={"username": "x"})
        self.assertEqual(response.status_code, 400)

    def test_get_missing_user(self):
        response = self.client.get("/api/v1/users/nobody")
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
