import unittest

from bib.modules.group_watch.service import DUPLICATE_PICK_MESSAGE
from tests.helpers import BOB, CAROL, RouteTestCase


def accept_or_reject(db, params):
    invite = next(i for i in db.rows("watch_group_invites") if i["id"] == params["p_invite_id"])
    invite["status"] = params["p_decision"]
    if params["p_decision"] == "accepted":
        db.seed("watch_group_members", {"group_id": invite["group_id"], "user_id": invite["invitee_id"], "role": "member"})
    return [{"invite_id": invite["id"], "group_id": invite["group_id"], "status": invite["status"]}]


class TestGroupWatchRoutes(RouteTestCase):
    def setUp(self):
        super().setUp()
        self.db.rpc_handlers["respond_watch_group_invite"] = accept_or_reject

    def create_group(self, name="Friday Night"):
        response = self.client.post("/api/v1/watch-groups", json={"name": name})
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_group_adds_owner(self):
        group = self.create_group()
        self.assertEqual(group["role"], "owner")
        self.assertEqual(group["member_count"], 1)
        members = self.client.get(f"/api/v1/watch-groups/{group['id']}/members").json()
        self.assertEqual([(m["user_id"], m["role"]) for m in members], [("alice", "owner")])

    def test_group_name_too_short(self):
        response = self.client.post("/api/v1/watch-groups", json={"name": " x "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Group name must be at least 2 characters.")

    def test_invite_flow(self):
        group = self.create_group()
        url = f"/api/v1/watch-groups/{group['id']}/invites"

        response = self.client.post(url, json={"invitee_id": "alice"})
        self.assertEqual(response.json()["detail"], "You cannot invite yourself.")

        self.assertEqual(self.client.post(url, json={"invitee_id": "bob"}).status_code, 204)
        response = self.client.post(url, json={"invitee_id": "bob"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "Invite already pending for this friend.")

        [pending] = self.client.get(url).json()
        self.assertEqual(pending["invitee_name"], "Bob")

        self.act_as(BOB)
        [incoming] = self.client.get("/api/v1/watch-groups/invites/incoming").json()
        self.assertEqual(incoming["group_name"], "Friday Night")
        self.assertEqual(incoming["inviter_name"], "Alice")

        response = self.client.post(
            f"/api/v1/watch-groups/invites/{incoming['id']}/respond", json={"decision": "accepted"}
        )
        self.assertEqual(response.json()["status"], "accepted")
        self.assertEqual(self.client.get("/api/v1/watch-groups/invites/incoming").json(), [])

        self.act_as({"id": "alice"})
        response = self.client.post(url, json={"invitee_id": "bob"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"], "This friend is already in the group.")

    def test_members_sorted_owner_first_then_name(self):
        group = self.create_group()
        for user_id in ("carol", "bob"):
            self.client.post(f"/api/v1/watch-groups/{group['id']}/members", json={"user_id": user_id})
        members = self.client.get(f"/api/v1/watch-groups/{group['id']}/members").json()
        self.assertEqual([m["name"] for m in members], ["Alice", "Bob", "Carol"])

        response = self.client.post(f"/api/v1/watch-groups/{group['id']}/members", json={"user_id": "bob"})
        self.assertEqual(response.status_code, 409)

    def test_owned_groups_listed_first(self):
        mine = self.create_group("Mine")
        self.act_as(BOB)
        theirs = self.create_group("Bob's")
        self.client.post(f"/api/v1/watch-groups/{theirs['id']}/members", json={"user_id": "alice"})

        self.act_as({"id": "alice"})
        groups = self.client.get("/api/v1/watch-groups").json()
        self.assertEqual([g["id"] for g in groups], [mine["id"], theirs["id"]])
        self.assertEqual(groups[1]["member_count"], 2)
        self.assertEqual(groups[1]["role"], "member")

    def test_leave_group(self):
        group = self.create_group()
        self.client.post(f"/api/v1/watch-groups/{group['id']}/members", json={"user_id": "bob"})
        self.act_as(BOB)
        self.assertEqual(self.client.delete(f"/api/v1/watch-groups/{group['id']}/members/me").status_code, 204)
        self.assertEqual(self.client.get("/api/v1/watch-groups").json(), [])

    def test_duplicate_pick(self):
        group = self.create_group()
        pick = {"media_type": "movie", "tmdb_id": "438631", "title": "Dune"}
        url = f"/api/v1/watch-groups/{group['id']}/picks"
        self.assertEqual(self.client.post(url, json=pick).status_code, 204)

        response = self.client.post(url, json=pick)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"detail": DUPLICATE_PICK_MESSAGE, "code": "23505"})

        response = self.client.post(url, json={**pick, "media_type": "show"})
        self.assertEqual(response.status_code, 204)

    def test_picks_ranked_by_votes(self):
        group = self.create_group()
        url = f"/api/v1/watch-groups/{group['id']}/picks"
        for tmdb_id, title in (("1", "Older"), ("2", "Newer"), ("3", "Popular")):
            self.client.post(url, json={"tmdb_id": tmdb_id, "title": title})
        picks = {p["title"]: p["id"] for p in self.client.get(url).json()}

        self.client.put(f"/api/v1/watch-groups/picks/{picks['Popular']}/vote", json={"vote_value": 1})
        self.act_as(BOB)
        self.client.put(f"/api/v1/watch-groups/picks/{picks['Popular']}/vote", json={"vote_value": 1})
        self.client.put(f"/api/v1/watch-groups/picks/{picks['Older']}/vote", json={"vote_value": -1})
        # voting again replaces the earlier vote
        self.client.put(f"/api/v1/watch-groups/picks/{picks['Older']}/vote", json={"vote_value": -1})

        self.act_as({"id": "alice"})
        ranked = self.client.get(url).json()
        self.assertEqual([p["title"] for p in ranked], ["Popular", "Newer", "Older"])
        self.assertEqual((ranked[0]["upvotes"], ranked[0]["score"], ranked[0]["my_vote"]), (2, 2, 1))
        self.assertEqual((ranked[2]["downvotes"], ranked[2]["score"], ranked[2]["my_vote"]), (1, -1, 0))

        self.client.delete(f"/api/v1/watch-groups/picks/{picks['Popular']}/vote")
        ranked = self.client.get(url).json()
        self.assertEqual(ranked[0]["my_vote"], 0)
        self.assertEqual(ranked[0]["score"], 1)

    def test_invalid_vote_value(self):
        response = self.client.put("/api/v1/watch-groups/picks/p1/vote", json={"vote_value": 2})
        self.assertEqual(response.status_code, 422)

    def test_rename_group(self):
        group = self.create_group()
        response = self.client.put(f"/api/v1/watch-groups/{group['id']}", json={"name": "Saturday"})
        self.assertEqual(response.json()["name"], "Saturday")
        self.act_as(CAROL)
        response = self.client.put(f"/api/v1/watch-groups/{group['id']}", json={"name": "x"})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
