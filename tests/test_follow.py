import pytest


def test_follow_and_unfollow(client, make_user):
    ana, headers = make_user("ana")
    bob, _ = make_user("bob")

    resp = client.post("/api/follow/save", json={"followed_user": bob["id"]}, headers=headers)
    assert resp.status_code == 201
    follow = resp.json()["follow"]
    assert follow["following_user"] == ana["id"]
    assert follow["followed_user"] == bob["id"]

    profile = client.get(f"/api/user/profile/{bob['id']}", headers=headers).json()
    assert profile["follow_info"] == {"following": True, "follower": False}

    resp = client.delete(f"/api/follow/unfollow/{bob['id']}", headers=headers)
    assert resp.status_code == 200

    resp = client.delete(f"/api/follow/unfollow/{bob['id']}", headers=headers)
    assert resp.status_code == 404


def test_follow_edge_is_unique(client, make_user):
    _, headers = make_user("ana")
    bob, _ = make_user("bob")

    first = client.post("/api/follow/save", json={"followed_user": bob["id"]}, headers=headers)
    second = client.post("/api/follow/save", json={"followed_user": bob["id"]}, headers=headers)
    assert first.status_code == 201
    assert second.status_code == 409

    counters = client.get(f"/api/user/counters/{bob['id']}", headers=headers).json()
    assert counters["followed_count"] == 1


def test_cannot_follow_self_or_missing_user(client, make_user):
    ana, headers = make_user("ana")
    resp = client.post("/api/follow/save", json={"followed_user": ana["id"]}, headers=headers)
    assert resp.status_code == 400
    resp = client.post("/api/follow/save", json={"followed_user": "missing"}, headers=headers)
    assert resp.status_code == 404
    resp = client.post("/api/follow/save", json={}, headers=headers)
    assert resp.status_code == 400


def test_following_and_followers_lists(client, make_user):
    ana, ana_headers = make_user("ana")
    users = [make_user(f"user{index}") for index in range(3)]

    for _, headers in users:
        client.post("/api/follow/save", json={"followed_user": ana["id"]}, headers=headers)
    client.post(
        "/api/follow/save", json={"followed_user": users[0][0]["id"]}, headers=ana_headers
    )

    resp = client.get("/api/follow/followers?limit=2", headers=ana_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_docs"] == 3
    assert data["total_pages"] == 2
    assert len(data["follows"]) == 2
    assert set(data["user_follow_me"]) == {user["id"] for user, _ in users}
    assert data["user_following"] == [users[0][0]["id"]]

    resp = client.get(f"/api/follow/following/{ana['id']}", headers=ana_headers)
    data = resp.json()
    assert data["total_docs"] == 1
    assert data["follows"][0]["user"]["nick"] == "user0"
    assert "password" not in data["follows"][0]["user"]

    resp = client.get(f"/api/follow/followers/{users[1][0]['id']}/1", headers=ana_headers)
    assert resp.json()["follows"] == []


def test_follow_lists_unknown_user(client, make_user):
    _, headers = make_user("ana")
    assert client.get("/api/follow/following/missing", headers=headers).status_code == 404


@pytest.mark.parametrize(
    "path",
    [
        f"/api/follow/followers?limit={10**20}",
        f"/api/follow/following?limit={10**20}",
        "/api/follow/followers?limit=0",
    ],
)
def test_follow_lists_reject_out_of_range_limit(client, make_user, path):
    _, headers = make_user("ana")
    resp = client.get(path, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["status"] == "error"


def test_follow_lists_reject_out_of_range_page(client, make_user):
    ana, headers = make_user("ana")
    resp = client.get(f"/api/follow/followers/{ana['id']}/{10**20}", headers=headers)
    assert resp.status_code == 400
