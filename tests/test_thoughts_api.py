"""Tests for thought and reaction routes, including the bulk form."""
from datetime import datetime

from bson.objectid import ObjectId

from main import format_date


def post_thought(client, user, text="hi"):
    return client.post("/api/thoughts", json={"thoughtText": text, "username": user["username"], "userId": user["id"]})


def test_create_and_delete_thought_updates_owner(client, make_user):
    user = make_user("abe", "a@x.com")

    res = post_thought(client, user)
    assert res.status_code == 200
    thoughts = res.json()["thoughts"]
    assert len(thoughts) == 1
    thought_id = thoughts[0]["id"]
    assert thoughts[0]["thoughtText"] == "hi"
    assert thoughts[0]["reactionCount"] == 0

    res = client.delete(f"/api/thoughts/{user['id']}/{thought_id}")
    assert res.status_code == 200
    assert res.json()["thoughts"] == []
    assert client.get(f"/api/thoughts/{thought_id}").status_code == 404


def test_thoughts_populated_in_creation_order(client, make_user):
    user = make_user()
    post_thought(client, user, "one")
    post_thought(client, user, "two")
    res = client.get(f"/api/users/{user['id']}")
    assert [t["thoughtText"] for t in res.json()["thoughts"]] == ["one", "two"]


def test_create_thought_unknown_user_404(client, mongo):
    res = client.post("/api/thoughts", json={"thoughtText": "hi", "username": "ghost", "userId": str(ObjectId())})
    assert res.status_code == 404
    assert res.json() == {"message": "No User found with this id!"}
    # the thought document is left behind, unlinked
    assert mongo["thought"].count_documents({}) == 1


def test_create_thought_missing_text_400(client, make_user):
    user = make_user()
    res = client.post("/api/thoughts", json={"username": "abe", "userId": user["id"]})
    assert res.status_code == 400


def test_delete_unknown_thought_404(client, make_user):
    user = make_user()
    res = client.delete(f"/api/thoughts/{user['id']}/{ObjectId()}")
    assert res.status_code == 404
    assert res.json() == {"message": "No Thought found with this id!"}


def test_list_and_update_thoughts(client, make_user):
    user = make_user()
    post_thought(client, user, "old")
    post_thought(client, user, "new")
    listed = client.get("/api/thoughts").json()
    assert [t["thoughtText"] for t in listed] == ["new", "old"]

    res = client.put(f"/api/thoughts/{listed[1]['id']}", json={"thoughtText": "edited"})
    assert res.status_code == 200
    assert res.json()["thoughtText"] == "edited"


def test_bulk_create(client, make_user):
    user = make_user()
    batch = [
        {"thoughtText": "a", "username": "abe", "userId": user["id"]},
        {"thoughtText": "b", "username": "abe", "userId": user["id"]},
    ]
    res = client.post("/api/thoughts", json=batch)
    assert res.status_code == 200
    accepted = res.json()["accepted"]
    assert len(accepted) == 2
    assert [t["thoughtText"] for t in accepted[-1]["thoughts"]] == ["a", "b"]


def test_bulk_create_partial_failure(client, mongo, make_user):
    user = make_user()
    batch = [
        {"thoughtText": "a", "username": "abe", "userId": user["id"]},
        {"thoughtText": "b", "username": "abe", "userId": str(ObjectId())},
        {"thoughtText": "c", "username": "abe", "userId": user["id"]},
    ]
    res = client.post("/api/thoughts", json=batch)
    assert res.status_code == 404
    assert res.json()["accepted"] == 1
    assert "message" in res.json()
    assert len(client.get(f"/api/users/{user['id']}").json()["thoughts"]) == 1


def test_reaction_add_and_remove_by_generated_id(client, make_user):
    user = make_user()
    thought_id = post_thought(client, user).json()["thoughts"][0]["id"]

    a = client.post(f"/api/thoughts/{thought_id}/reactions", json={"reactionBody": "A", "username": "bea"})
    assert a.status_code == 200
    b = client.post(f"/api/thoughts/{thought_id}/reactions", json={"reactionBody": "B", "username": "cy"})
    reactions = b.json()["reactions"]
    assert b.json()["reactionCount"] == 2
    reaction_a, reaction_b = reactions
    assert reaction_a["reactionId"] != thought_id

    res = client.delete(f"/api/thoughts/{thought_id}/reactions/{reaction_a['reactionId']}")
    assert res.status_code == 200
    assert [r["reactionId"] for r in res.json()["reactions"]] == [reaction_b["reactionId"]]
    assert res.json()["reactionCount"] == 1


def test_reaction_created_at_is_formatted(client, make_user):
    user = make_user()
    thought_id = post_thought(client, user).json()["thoughts"][0]["id"]
    res = client.post(f"/api/thoughts/{thought_id}/reactions", json={"reactionBody": "A", "username": "bea"})
    assert " at " in res.json()["reactions"][0]["createdAt"]


def test_reaction_body_too_long_400(client, make_user):
    user = make_user()
    thought_id = post_thought(client, user).json()["thoughts"][0]["id"]
    res = client.post(f"/api/thoughts/{thought_id}/reactions", json={"reactionBody": "x" * 281, "username": "bea"})
    assert res.status_code == 400


def test_reaction_on_unknown_thought_404(client):
    res = client.post(f"/api/thoughts/{ObjectId()}/reactions", json={"reactionBody": "A", "username": "bea"})
    assert res.status_code == 404


def test_format_date():
    assert format_date(datetime(2026, 10, 18, 15, 4)) == "Oct 18th, 2026 at 3:04 pm"
    assert format_date(datetime(2026, 1, 1, 0, 30)) == "Jan 1st, 2026 at 12:30 am"
    assert format_date(datetime(2026, 3, 22, 12, 0)) == "Mar 22nd, 2026 at 12:00 pm"
    assert format_date(datetime(2026, 3, 13, 9, 5)) == "Mar 13th, 2026 at 9:05 am"
