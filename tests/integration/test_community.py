"""
Integration tests for farm posts, reactions, comments, saves, feeds and
notifications.
"""
import pytest


@pytest.fixture
def community(register, make_farm):
    """A grower with a public farm and a neighbour who interacts with it."""
    grower_headers, grower = register(email="grower@example.com", name="Grower")
    neighbour_headers, neighbour = register(email="neighbour@example.com", name="Neighbour")
    farm = make_farm(grower_headers, is_public=True)
    return {
        "grower": grower_headers,
        "grower_id": grower["id"],
        "neighbour": neighbour_headers,
        "neighbour_id": neighbour["id"],
        "farm": farm,
    }


def create_post(client, headers, farm_id, content="First swale is dug!", **extra):
    response = client.post(f"/api/farms/{farm_id}/posts", headers=headers, json={
        "post_type": "text", "content": content, **extra,
    })
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_list_posts(client, community):
    farm_id = community["farm"]["id"]
    post = create_post(client, community["grower"], farm_id, hashtags=["#Swales", " water "])

    assert post["author"]["id"] == community["grower_id"]
    assert post["farm_name"] == "Hilltop Homestead"
    assert post["hashtags"] == ["Swales", "water"]
    assert post["reaction_count"] == 0
    assert post["is_saved"] is False

    listed = client.get(f"/api/farms/{farm_id}/posts").json()
    assert [p["id"] for p in listed] == [post["id"]]

    not_owner = client.post(f"/api/farms/{farm_id}/posts", headers=community["neighbour"], json={
        "post_type": "text", "content": "Hijack",
    })
    assert not_owner.status_code == 403

    empty_text = client.post(f"/api/farms/{farm_id}/posts", headers=community["grower"], json={"post_type": "text"})
    assert empty_text.status_code == 400
    bad_type = client.post(f"/api/farms/{farm_id}/posts", headers=community["grower"], json={
        "post_type": "video", "content": "x",
    })
    assert bad_type.status_code == 400


def test_reactions_toggle_and_switch(client, community):
    post = create_post(client, community["grower"], community["farm"]["id"])
    url = f"/api/posts/{post['id']}/reactions"
    neighbour = community["neighbour"]

    added = client.post(url, headers=neighbour, json={"reaction_type": "heart"}).json()
    assert added["action"] == "added"
    assert added["new_count"] == 1
    assert added["counts"]["heart"] == 1

    changed = client.post(url, headers=neighbour, json={"reaction_type": "seedling"}).json()
    assert changed["action"] == "changed"
    assert changed["new_count"] == 1
    assert changed["counts"] == {"heart": 0, "seedling": 1, "bulb": 0, "fire": 0}

    removed = client.post(url, headers=neighbour, json={"reaction_type": "seedling"}).json()
    assert removed == {
        "action": "removed",
        "new_count": 0,
        "user_reaction": None,
        "counts": {"heart": 0, "seedling": 0, "bulb": 0, "fire": 0},
    }

    assert client.post(url, headers=neighbour, json={"reaction_type": "thumbs"}).status_code == 400
    assert client.post("/api/posts/missing/reactions", headers=neighbour, json={
        "reaction_type": "heart",
    }).status_code == 404


def test_threaded_comments(client, community):
    post = create_post(client, community["grower"], community["farm"]["id"])
    url = f"/api/posts/{post['id']}/comments"

    top = client.post(url, headers=community["neighbour"], json={"content": "  Nice contour!  "})
    assert top.status_code == 201
    top_comment = top.json()["comment"]
    assert top_comment["content"] == "Nice contour!"
    assert top.json()["new_comment_count"] == 1

    reply = client.post(url, headers=community["grower"], json={
        "content": "Thanks!", "parent_comment_id": top_comment["id"],
    }).json()
    assert reply["new_comment_count"] == 2

    tree = client.get(url).json()["comments"]
    assert [c["id"] for c in tree] == [top_comment["id"]]
    assert [r["id"] for r in tree[0]["replies"]] == [reply["comment"]["id"]]

    wrong_parent = client.post(url, headers=community["grower"], json={
        "content": "Lost", "parent_comment_id": "nope",
    })
    assert wrong_parent.status_code == 400
    assert client.post(url, headers=community["grower"], json={"content": "   "}).status_code == 400

    forbidden = client.delete(f"/api/comments/{top_comment['id']}", headers=community["grower"])
    assert forbidden.status_code == 403
    deleted = client.delete(f"/api/comments/{top_comment['id']}", headers=community["neighbour"]).json()
    assert deleted == {"success": True, "new_comment_count": 1}

    # the orphaned reply moves to the top level
    remaining = client.get(url).json()["comments"]
    assert [c["id"] for c in remaining] == [reply["comment"]["id"]]


def test_notifications(client, community):
    post = create_post(client, community["grower"], community["farm"]["id"])
    neighbour = community["neighbour"]
    client.post(f"/api/posts/{post['id']}/reactions", headers=neighbour, json={"reaction_type": "fire"})
    client.post(f"/api/posts/{post['id']}/comments", headers=neighbour, json={"content": "Looks great"})
    # own activity is not notified
    client.post(f"/api/posts/{post['id']}/comments", headers=community["grower"], json={"content": "Thanks"})

    inbox = client.get("/api/notifications", headers=community["grower"]).json()
    assert inbox["unread_count"] == 2
    assert sorted(n["type"] for n in inbox["notifications"]) == ["comment", "reaction"]
    assert all(n["actor_name"] == "Neighbour" for n in inbox["notifications"])

    first_id = inbox["notifications"][0]["id"]
    assert client.post(f"/api/notifications/{first_id}/read", headers=community["grower"]).json() == {"success": True}
    unread = client.get("/api/notifications", headers=community["grower"], params={"unread_only": True}).json()
    assert len(unread["notifications"]) == 1

    marked = client.post("/api/notifications/read-all", headers=community["grower"]).json()
    assert marked == {"success": True, "updated": 1}
    assert client.get("/api/notifications", headers=community["grower"]).json()["unread_count"] == 0

    not_mine = client.post(f"/api/notifications/{first_id}/read", headers=neighbour)
    assert not_mine.status_code == 404


def test_saves_and_saved_feed(client, community):
    post = create_post(client, community["grower"], community["farm"]["id"])
    url = f"/api/posts/{post['id']}/save"

    assert client.post(url, headers=community["neighbour"]).json() == {"saved": True, "save_count": 1}
    saved = client.get("/api/feed/saved", headers=community["neighbour"]).json()["posts"]
    assert [p["id"] for p in saved] == [post["id"]]
    assert saved[0]["is_saved"] is True

    assert client.post(url, headers=community["neighbour"]).json() == {"saved": False, "save_count": 0}
    assert client.get("/api/feed/saved", headers=community["neighbour"]).json()["posts"] == []


def test_global_feed_pagination_and_filters(client, community, make_farm):
    farm_id = community["farm"]["id"]
    created = [create_post(client, community["grower"], farm_id, content=f"Update {i}") for i in range(5)]
    tagged = create_post(client, community["grower"], farm_id, content="Pond day", hashtags=["Ponds"])
    private_farm = make_farm(community["grower"], name="Secret Garden")
    create_post(client, community["grower"], private_farm["id"], content="Hidden")

    first = client.get("/api/feed", params={"limit": 4}).json()
    assert len(first["posts"]) == 4
    assert first["has_more"] is True
    second = client.get("/api/feed", params={"limit": 4, "cursor": first["next_cursor"]}).json()
    assert second["has_more"] is False
    assert second["next_cursor"] is None

    seen = [p["id"] for p in first["posts"] + second["posts"]]
    assert len(seen) == len(set(seen)) == 6
    assert set(seen) == {p["id"] for p in created} | {tagged["id"]}

    by_tag = client.get("/api/feed", params={"hashtag": "#ponds"}).json()["posts"]
    assert [p["id"] for p in by_tag] == [tagged["id"]]
    assert client.get("/api/feed", params={"type": "photo"}).json()["posts"] == []
    assert len(client.get("/api/feed", params={"type": "all", "limit": 50}).json()["posts"]) == 6


def test_following_feed(client, community, register, make_farm):
    create_post(client, community["grower"], community["farm"]["id"], content="From the farm")
    outsider_headers, _ = register(email="outsider@example.com", name="Outsider")
    other_farm = make_farm(outsider_headers, name="Elsewhere", is_public=True)
    create_post(client, outsider_headers, other_farm["id"], content="Not followed")

    neighbour = community["neighbour"]
    assert client.get("/api/feed/following", headers=neighbour).json()["posts"] == []

    client.post(f"/api/farms/{community['farm']['id']}/follow", headers=neighbour)
    posts = client.get("/api/feed/following", headers=neighbour).json()["posts"]
    assert [p["content"] for p in posts] == ["From the farm"]


def test_trending_hashtags(client, community):
    farm_id = community["farm"]["id"]
    create_post(client, community["grower"], farm_id, hashtags=["compost", "swales"])
    create_post(client, community["grower"], farm_id, hashtags=["compost"])

    trending = client.get("/api/feed/trending-hashtags", params={"period": "7_days"}).json()
    assert trending["period"] == "7_days"
    assert trending["hashtags"] == [{"hashtag": "compost", "count": 2}, {"hashtag": "swales", "count": 1}]


def test_delete_post(client, community):
    post = create_post(client, community["grower"], community["farm"]["id"])
    client.post(f"/api/posts/{post['id']}/comments", headers=community["neighbour"], json={"content": "Hi"})

    assert client.delete(f"/api/posts/{post['id']}", headers=community["neighbour"]).status_code == 403
    assert client.delete(f"/api/posts/{post['id']}", headers=community["grower"]).json() == {"success": True}
    assert client.get(f"/api/posts/{post['id']}/comments").status_code == 404
    assert client.get("/api/notifications", headers=community["grower"]).json()["notifications"] == []
