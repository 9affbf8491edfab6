import asyncio

import pytest

from conftest import FakeTier, make_layer, tier_order
from tierdata.models import Post
from tierdata.seed import DEMO_POSTS, DEMO_USER_ID
from tierdata.services import is_local_id
from tierdata.types import Tier, ValidationError


def _remote_post(pid: str = "srv-1", content: str = "from server") -> Post:
    return Post(id=pid, author_id="u1", content=content, created_at="2024-05-01T00:00:00Z")


def test_offline_read_write_read(offline_layer):
    async def scenario():
        first = await offline_layer.read("posts", {"limit": 5})
        created = await offline_layer.write("posts", {"content": "hi", "author": "u1"})
        after = await offline_layer.read("posts", {"limit": 5})
        return first, created, after

    first, created, after = asyncio.run(scenario())

    assert [p.id for p in first] == [p["id"] for p in DEMO_POSTS[:5]]
    assert created.content == "hi"
    assert created.author_id == "u1"
    assert is_local_id(created.id)
    assert created.id.startswith("local_posts_")
    assert after[0].id == created.id
    assert after[0].likes_count == 0


def test_remote_write_is_echoed_into_mirror(calls):
    primary = FakeTier("primary", calls, create_post=_remote_post())
    layer = make_layer(primary=primary, calls=calls)

    result = asyncio.run(layer.posts.write_result({"content": "from server", "author_id": "u1"}))
    assert result.source == Tier.PRIMARY
    assert result.data.id == "srv-1"

    # every remote tier now fails: the echoed row must still be served
    primary.fail_everything()
    posts = asyncio.run(layer.posts.list_posts(limit=10))

    assert posts[0].id == "srv-1"
    assert not is_local_id(posts[0].id)
    # echo seeded the collection first, so the demo feed is still behind it
    assert [p.id for p in posts[1:6]] == [p["id"] for p in DEMO_POSTS]


def test_echo_replaces_existing_row(calls):
    primary = FakeTier("primary", calls, create_post=_remote_post(content="v1"))
    layer = make_layer(primary=primary, calls=calls)
    asyncio.run(layer.posts.create_post({"content": "v1", "author_id": "u1"}))

    primary.respond("update_post", _remote_post(content="v2"))
    asyncio.run(layer.posts.update_post("srv-1", {"content": "v2"}))

    rows = [r for r in layer.ctx.mirror.get("demo_posts") if r["id"] == "srv-1"]
    assert len(rows) == 1
    assert rows[0]["content"] == "v2"


def test_secondary_accepts_write_when_primary_is_down(calls):
    row = _remote_post("sb-7").model_dump(mode="json")
    secondary = FakeTier("secondary", calls, insert=row)
    layer = make_layer(secondary=secondary, calls=calls)

    post = asyncio.run(layer.write("posts", {"content": "from server", "author": "u1"}))

    assert post.id == "sb-7"
    assert tier_order(calls) == ["primary", "secondary"]
    table, payload = calls[1][2][0], calls[1][2][1]
    assert table == "community_posts"
    assert payload["author_id"] == "u1"


def test_local_ids_are_unique_within_one_millisecond(offline_layer, monkeypatch):
    import tierdata.services.base as base

    monkeypatch.setattr(base.time, "time", lambda: 1700000000.0)

    async def two_writes():
        a = await offline_layer.write("posts", {"content": "a", "author": "u1"})
        b = await offline_layer.write("posts", {"content": "b", "author": "u1"})
        return a, b

    a, b = asyncio.run(two_writes())

    assert a.id == "local_posts_1700000000000"
    assert b.id == "local_posts_1700000000001"


def test_invalid_payload_raises_and_reports(calls):
    layer = make_layer(calls=calls)

    with pytest.raises(ValidationError):
        asyncio.run(layer.write("posts", {"content": "   ", "author": "u1"}))
    with pytest.raises(ValidationError):
        asyncio.run(layer.write("posts", "not an object"))

    assert calls == []
    assert [m[0] for m in layer.ctx.reporter.messages] == ["error", "error"]
    assert layer.ctx.mirror.keys() == []


def test_user_posts_from_mirror_are_filtered_by_author(offline_layer):
    posts = asyncio.run(offline_layer.posts.list_user_posts(DEMO_USER_ID))

    assert posts
    assert {p.author_id for p in posts} == {DEMO_USER_ID}


def test_user_posts_empty_answer_is_final(calls):
    primary = FakeTier("primary", calls, list_user_posts=[])
    layer = make_layer(primary=primary, calls=calls)

    assert asyncio.run(layer.posts.list_user_posts(DEMO_USER_ID)) == []
    assert tier_order(calls) == ["primary"]


def test_feed_hides_unpublished_mirror_rows(offline_layer):
    async def scenario():
        draft = await offline_layer.write("posts", {"content": "draft", "author": "u1", "is_published": False})
        feed = await offline_layer.posts.list_posts(limit=50)
        mine = await offline_layer.posts.list_user_posts("u1")
        return draft, feed, mine

    draft, feed, mine = asyncio.run(scenario())

    assert draft.id not in [p.id for p in feed]
    assert [p.id for p in mine] == [draft.id]


def test_local_post_update(offline_layer):
    async def scenario():
        await offline_layer.read("posts")
        updated = await offline_layer.posts.update_post("demo-post-4", {"content": "edited"})
        missing = await offline_layer.posts.update_post("nope", {"content": "edited"})
        return updated, missing

    updated, missing = asyncio.run(scenario())

    assert updated.content == "edited"
    assert updated.updated_at != DEMO_POSTS[1]["updated_at"]
    assert missing is None


def test_update_needs_changes(offline_layer):
    with pytest.raises(ValidationError):
        asyncio.run(offline_layer.posts.update_post("demo-post-4", {}))
    with pytest.raises(ValidationError):
        asyncio.run(offline_layer.posts.update_post("", {"content": "x"}))


def test_local_post_picks_up_author_profile(offline_layer):
    async def scenario():
        await offline_layer.read("profiles", {"id": DEMO_USER_ID})
        return await offline_layer.posts.create_post({"content": "hello", "author_id": DEMO_USER_ID})

    post = asyncio.run(scenario())

    assert post.user_profiles["username"] == "demo_developer"
