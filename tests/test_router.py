import dataclasses

import pytest
from fastapi.testclient import TestClient

from conftest import OFFLINE
from tierdata.layer import DataLayer
from tierdata.main import create_app
from tierdata.seed import DEMO_USER_ID
from tierdata.storage import InMemoryMirrorStore


@pytest.fixture
def client(offline_layer):
    return TestClient(create_app(layer=offline_layer))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["backend_configured"] is False
    assert body["mirror"] == "InMemoryMirrorStore"


def test_post_feed_and_create(client):
    r = client.get("/data/posts", params={"limit": 5})
    assert r.status_code == 200
    assert len(r.json()) == 5

    r = client.post("/data/posts", json={"content": "hi", "author": "u1"})
    assert r.status_code == 200
    created = r.json()
    assert created["id"].startswith("local_posts_")

    feed = client.get("/data/posts", params={"limit": 5}).json()
    assert feed[0]["id"] == created["id"]


def test_invalid_post_is_422(client):
    r = client.post("/data/posts", json={"content": "", "author": "u1"})
    assert r.status_code == 422


def test_limit_is_clamped_by_validation(client):
    assert client.get("/data/posts", params={"limit": 0}).status_code == 422
    assert client.get("/data/posts", params={"limit": 51}).status_code == 422


def test_write_endpoints_declare_request_models(client):
    schema = client.get("/openapi.json").json()
    names = set(schema["components"]["schemas"])
    assert {"PostCreate", "PostUpdate", "NotificationCreate", "ProfileUpdate"} <= names

    body = schema["paths"]["/data/posts"]["post"]["requestBody"]["content"]["application/json"]["schema"]
    assert body["$ref"].endswith("/PostCreate")


def test_empty_post_update_is_422(client):
    client.get("/data/posts")
    r = client.patch("/data/posts/demo-post-4", json={})
    assert r.status_code == 422


def test_profile_put_keeps_only_sent_fields(client):
    client.put("/data/profiles/u1", json={"username": "newbie", "bio": "first"})
    r = client.put("/data/profiles/u1", json={"bio": "second", "favourite_engine": "godot"})

    body = r.json()
    assert body["username"] == "newbie"
    assert body["bio"] == "second"
    assert body["favourite_engine"] == "godot"


def test_update_unknown_post_is_404(client):
    r = client.patch("/data/posts/nope", json={"content": "x"})
    assert r.status_code == 404


def test_notifications(client):
    body = client.get(f"/data/users/{DEMO_USER_ID}/notifications").json()
    assert body["unread"] == 2
    assert len(body["items"]) == 3

    r = client.post("/data/notifications/demo-notif-3/read")
    assert r.status_code == 200
    assert r.json()["read"] is True

    body = client.get(f"/data/users/{DEMO_USER_ID}/notifications").json()
    assert body["unread"] == 1


def test_profiles(client):
    assert client.get("/data/profiles/u1").status_code == 404

    r = client.put("/data/profiles/u1", json={"username": "newbie"})
    assert r.status_code == 200
    assert r.json()["username"] == "newbie"

    assert client.get("/data/profiles/u1").json()["username"] == "newbie"


def test_roles(client):
    r = client.get("/data/users/u1/roles")
    assert r.json() == {"user_id": "u1", "roles": ["member"], "is_admin": False}

    r = client.get("/data/users/u1/roles", params={"email": "owner@example.com"})
    assert r.json()["is_admin"] is True

    r = client.put("/data/users/u1/roles", json={"roles": ["admin", "member"]})
    assert r.json()["roles"] == ["admin", "member"]
    assert client.get("/data/users/u1/roles").json()["is_admin"] is True


def test_demo_state(client, offline_layer):
    r = client.post("/data/demo/seed")
    assert sorted(r.json()["seeded"]) == ["notifications", "posts", "profiles", "roles"]

    client.post("/data/demo/clear")
    assert offline_layer.ctx.mirror.keys() == []


def test_api_key_guard():
    cfg = dataclasses.replace(OFFLINE, service_api_key="s3cret")
    app = create_app(layer=DataLayer.build(cfg, mirror=InMemoryMirrorStore()))
    client = TestClient(app)

    assert client.get("/data/posts").status_code == 401
    assert client.get("/data/posts", headers={"X-API-Key": "s3cret"}).status_code == 200
    # health stays open
    assert client.get("/health").status_code == 200
