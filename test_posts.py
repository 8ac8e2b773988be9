import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Query, Session

import config
from conftest import auth_headers, create_post, signup
from database import SessionLocal
from main import app
from models.Like import Like
from services import graph_service


def _feed(client, token):
    res = client.get("/api/posts", headers=auth_headers(token))
    assert res.status_code == 200
    return res.json()


def _feed_post(client, token, post_id):
    return next(p for p in _feed(client, token) if p["id"] == post_id)


def test_alice_and_bob_scenario(client):
    token, alice = signup(client, "alice", password="pw1", full_name="Alice A")
    assert client.post("/api/auth/login", json={"username": "alice", "password": "pw1"}).status_code == 200
    assert client.post("/api/auth/login", json={"username": "alice", "password": "wrong"}).status_code == 401

    post_id = create_post(client, token, url="/uploads/x.jpg", type="image")
    post = _feed_post(client, token, post_id)
    assert post["likes_count"] == 0
    assert post["username"] == "alice"
    assert post["user_id"] == alice["id"]

    like = client.post(f"/api/posts/{post_id}/like", headers=auth_headers(token))
    assert like.json() == {"liked": True}
    post = _feed_post(client, token, post_id)
    assert post["likes_count"] == 1
    assert post["is_liked"] == 1

    unlike = client.post(f"/api/posts/{post_id}/like", headers=auth_headers(token))
    assert unlike.json() == {"liked": False}
    post = _feed_post(client, token, post_id)
    assert post["likes_count"] == 0
    assert post["is_liked"] == 0

    bob_token, _ = signup(client, "bob")
    res = client.get("/api/users/alice/saved", headers=auth_headers(bob_token))
    assert res.status_code == 403


def test_feed_is_newest_first_with_counts(client):
    alice, _ = signup(client, "alice")
    bob, _ = signup(client, "bob")
    first = create_post(client, alice, caption="first")
    second = create_post(client, bob, url="https://cdn.example.com/v.mp4", type="video", caption="second")

    client.post(f"/api/posts/{first}/like", headers=auth_headers(alice))
    client.post(f"/api/posts/{first}/like", headers=auth_headers(bob))
    client.post(f"/api/posts/{first}/save", headers=auth_headers(bob))
    client.post(f"/api/posts/{first}/comments", json={"content": "nice"}, headers=auth_headers(bob))

    feed = _feed(client, bob)
    assert [p["id"] for p in feed] == [second, first]
    assert feed[0]["type"] == "video"
    assert feed[0]["url"] == "https://cdn.example.com/v.mp4"

    top = feed[1]
    assert top["likes_count"] == 2
    assert top["is_liked"] == 1
    assert top["is_saved"] == 1
    assert top["comments_count"] == 1
    assert top["caption"] == "first"

    alice_view = _feed_post(client, alice, first)
    assert alice_view["is_saved"] == 0


def test_create_post_validation(client):
    token, _ = signup(client, "alice")
    headers = auth_headers(token)

    res = client.post("/api/posts", data={"type": "audio", "url": "/uploads/a.mp3"}, headers=headers)
    assert res.status_code == 400

    res = client.post("/api/posts", data={"type": "image"}, headers=headers)
    assert res.status_code == 400
    assert res.json()["error"] == "A file or a url is required"

    res = client.post("/api/posts", data={"url": "/uploads/a.jpg"}, headers=headers)
    assert res.status_code == 400


def test_upload_is_stored_served_and_removed_on_delete(client):
    token, _ = signup(client, "alice")
    headers = auth_headers(token)

    res = client.post(
        "/api/posts",
        data={"type": "image", "caption": "sunset"},
        files={"file": ("sunset.JPG", b"fake-jpeg-bytes", "image/jpeg")},
        headers=headers,
    )
    assert res.status_code == 200
    post_id = res.json()["id"]

    post = _feed_post(client, token, post_id)
    assert post["url"].startswith("/uploads/")
    assert post["url"].endswith(".jpg")
    path = os.path.join(config.UPLOAD_DIR, os.path.basename(post["url"]))
    assert os.path.exists(path)

    served = client.get(post["url"])
    assert served.status_code == 200
    assert served.content == b"fake-jpeg-bytes"

    assert client.delete(f"/api/posts/{post_id}", headers=headers).json() == {"success": True}
    assert not os.path.exists(path)


def test_upload_rejects_non_media(client):
    token, _ = signup(client, "alice")
    res = client.post(
        "/api/posts",
        data={"type": "image"},
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(token),
    )
    assert res.status_code == 400


def test_uploaded_names_do_not_collide(client):
    from services.storage_service import generate_filename

    names = {generate_filename("clip.mp4") for _ in range(200)}
    assert len(names) == 200
    assert all(name.endswith(".mp4") for name in names)


def test_delete_post_cascades(client):
    alice, _ = signup(client, "alice")
    bob, _ = signup(client, "bob")
    post_id = create_post(client, alice)

    client.post(f"/api/posts/{post_id}/like", headers=auth_headers(bob))
    client.post(f"/api/posts/{post_id}/save", headers=auth_headers(bob))
    client.post(f"/api/posts/{post_id}/comments", json={"content": "hi"}, headers=auth_headers(bob))

    res = client.delete(f"/api/posts/{post_id}", headers=auth_headers(alice))
    assert res.status_code == 200

    comments = client.get(f"/api/posts/{post_id}/comments", headers=auth_headers(bob))
    assert comments.status_code == 200
    assert comments.json() == []
    assert client.get("/api/users/bob/saved", headers=auth_headers(bob)).json() == []
    assert _feed(client, bob) == []

    from database import SessionLocal
    from models.Like import Like
    from models.SavedPost import SavedPost

    db = SessionLocal()
    try:
        assert db.query(Like).filter(Like.post_id == post_id).count() == 0
        assert db.query(SavedPost).filter(SavedPost.post_id == post_id).count() == 0
    finally:
        db.close()


def test_delete_post_permissions(client):
    alice, _ = signup(client, "alice")
    bob, _ = signup(client, "bob")
    post_id = create_post(client, alice)

    assert client.delete("/api/posts/9999", headers=auth_headers(alice)).status_code == 404
    assert client.delete(f"/api/posts/{post_id}", headers=auth_headers(bob)).status_code == 403
    assert len(_feed(client, alice)) == 1


def test_delete_post_with_external_url_keeps_going(client):
    token, _ = signup(client, "alice")
    post_id = create_post(client, token, url="/uploads/never-stored.jpg")
    res = client.delete(f"/api/posts/{post_id}", headers=auth_headers(token))
    assert res.status_code == 200
    assert _feed(client, token) == []


def test_save_toggle(client):
    token, _ = signup(client, "alice")
    post_id = create_post(client, token)
    headers = auth_headers(token)

    assert client.post(f"/api/posts/{post_id}/save", headers=headers).json() == {"saved": True}
    saved = client.get("/api/users/alice/saved", headers=headers).json()
    assert [p["id"] for p in saved] == [post_id]
    assert saved[0]["username"] == "alice"

    assert client.post(f"/api/posts/{post_id}/save", headers=headers).json() == {"saved": False}
    assert client.get("/api/users/alice/saved", headers=headers).json() == []


def test_toggles_on_missing_post(client):
    token, _ = signup(client, "alice")
    headers = auth_headers(token)
    assert client.post("/api/posts/404/like", headers=headers).status_code == 404
    assert client.post("/api/posts/404/save", headers=headers).status_code == 404
    assert client.post("/api/posts/404/comments", json={"content": "x"}, headers=headers).status_code == 404


def test_comments_are_oldest_first_with_author(client):
    alice, _ = signup(client, "alice")
    bob, _ = signup(client, "bob")
    post_id = create_post(client, alice)

    first = client.post(f"/api/posts/{post_id}/comments", json={"content": "one"}, headers=auth_headers(bob))
    second = client.post(f"/api/posts/{post_id}/comments", json={"content": "two"}, headers=auth_headers(alice))
    assert first.status_code == 200
    assert second.status_code == 200

    comments = client.get(f"/api/posts/{post_id}/comments", headers=auth_headers(alice)).json()
    assert [c["content"] for c in comments] == ["one", "two"]
    assert [c["username"] for c in comments] == ["bob", "alice"]
    assert comments[0]["id"] == first.json()["id"]


def test_empty_comment_rejected(client):
    token, _ = signup(client, "alice")
    post_id = create_post(client, token)
    res = client.post(f"/api/posts/{post_id}/comments", json={"content": "   "}, headers=auth_headers(token))
    assert res.status_code == 400


def test_explore_samples_posts(client):
    token, _ = signup(client, "alice")
    ids = {create_post(client, token, caption=str(i)) for i in range(35)}

    res = client.get("/api/explore", headers=auth_headers(token))
    assert res.status_code == 200
    posts = res.json()
    assert len(posts) == 30
    assert {p["id"] for p in posts} <= ids
    assert all(p["username"] == "alice" for p in posts)


def _like_count(post_id):
    db = SessionLocal()
    try:
        return db.query(Like).filter(Like.post_id == post_id).count()
    finally:
        db.close()


def test_concurrent_like_toggles_stay_consistent(client):
    token, alice = signup(client, "alice")
    post_id = create_post(client, token)

    def toggle(_):
        db = SessionLocal()
        try:
            return graph_service.toggle_like(db, alice["id"], post_id)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        states = list(pool.map(toggle, range(20)))

    assert states.count(True) == 10
    assert states.count(False) == 10
    assert _like_count(post_id) == 0


def test_toggle_reports_edge_inserted_by_another_session(client, monkeypatch):
    token, alice = signup(client, "alice")
    post_id = create_post(client, token)

    other = SessionLocal()
    try:
        other.add(Like(user_id=alice["id"], post_id=post_id))
        other.commit()
    finally:
        other.close()

    # the delete does not see the row another transaction just inserted
    monkeypatch.setattr(Query, "delete", lambda self, *args, **kwargs: 0)

    db = SessionLocal()
    try:
        assert graph_service.toggle_like(db, alice["id"], post_id) is True
    finally:
        db.close()
    assert _like_count(post_id) == 1


def test_toggle_on_missing_post_still_raises(client):
    _, alice = signup(client, "alice")
    db = SessionLocal()
    try:
        with pytest.raises(IntegrityError):
            graph_service.toggle_like(db, alice["id"], 9999)
    finally:
        db.close()


def test_delete_post_survives_undeletable_file(client, monkeypatch):
    token, _ = signup(client, "alice")
    headers = auth_headers(token)
    res = client.post(
        "/api/posts",
        data={"type": "image"},
        files={"file": ("locked.png", b"png-bytes", "image/png")},
        headers=headers,
    )
    post_id = res.json()["id"]
    client.post(f"/api/posts/{post_id}/comments", json={"content": "nice"}, headers=headers)
    url = _feed_post(client, token, post_id)["url"]
    path = os.path.join(config.UPLOAD_DIR, os.path.basename(url))

    def refuse(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "unlink", refuse)

    res = client.delete(f"/api/posts/{post_id}", headers=headers)
    assert res.status_code == 200
    assert _feed(client, token) == []
    assert client.get(f"/api/posts/{post_id}/comments", headers=headers).json() == []
    assert os.path.exists(path)


def test_upload_over_size_limit_is_rejected_and_not_kept(client, monkeypatch):
    token, _ = signup(client, "alice")
    monkeypatch.setattr(config, "MAX_UPLOAD_SIZE", 10)
    before = set(os.listdir(config.UPLOAD_DIR))

    res = client.post(
        "/api/posts",
        data={"type": "video"},
        files={"file": ("clip.mp4", b"0123456789abcdef", "video/mp4")},
        headers=auth_headers(token),
    )
    assert res.status_code == 400
    assert "too large" in res.json()["error"]
    assert set(os.listdir(config.UPLOAD_DIR)) == before
    assert _feed(client, token) == []


def test_failed_post_insert_removes_stored_upload(client, monkeypatch):
    token, _ = signup(client, "alice")
    before = set(os.listdir(config.UPLOAD_DIR))

    def fail_commit(self):
        raise OperationalError("INSERT INTO posts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Session, "commit", fail_commit)

    failing = TestClient(app, raise_server_exceptions=False)
    res = failing.post(
        "/api/posts",
        data={"type": "image"},
        files={"file": ("pic.jpg", b"jpeg-bytes", "image/jpeg")},
        headers=auth_headers(token),
    )
    assert res.status_code == 500
    assert set(os.listdir(config.UPLOAD_DIR)) == before
