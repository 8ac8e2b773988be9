import os
import tempfile

# Point storage at a scratch directory before the app reads its config
_TMP_DIR = tempfile.mkdtemp(prefix="social-feed-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_EXPIRES_MINUTES"] = "0"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from database import Base, engine
from main import app


@pytest.fixture()
def client():
    # entering the client runs the lifespan, which creates the schema
    with TestClient(app) as c:
        yield c
    Base.metadata.drop_all(bind=engine)


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def signup(client, username, password="pw1", full_name=None):
    res = client.post("/api/auth/signup", json={
        "username": username,
        "password": password,
        "full_name": full_name or username.title(),
    })
    assert res.status_code == 200, res.text
    body = res.json()
    return body["token"], body["user"]


def create_post(client, token, url="/uploads/x.jpg", type="image", caption=None):
    data = {"type": type, "url": url}
    if caption is not None:
        data["caption"] = caption
    res = client.post("/api/posts", data=data, headers=auth_headers(token))
    assert res.status_code == 200, res.text
    return res.json()["id"]
