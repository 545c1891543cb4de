import io

import pytest

from vidtube.api import create_app
from vidtube.models import storage
from vidtube.models.user import User


@pytest.fixture
def app(tmp_path):
    app = create_app(
        "test",
        overrides={
            "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
            "MEDIA_ROOT": str(tmp_path / "media"),
        },
    )
    yield app
    storage.close()


@pytest.fixture
def client(app):
    # Cookies are passed explicitly so each test controls which token is presented
    return app.test_client(use_cookies=False)


def image(name="avatar.png", content=b"\x89PNG fake image"):
    return (io.BytesIO(content), name)


@pytest.fixture
def register(client):
    def _register(username="ava", email="a@x.com", password="p1", fullname="Ava A",
                  avatar=True, cover=False, **extra):
        data = {"username": username, "email": email, "password": password, "fullname": fullname}
        if avatar:
            data["avatar"] = image()
        if cover:
            data["coverImage"] = image("cover.jpg")
        data.update(extra)
        return client.post("/api/v1/users/register", data=data, content_type="multipart/form-data")
    return _register


@pytest.fixture
def login(client):
    def _login(password="p1", **identifier):
        identifier = identifier or {"username": "ava"}
        return client.post("/api/v1/users/login", json={**identifier, "password": password})
    return _login


@pytest.fixture
def session_tokens(register, login):
    """Register and log in the default user; returns the login payload."""
    assert register().status_code == 201
    resp = login()
    assert resp.status_code == 200
    return resp.get_json()["data"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def load_user(app, username="ava") -> User:
    with app.app_context():
        user = storage.get_session().query(User).filter(User.username == username).one()
        storage.get_session().expunge(user)
        return user
