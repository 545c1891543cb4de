from pathlib import Path

from sqlalchemy.exc import OperationalError

from conftest import bearer, image, load_user
from vidtube.models import storage


def _media_path(app, url):
    prefix = app.config["MEDIA_URL_PREFIX"].rstrip("/") + "/"
    return Path(app.config["MEDIA_ROOT"]) / url[len(prefix):]


def test_me_requires_token(client):
    resp = client.get("/api/v1/users/me")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_me_rejects_bad_token(client):
    resp = client.get("/api/v1/users/me", headers=bearer("abc.def.ghi"))
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "INVALID_TOKEN"


def test_me_returns_current_user(client, session_tokens):
    resp = client.get("/api/v1/users/me", headers=bearer(session_tokens["accessToken"]))
    assert resp.status_code == 200
    user = resp.get_json()["data"]
    assert user["username"] == "ava"
    assert "refreshToken" not in user


def test_update_account(client, session_tokens):
    resp = client.patch(
        "/api/v1/users/account",
        json={"email": " New@X.com ", "fullname": "Ava B"},
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 200
    user = resp.get_json()["data"]
    assert user["email"] == "new@x.com"
    assert user["fullname"] == "Ava B"


def test_update_account_needs_a_field(client, session_tokens):
    resp = client.patch("/api/v1/users/account", json={}, headers=bearer(session_tokens["accessToken"]))
    assert resp.status_code == 400


def test_update_account_email_taken(client, register, session_tokens):
    register(username="bob", email="b@x.com", fullname="Bob")
    resp = client.patch(
        "/api/v1/users/account",
        json={"email": "b@x.com"},
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 409


def test_update_avatar_replaces_and_deletes_old_file(app, client, session_tokens):
    old_url = load_user(app).avatar
    assert _media_path(app, old_url).is_file()

    resp = client.patch(
        "/api/v1/users/avatar",
        data={"avatar": image("new.png")},
        content_type="multipart/form-data",
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 200
    new_url = resp.get_json()["data"]["avatar"]
    assert new_url != old_url
    assert _media_path(app, new_url).is_file()
    assert not _media_path(app, old_url).exists()
    assert load_user(app).avatar == new_url


def test_update_avatar_requires_file(client, session_tokens):
    resp = client.patch(
        "/api/v1/users/avatar",
        data={},
        content_type="multipart/form-data",
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 400


def test_update_cover_image(app, client, session_tokens):
    resp = client.patch(
        "/api/v1/users/cover-image",
        data={"coverImage": image("cover.jpg")},
        content_type="multipart/form-data",
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 200
    url = resp.get_json()["data"]["coverImage"]
    assert url.startswith("/media/covers/")

    served = client.get(url)
    assert served.status_code == 200
    assert served.data == b"\x89PNG fake image"


def test_health(client, register):
    register()
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.get_json()["users"] == 1


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {
        "statusCode": 404,
        "data": None,
        "message": "Resource not found",
        "success": False,
        "error": "NOT_FOUND",
    }


def test_update_avatar_commit_failure_keeps_old_file(app, client, session_tokens, monkeypatch):
    old_url = load_user(app).avatar

    def failing_save():
        raise OperationalError("UPDATE users", {}, Exception("database is locked"))

    monkeypatch.setattr(storage, "save", failing_save)
    resp = client.patch(
        "/api/v1/users/avatar",
        data={"avatar": image("new.png")},
        content_type="multipart/form-data",
        headers=bearer(session_tokens["accessToken"]),
    )
    assert resp.status_code == 500
    monkeypatch.undo()

    stored = list((Path(app.config["MEDIA_ROOT"]) / "avatars").glob("*"))
    assert stored == [_media_path(app, old_url)]
    assert load_user(app).avatar == old_url
