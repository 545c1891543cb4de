from datetime import timedelta

import jwt
import pytest

from vidtube.exceptions import ExpiredOrReusedTokenError, InvalidTokenError, NotFoundError
from vidtube.models import storage
from vidtube.models.user import User
from vidtube.utils.tokens import TokenIssuer


def _issuer(**kwargs):
    options = dict(
        access_secret="a-secret",
        refresh_secret="r-secret",
        access_expires=timedelta(minutes=5),
        refresh_expires=timedelta(days=1),
    )
    options.update(kwargs)
    return TokenIssuer(**options)


@pytest.fixture
def user(app):
    with app.app_context():
        user = User(username="ava", email="a@x.com", fullname="Ava A", avatar="/media/a.png")
        user.password = "p1"
        storage.new(user)
        storage.save()
        yield user


def test_issue_tokens_persists_refresh_token(user):
    issuer = _issuer()
    pair = issuer.issue_tokens(user.id)

    assert storage.get(User, user.id).refresh_token == pair.refresh_token
    claims = issuer.verify_refresh_token(pair.refresh_token)
    assert claims["sub"] == user.id
    access = issuer.verify_access_token(pair.access_token)
    assert access["username"] == "ava"
    assert access["type"] == "access"


def test_issue_tokens_unknown_user(app):
    with app.app_context():
        with pytest.raises(NotFoundError):
            _issuer().issue_tokens("missing")


def test_each_pair_is_unique(user):
    issuer = _issuer()
    first = issuer.issue_tokens(user.id)
    second = issuer.issue_tokens(user.id)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_expired_access_token(user):
    issuer = _issuer(access_expires=timedelta(seconds=-30))
    token = issuer.create_access_token(user)
    with pytest.raises(InvalidTokenError, match="expired"):
        issuer.verify_access_token(token)


def test_token_type_is_checked(user):
    issuer = _issuer(refresh_secret="a-secret")
    access = issuer.create_access_token(user)
    with pytest.raises(InvalidTokenError, match="Wrong token type"):
        issuer.verify_refresh_token(access)


def test_foreign_signature_rejected(user):
    forged = jwt.encode({"sub": user.id, "type": "refresh", "iss": "vidtube-api", "iat": 0, "exp": 9999999999},
                        "someone-else", algorithm="HS256")
    with pytest.raises(InvalidTokenError):
        _issuer().verify_refresh_token(forged)


def test_rotate_tokens(user):
    issuer = _issuer()
    pair = issuer.issue_tokens(user.id)
    rotated = issuer.rotate_tokens(user, pair.refresh_token)
    assert rotated.refresh_token != pair.refresh_token
    assert storage.get(User, user.id).refresh_token == rotated.refresh_token


def test_rotate_loses_race_to_concurrent_rotation(user):
    issuer = _issuer()
    pair = issuer.issue_tokens(user.id)

    # another request rotated the token behind this session's back
    storage.get_session().query(User).filter(User.id == user.id).update(
        {User.refresh_token: "rotated-elsewhere"}, synchronize_session=False
    )
    storage.save()
    assert user.refresh_token == pair.refresh_token

    with pytest.raises(ExpiredOrReusedTokenError):
        issuer.rotate_tokens(user, pair.refresh_token)


def test_revoke(user):
    issuer = _issuer()
    pair = issuer.issue_tokens(user.id)
    issuer.revoke(user)
    assert storage.get(User, user.id).refresh_token is None
    with pytest.raises(ExpiredOrReusedTokenError):
        issuer.rotate_tokens(user, pair.refresh_token)


def test_from_config(app):
    issuer = TokenIssuer.from_config(app.config)
    assert issuer.access_secret == "test-access-secret"
    assert issuer.refresh_secret == "test-refresh-secret"
    assert issuer.access_expires == app.config["ACCESS_TOKEN_EXPIRES"]
