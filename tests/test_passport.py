"""
tests/test_passport.py -- Unit tests for the Authenticator in auth/passport.py.

The Authenticator only sees the session through the installed SessionAdapter,
so these tests build bare ASGI scopes, install the adapter, and call the
authenticator directly.
"""

from __future__ import annotations

import pytest
from conftest import run
from starlette.requests import Request

from auth.models import OAuthProfile, User
from auth.passport import SESSION_KEY, Authenticator, SessionUnavailableError, current_user, is_authenticated
from auth.session import get_session, install_session_adapter
from auth.store import UserStore


def _request(session=None) -> Request:
    scope = {"type": "http", "method": "GET", "path": "/", "headers": []}
    if session is not None:
        scope["session"] = session
    request = Request(scope)
    install_session_adapter(request)
    request.state.user = None
    return request


def _ada(store: UserStore) -> User:
    return store.find_or_create(OAuthProfile(provider="google", provider_id="sub-ada", username="Ada Lovelace"))


class TestLogin:
    def test_login_stores_identity_in_session(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        user = _ada(user_store)
        request = _request({"theme": "dark"})

        run(auth.login(request, user))

        assert request.session[SESSION_KEY] == {"user": user.id}
        assert request.session["theme"] == "dark"
        assert current_user(request) is user
        assert is_authenticated(request)

    def test_login_without_session_support_raises(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request()
        with pytest.raises(SessionUnavailableError):
            run(auth.login(request, _ada(user_store)))

    def test_login_with_unsaved_user_raises(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request({})
        with pytest.raises(ValueError):
            run(auth.login(request, User(provider="google", provider_id="x", username="x")))


class TestLogout:
    def test_logout_destroys_session(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request({})
        run(auth.login(request, _ada(user_store)))

        run(auth.logout(request))

        assert request.session == {}
        assert get_session(request).is_destroyed
        assert current_user(request) is None

    def test_logout_twice_is_harmless(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request({})
        run(auth.logout(request))
        run(auth.logout(request))
        assert request.session == {}
        assert get_session(request).is_destroyed
        assert current_user(request) is None

    def test_logout_without_session_support(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request()
        run(auth.logout(request))
        assert current_user(request) is None


class TestRestore:
    def test_restore_known_user(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        user = _ada(user_store)
        request = _request({SESSION_KEY: {"user": user.id}})

        restored = auth.restore(request)

        assert restored == user
        assert current_user(request) == user

    def test_restore_anonymous(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request({"theme": "dark"})
        assert auth.restore(request) is None
        assert request.session == {"theme": "dark"}

    def test_restore_drops_stale_identity(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        request = _request({SESSION_KEY: {"user": 9999}, "theme": "dark"})

        assert auth.restore(request) is None
        assert request.session == {"theme": "dark"}

    @pytest.mark.parametrize("stored", ["user", ["user", 1], 7])
    def test_restore_drops_malformed_identity(self, user_store: UserStore, stored) -> None:
        auth = Authenticator(user_store)
        _ada(user_store)
        request = _request({SESSION_KEY: stored, "theme": "dark"})

        assert auth.restore(request) is None
        assert current_user(request) is None
        assert request.session == {"theme": "dark"}

    @pytest.mark.parametrize("bad_id", ["1", True, None, 1.5])
    def test_deserialize_rejects_non_integer_ids(self, user_store: UserStore, bad_id) -> None:
        auth = Authenticator(user_store)
        _ada(user_store)
        assert auth.deserialize_user(bad_id) is None

    def test_restore_without_session_support(self, user_store: UserStore) -> None:
        auth = Authenticator(user_store)
        assert auth.restore(_request()) is None
