"""
auth/passport.py -- Strategy-based authentication layer over the cookie session.

The Authenticator owns how an identity is kept in the session:

  serialize_user()    -- User -> value stored at session["passport"]["user"]
  deserialize_user()  -- stored value -> User (None when the record is gone)
  login()             -- regenerate, store identity, save
  logout()            -- destroy
  restore()           -- per-request: session identity -> request.state.user

Provider-specific work (redirects, token exchange, profile extraction) lives
in auth/oauth.py and the /auth routes; by the time login() is called the
strategy has already produced a User.

Two HTTP middlewares bind the layer to each request, installed in this order
after the session compatibility shim:

  auth_initialize  -- request-scoped: request.state.auth / request.state.user
  auth_session     -- persistent-session: restore() from the session cookie

The session capabilities are used only through auth.session.get_session(),
so the layer works unchanged whether they are native or substitutes.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

from auth.models import User
from auth.session import get_session
from auth.store import UserStore

logger = logging.getLogger("profileapp.auth.passport")

SESSION_KEY = "passport"


class SessionUnavailableError(RuntimeError):
    """login() was called on a request that has no session support."""


class Authenticator:
    """Keeps the authenticated identity in the request session."""

    def __init__(self, user_store: UserStore) -> None:
        self.user_store = user_store

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize_user(self, user: User) -> int:
        if user.id is None:
            raise ValueError("Cannot serialize a user that has not been persisted")
        return user.id

    def deserialize_user(self, user_id: object) -> User | None:
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        return self.user_store.get_by_id(user_id)

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    async def login(self, request: Request, user: User) -> None:
        """Establish user as the identity of this session.

        Raises SessionUnavailableError if the request has no session.
        """
        session = get_session(request)
        if session is None or session.is_destroyed:
            raise SessionUnavailableError("Login sessions require session support. Is SessionMiddleware installed?")

        await session.regenerate()
        session.data[SESSION_KEY] = {"user": self.serialize_user(user)}
        await session.save()
        request.state.user = user
        logger.info("User %s logged in", user.id)

    async def logout(self, request: Request) -> None:
        """Drop the identity and invalidate the session cookie."""
        user = getattr(request.state, "user", None)
        session = get_session(request)
        if session is not None and not session.is_destroyed:
            await session.destroy()
        request.state.user = None
        if user is not None:
            logger.info("User %s logged out", user.id)

    # ------------------------------------------------------------------
    # Per-request restore
    # ------------------------------------------------------------------

    def restore(self, request: Request) -> User | None:
        """Resolve the session identity into request.state.user.

        A serialized id whose record no longer exists, or an identity entry
        that is not a mapping, is removed from the session so the client's
        cookie is rewritten without it.
        """
        session = get_session(request)
        if session is None:
            return None
        stored = session.get(SESSION_KEY)
        if stored is None:
            return None
        if not isinstance(stored, dict):
            logger.warning("Dropping malformed session identity %r", stored)
            session.data.pop(SESSION_KEY, None)
            return None
        if "user" not in stored:
            return None

        user = self.deserialize_user(stored["user"])
        if user is None:
            logger.warning("Dropping stale session identity %r", stored["user"])
            session.data.pop(SESSION_KEY, None)
            return None
        request.state.user = user
        return user


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def current_user(request: Request) -> User | None:
    """Return the identity restored for this request, or None."""
    return getattr(request.state, "user", None)


def is_authenticated(request: Request) -> bool:
    return current_user(request) is not None


async def auth_initialize(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Bind the application's Authenticator to this request."""
    request.state.auth = request.app.state.authenticator
    request.state.user = None
    return await call_next(request)


async def auth_session(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Restore the logged-in identity from the session cookie."""
    request.state.auth.restore(request)
    return await call_next(request)
