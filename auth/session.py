"""
auth/session.py -- Session compatibility shim.

Starlette's SessionMiddleware keeps the whole session in a signed cookie and
exposes it as a plain dict at scope["session"]. The authentication layer
(auth/passport.py) is written against a richer session contract with three
capabilities:

  regenerate()  -- rotate the session identity
  destroy()     -- invalidate the session
  save()        -- flush pending changes

A plain dict has none of these. SessionAdapter wraps the ambient session value
and decides once, at construction, for each capability:

  native-backed -- the session object already defines a callable of that name;
                   the adapter delegates to it unchanged.
  substitute    -- a stand-in that completes immediately with no error:
                     regenerate: no state change. A cookie session has no
                         server-side identifier to rotate, so this gives NO
                         session-fixation protection.
                     destroy:    empties the session mapping in place and marks the
                         adapter destroyed. The mapping object itself stays at
                         scope["session"], because SessionMiddleware reads it
                         again at response start; an emptied session that
                         arrived non-empty is answered with an expired cookie.
                     save:       no flush. SessionMiddleware serializes the live
                         session on every response anyway.

Completion is the coroutine returning; every capability completes exactly once
per call.

session_compat() is the HTTP middleware that installs the adapter on
request.state before the authentication middlewares run. When the request has
no session at all (SessionMiddleware missing), it does nothing.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import Scope

logger = logging.getLogger("profileapp.auth.session")

CAPABILITIES: tuple[str, ...] = ("regenerate", "destroy", "save")

# Attribute name on request.state holding the installed adapter.
_STATE_KEY = "session"
# Scope key recording that the session was destroyed during this request.
_DESTROYED_KEY = "profileapp.session_destroyed"


@runtime_checkable
class SessionCapabilities(Protocol):
    """The session contract the authentication layer is written against."""

    async def regenerate(self) -> None: ...

    async def destroy(self) -> None: ...

    async def save(self) -> None: ...


# ---------------------------------------------------------------------------
# Capability variants
# ---------------------------------------------------------------------------


class _NativeCapability:
    """Delegates to a method the underlying session object already defines.

    Both plain and coroutine methods are supported; an awaitable result is
    awaited before the capability completes.
    """

    native = True

    def __init__(self, method: Callable[[], Any]) -> None:
        self._method = method

    async def __call__(self) -> None:
        result = self._method()
        if inspect.isawaitable(result):
            await result


class _SubstituteCapability:
    """Built-in stand-in for a capability the session object lacks."""

    native = False

    def __init__(self, name: str, adapter: SessionAdapter) -> None:
        self._name = name
        self._adapter = adapter

    async def __call__(self) -> None:
        if self._name == "destroy":
            self._adapter._clear()


def _bind_capability(session: Any, name: str, adapter: SessionAdapter) -> _NativeCapability | _SubstituteCapability:
    # A dict key named "save" is session data, not a method; only attributes count.
    method = getattr(session, name, None)
    if callable(method):
        return _NativeCapability(method)
    return _SubstituteCapability(name, adapter)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class SessionAdapter:
    """Fixed regenerate/destroy/save interface over the request's session value.

    The adapter holds the ASGI scope rather than the session dict itself, so
    a destroy() performed by any holder is observed by every reader of the
    same request. The session mapping is never replaced: SessionMiddleware
    reads its accessed and modified flags when the response starts.
    """

    def __init__(self, scope: Scope) -> None:
        self.scope = scope
        session = scope.get("session")
        self._capabilities = {name: _bind_capability(session, name, self) for name in CAPABILITIES}

    @property
    def native(self) -> frozenset[str]:
        """Names of the capabilities delegated to the underlying session object."""
        return frozenset(name for name, cap in self._capabilities.items() if cap.native)

    @property
    def data(self) -> Any:
        """The live session value, or None once the session has been destroyed."""
        if self.scope.get(_DESTROYED_KEY):
            return None
        return self.scope.get("session")

    @property
    def is_destroyed(self) -> bool:
        return self.data is None

    def _clear(self) -> None:
        session = self.scope.get("session")
        if session is not None:
            session.clear()
        self.scope[_DESTROYED_KEY] = True

    def get(self, key: str, default: Any = None) -> Any:
        data = self.data
        if data is None:
            return default
        return data.get(key, default)

    async def regenerate(self) -> None:
        await self._capabilities["regenerate"]()

    async def destroy(self) -> None:
        await self._capabilities["destroy"]()

    async def save(self) -> None:
        await self._capabilities["save"]()

    def __repr__(self) -> str:
        return f"SessionAdapter(native={sorted(self.native)!r}, destroyed={self.is_destroyed})"


# ---------------------------------------------------------------------------
# Request-processing stage
# ---------------------------------------------------------------------------


def install_session_adapter(request: Request) -> SessionAdapter | None:
    """Install a SessionAdapter for this request and return it.

    Returns None (and installs nothing) when the request has no session.
    Calling it again for the same request returns the adapter already
    installed instead of wrapping a second time.
    """
    if request.scope.get("session") is None:
        return None

    existing = getattr(request.state, _STATE_KEY, None)
    if isinstance(existing, SessionAdapter) and existing.scope is request.scope:
        return existing

    adapter = SessionAdapter(request.scope)
    setattr(request.state, _STATE_KEY, adapter)
    return adapter


def get_session(request: Request) -> SessionAdapter | None:
    """Return the adapter installed by session_compat(), or None."""
    adapter = getattr(request.state, _STATE_KEY, None)
    return adapter if isinstance(adapter, SessionAdapter) else None


async def session_compat(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """HTTP middleware: run install_session_adapter() ahead of authentication."""
    adapter = install_session_adapter(request)
    if adapter is None:
        logger.debug("No session on %s %s -- compatibility shim skipped", request.method, request.url.path)
    return await call_next(request)
