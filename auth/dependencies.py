"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The identity is restored once per request by the auth_session middleware
(auth/passport.py); these helpers only read request.state.user.

try_get_current_user() is the soft variant (returns None when anonymous).
get_current_user() wraps it and raises HTTP 401 for JSON endpoints.
require_login() returns a redirect for HTML pages.

Layer rule: no imports from web/ or api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request
from fastapi.responses import RedirectResponse

from auth.models import User
from auth.passport import current_user


def try_get_current_user(request: Request) -> User | None:
    """Return the logged-in User, or None. Never raises."""
    return current_user(request)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthenticated", "message": "Login required."},
        )
    return user


def require_login(request: Request) -> RedirectResponse | None:
    """Return a redirect to the login page if the request is anonymous, None if OK.

    Call at the top of protected page handlers:
        if redirect := require_login(request):
            return redirect
    """
    if try_get_current_user(request) is None:
        return RedirectResponse("/auth/login", status_code=302)
    return None
