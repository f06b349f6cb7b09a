"""
web/routes/auth.py -- Browser login flow, mounted under /auth.

Route registration order matters: /login and /logout must be registered
before /{provider}, or FastAPI captures "login"/"logout" as a provider name.

Routes:
  GET /auth/login                 -- login page with one button per provider
  GET /auth/logout                -- destroy the session, redirect to /
  GET /auth/{provider}            -- redirect to the provider's consent page
  GET /auth/{provider}/redirect   -- provider callback; log in, go to /profile/
"""

import logging

import httpx
from authlib.integrations.starlette_client import OAuthError
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from api.limiter import limiter
from auth.dependencies import try_get_current_user
from auth.oauth import get_enabled_providers, get_oauth_profile
from auth.store import UserStore
from core.config import get_settings
from web.templating import templates

logger = logging.getLogger("profileapp.web.auth")

router = APIRouter()

# Whitelist mapping for ?error= query params on /auth/login. The raw query
# param is never passed to templates -- only the message from this dict is.
_ERROR_MESSAGES: dict[str, str] = {
    "oauth_failed": "Login with the provider failed. Please try again.",
    "unknown_provider": "That login provider is not available.",
}


def _is_enabled(provider: str) -> bool:
    return provider in {p["name"] for p in get_enabled_providers()}


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request) -> HTMLResponse:
    """Render the login page, or skip it for an already logged-in user."""
    if try_get_current_user(request) is not None:
        return RedirectResponse("/profile/", status_code=302)

    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""))
    return templates.TemplateResponse(
        request,
        "login.html",
        {"error_msg": error_msg, "providers": get_enabled_providers()},
    )


@router.get("/logout")
async def logout(request: Request) -> RedirectResponse:
    await request.state.auth.logout(request)
    return RedirectResponse("/", status_code=302)


@router.get("/{provider}")
@limiter.limit(get_settings().login_rate_limit)
async def provider_login(request: Request, provider: str) -> RedirectResponse:
    """Redirect the browser to the provider's authorization page.

    The provider name is checked against the enabled list first, so a
    crafted name can never select an unregistered client.
    """
    if not _is_enabled(provider):
        return RedirectResponse("/auth/login?error=unknown_provider", status_code=302)

    client = request.app.state.oauth.create_client(provider)
    redirect_uri = str(request.url_for("oauth_callback", provider=provider))
    return await client.authorize_redirect(request, redirect_uri)


@router.get("/{provider}/redirect", name="oauth_callback")
async def provider_callback(request: Request, provider: str) -> RedirectResponse:
    """Finish the authorization-code flow and log the user in.

    Flow:
      1. Exchange the code for a token (authlib checks the state stored in the session).
      2. Normalize the provider profile.
      3. Find the user by (provider, subject) or create it on first login.
      4. login(): regenerate, store identity, save.
    """
    if not _is_enabled(provider):
        return RedirectResponse("/auth/login?error=unknown_provider", status_code=302)

    client = request.app.state.oauth.create_client(provider)

    try:
        token = await client.authorize_access_token(request)
    except OAuthError:
        logger.exception("OAuth token exchange failed for provider %r", provider)
        return RedirectResponse("/auth/login?error=oauth_failed", status_code=302)

    try:
        profile = await get_oauth_profile(client, provider, token)
    except (ValueError, httpx.HTTPError):
        logger.warning("OAuth login rejected: unusable profile from %r", provider, exc_info=True)
        return RedirectResponse("/auth/login?error=oauth_failed", status_code=302)

    user_store: UserStore = request.app.state.user_store
    user = user_store.find_or_create(profile)
    await request.state.auth.login(request, user)

    resp = RedirectResponse("/profile/", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp
