"""
auth/oauth.py -- Authlib OAuth/OIDC provider configuration.

Reads configuration from core.config.get_settings() at module load to decide
which providers are active. Only providers with both client ID and secret
configured get registered -- the login template renders buttons dynamically
based on get_enabled_providers().

OAuth state parameter (CSRF protection) is handled by authlib automatically:
authorize_redirect() stores it in request.session (the signed cookie) and
authorize_access_token() verifies it on the callback.

Supported providers:
  google -- Authorization code flow; OIDC discovery.
  github -- Authorization code flow; static endpoints.

Layer rule: no imports from api/ or web/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging

from authlib.integrations.starlette_client import OAuth

from auth.models import OAuthProfile
from core.config import get_settings

logger = logging.getLogger("profileapp.auth.oauth")

# ---------------------------------------------------------------------------
# Authlib OAuth registry
# ---------------------------------------------------------------------------

oauth = OAuth()

_cfg = get_settings()

# Google -- OIDC discovery
if _cfg.google_client_id and _cfg.google_client_secret:
    oauth.register(
        name="google",
        client_id=_cfg.google_client_id,
        client_secret=_cfg.google_client_secret,
        server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
        client_kwargs={"scope": "openid email profile"},
    )
    logger.info("Google OAuth provider registered")

# GitHub -- static endpoints (no OIDC discovery document)
if _cfg.github_client_id and _cfg.github_client_secret:
    oauth.register(
        name="github",
        client_id=_cfg.github_client_id,
        client_secret=_cfg.github_client_secret,
        access_token_url="https://github.com/login/oauth/access_token",  # noqa: S106 -- URL, not a password
        authorize_url="https://github.com/login/oauth/authorize",
        api_base_url="https://api.github.com/",
        client_kwargs={"scope": "read:user"},
    )
    logger.info("GitHub OAuth provider registered")


# ---------------------------------------------------------------------------
# Provider metadata
# ---------------------------------------------------------------------------


def get_enabled_providers() -> list[dict]:
    """Return {"name": str, "label": str} for every configured provider."""
    cfg = get_settings()
    providers: list[dict] = []
    if cfg.google_client_id and cfg.google_client_secret:
        providers.append({"name": "google", "label": "Google"})
    if cfg.github_client_id and cfg.github_client_secret:
        providers.append({"name": "github", "label": "GitHub"})
    return providers


# ---------------------------------------------------------------------------
# Profile extraction -- provider-specific normalization
# ---------------------------------------------------------------------------


async def get_oauth_profile(client, provider: str, token: dict) -> OAuthProfile:
    """Normalize a provider token response into an OAuthProfile.

    Args:
        client:   The authlib OAuth client for this provider.
        provider: "google" or "github".
        token:    The token dict returned by authlib after code exchange.

    Raises:
        ValueError: Unknown provider, or the response carries no subject ID.
    """
    if provider == "google":
        return _get_google_profile(token)
    elif provider == "github":
        return await _get_github_profile(client, token)
    else:
        raise ValueError(f"Unknown OAuth provider: {provider!r}")


def _get_google_profile(token: dict) -> OAuthProfile:
    """Read the profile from the id_token claims authlib parsed into token["userinfo"]."""
    userinfo = token.get("userinfo")
    if not userinfo:
        raise ValueError("google OAuth: no userinfo in token response")

    subject_id = userinfo.get("sub")
    if not subject_id:
        raise ValueError("google OAuth: missing sub claim in userinfo")

    username = userinfo.get("name") or userinfo.get("email") or subject_id
    return OAuthProfile(
        provider="google",
        provider_id=str(subject_id),
        username=username,
        thumbnail=userinfo.get("picture"),
    )


async def _get_github_profile(client, token: dict) -> OAuthProfile:
    """Fetch GET /user; GitHub does not put the profile in the token."""
    resp = await client.get("user", token=token)
    resp.raise_for_status()
    profile = resp.json()

    if profile.get("id") is None:
        raise ValueError("github OAuth: missing id in /user response")

    subject_id = str(profile["id"])
    return OAuthProfile(
        provider="github",
        provider_id=subject_id,
        username=profile.get("name") or profile.get("login") or subject_id,
        thumbnail=profile.get("avatar_url"),
    )
