"""
api/routes/v1/auth.py -- JSON view of the session identity.

Routes:
  GET /api/v1/auth/me         -- current user info (401 when anonymous)
  GET /api/v1/auth/providers  -- enabled OAuth providers (public)

Login and logout are browser flows and live in web/routes/auth.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import MeResponse, OAuthProviderInfo
from auth.dependencies import get_current_user
from auth.models import User
from auth.oauth import get_enabled_providers

router = APIRouter()


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        user_id=current_user.id,
        username=current_user.username,
        provider=current_user.provider,
        thumbnail=current_user.thumbnail,
    )


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers() -> list[OAuthProviderInfo]:
    """Return the configured OAuth providers. Empty when none are set up."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers()]
