"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An identity that has logged in through an OAuth provider at least once.

    (provider, provider_id) is the stable external key. username and
    thumbnail are copied from the provider profile on first login and shown
    on the landing and profile pages.
    """

    provider: str  # "google", "github"
    provider_id: str  # provider's stable subject ID
    username: str
    id: int | None = None
    thumbnail: str | None = None  # avatar URL
    created_at: str | None = None


@dataclass(frozen=True)
class OAuthProfile:
    """Provider profile normalized by auth.oauth.get_oauth_profile()."""

    provider: str
    provider_id: str
    username: str
    thumbnail: str | None = None
