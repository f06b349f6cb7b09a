"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and dependency code never touches SQL directly.

The engine is opened by core.db.connect_db() at startup and handed in; the
store owns it from then on and disposes it in close().

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import OAuthProfile, User

logger = logging.getLogger("profileapp.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("provider", String(30), nullable=False),
    Column("provider_id", String(255), nullable=False),
    Column("username", String(255), nullable=False),
    Column("thumbnail", Text),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(connect_db(settings.database_url))
        user = store.find_or_create(profile)
        same = store.get_by_id(user.id)
        store.close()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_provider(self, provider: str, provider_id: str) -> User | None:
        """Look up a user by its (provider, provider_id) pair."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.provider == provider) & (_users.c.provider_id == provider_id))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_or_create(self, profile: OAuthProfile) -> User:
        """Return the user linked to profile, creating the record on first login.

        Two concurrent first logins for the same identity race on the UNIQUE
        constraint; the loser catches IntegrityError and re-reads the winner's
        row.
        """
        existing = self.get_by_provider(profile.provider, profile.provider_id)
        if existing is not None:
            return existing

        created_at = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        provider=profile.provider,
                        provider_id=profile.provider_id,
                        username=profile.username,
                        thumbnail=profile.thumbnail,
                        created_at=created_at,
                    )
                )
                conn.commit()
                user_id = result.inserted_primary_key[0]
        except IntegrityError:
            user = self.get_by_provider(profile.provider, profile.provider_id)
            if user is None:
                raise
            return user

        logger.info("Created user %d for %s identity", user_id, profile.provider)
        return User(
            id=user_id,
            provider=profile.provider,
            provider_id=profile.provider_id,
            username=profile.username,
            thumbnail=profile.thumbnail,
            created_at=created_at,
        )

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        provider=row.provider,
        provider_id=row.provider_id,
        username=row.username,
        thumbnail=row.thumbnail,
        created_at=row.created_at,
    )
