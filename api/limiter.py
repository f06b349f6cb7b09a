"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (mounted as middleware) and web/routes/auth.py (the
OAuth kick-off route is limited per client IP with @limiter.limit()).

A single shared instance keeps one in-memory counter store for the process;
separate instances per module would each count independently and never trip.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
