#!/usr/bin/env python3
"""
Profile Portal -- OAuth login, signed-cookie sessions, and a profile page.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  SESSION_COOKIE_KEY   Cookie signing key, at least 32 characters. Required
                       when ENVIRONMENT=production.
  DATABASE_URL         SQLAlchemy connection string (default: local SQLite file).
  PORT                 Listening port (default: 3000).
  ENVIRONMENT          "production" restricts the session cookie to HTTPS.
  GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET
  GITHUB_CLIENT_ID / GITHUB_CLIENT_SECRET
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="profile-portal",
        description="Serve the Profile Portal web application.",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Interface to bind (default: {settings.host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to listen on (default: {settings.port}, from PORT)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only)",
    )
    args = parser.parse_args()

    print(f"Starting Profile Portal on http://{args.host}:{args.port}")
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
