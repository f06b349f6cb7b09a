"""
asgi.py -- Application assembly for Profile Portal.

This is the ONLY file that imports from both api/ and web/. It joins the two
independent layers into a single ASGI app without coupling them to each other.

Run with:  uvicorn asgi:app --reload
           python main.py
"""

from api.main import app
from web.routes.auth import router as auth_router
from web.routes.home import router as home_router
from web.routes.profile import router as profile_router

app.include_router(auth_router, prefix="/auth", tags=["Web UI"])
app.include_router(profile_router, prefix="/profile", tags=["Web UI"])
app.include_router(home_router, tags=["Web UI"])
