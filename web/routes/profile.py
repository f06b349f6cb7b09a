"""
web/routes/profile.py -- Profile page, mounted under /profile.

Routes:
  GET /profile/  -- profile of the logged-in user (302 /auth/login otherwise)
"""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from auth.dependencies import require_login, try_get_current_user
from web.templating import templates

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def profile(request: Request) -> HTMLResponse:
    if redirect := require_login(request):
        return redirect
    return templates.TemplateResponse(request, "profile.html", {"user": try_get_current_user(request)})
