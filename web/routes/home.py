"""
web/routes/home.py -- Landing page.

Routes:
  GET /  -- landing page; shows the logged-in identity, or a login link
"""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from auth.dependencies import try_get_current_user
from web.templating import templates

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "home.html", {"user": try_get_current_user(request)})
