"""
web/templating.py -- Shared Jinja2 environment for the web UI.

One Jinja2Templates instance for every web router, so globals registered here
are visible to all pages.
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from auth.dependencies import try_get_current_user

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
# layout.html calls this to render the nav bar without every handler passing
# the user in its context.
templates.env.globals["try_get_current_user"] = try_get_current_user
