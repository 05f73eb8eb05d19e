"""
web/routes.py -- Jinja2 template routes for the authlog admin console.

These routes serve server-rendered HTML. They share app.state with the API
routes (same credential store and audit log) but return HTML or redirects
instead of JSON.

Route registration order matters. FastAPI resolves same-level paths in order:
  - POST /user/new must be registered before POST /user/{user_id} or FastAPI
    captures "new" as a username.

Routes:
  GET  /                            -- redirect to the global log, full range
  GET  /admin/login                 -- login form (admins are sent to the log)
  POST /admin/login                 -- check the configured admin identity
  GET  /admin/logout                -- clear the admin flag, back to login
  GET  /user                        -- list usernames (admin)
  POST /user/new                    -- create/replace a credential (admin)
  POST /user/{user_id}              -- set password, or delete if pass is empty (admin)
  GET  /log/{user}/{since}/{till}   -- one page of the audit log (admin)

The admin identity lives in configuration (ADMIN_USER / ADMIN_PASSWORD), not
in the credential store: console access and /auth users are separate worlds.
"""

import hmac
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from audit.store import GLOBAL_CHANNEL, AuditLogStore, annotate_for_display
from auth.store import CredentialStore
from core.config import Settings
from core.time_utils import BEGIN, NOW, InvalidTimeBound
from kv.store import StorageError

logger = logging.getLogger("authlog.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
templates.env.globals["GLOBAL_CHANNEL"] = GLOBAL_CHANNEL
router = APIRouter()

_SESSION_FLAG = "admin"
_DEFAULT_LOG_URL = f"/log/{GLOBAL_CHANNEL}/{BEGIN}/{NOW}"

# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def _is_admin(request: Request) -> bool:
    return bool(request.session.get(_SESSION_FLAG))


def _require_admin(request: Request) -> Optional[RedirectResponse]:
    """Check for the admin session flag.

    Returns a RedirectResponse to /admin/login if absent, None if OK.
    Call at the top of protected route handlers, before touching any store:
        if redirect := _require_admin(request):
            return redirect
    """
    if not _is_admin(request):
        return RedirectResponse("/admin/login", status_code=302)
    return None


def _admin_matches(settings: Settings, username: Optional[str], password: Optional[str]) -> bool:
    """Compare submitted credentials to the configured admin identity.

    An unset ADMIN_PASSWORD never matches, so an unconfigured console
    cannot be entered with an empty password.
    """
    if not settings.admin_password or not username or not password:
        return False
    user_ok = hmac.compare_digest(username.encode("utf-8"), settings.admin_user.encode("utf-8"))
    pass_ok = hmac.compare_digest(password.encode("utf-8"), settings.admin_password.encode("utf-8"))
    return user_ok and pass_ok


def _log_url(user: str, since: str, till: str) -> str:
    return "/log/{}/{}/{}".format(quote(user, safe=""), quote(since, safe=""), quote(till, safe=""))


templates.env.globals["log_url"] = _log_url
templates.env.filters["path_segment"] = lambda value: quote(value, safe="")

# ---------------------------------------------------------------------------
# Entry point and session routes
# ---------------------------------------------------------------------------


@router.get("/")
def index() -> RedirectResponse:
    return RedirectResponse(_DEFAULT_LOG_URL, status_code=302)


@router.get("/admin/login", response_class=HTMLResponse)
def login_form(request: Request) -> HTMLResponse:
    """Render the login page. Already-authenticated admins go straight to the log."""
    if _is_admin(request):
        return RedirectResponse(_DEFAULT_LOG_URL, status_code=302)
    return templates.TemplateResponse(request, "login.html", {"failed": False})


@router.post("/admin/login", response_class=HTMLResponse)
def login_post(
    request: Request,
    user: Optional[str] = Form(None),
    password: Optional[str] = Form(None, alias="pass"),
) -> HTMLResponse:
    """Handle the login form. Failure re-renders the form with a failure notice."""
    if _is_admin(request):
        return RedirectResponse(_DEFAULT_LOG_URL, status_code=302)

    settings: Settings = request.app.state.settings
    if _admin_matches(settings, user, password):
        request.session[_SESSION_FLAG] = True
        logger.info("Admin console login by %r", user)
        resp = RedirectResponse(_DEFAULT_LOG_URL, status_code=302)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    logger.warning("Failed admin console login for %r", user)
    return templates.TemplateResponse(request, "login.html", {"failed": True})


@router.get("/admin/logout")
def logout(request: Request) -> RedirectResponse:
    """Clear the admin flag and return to the login page."""
    request.session[_SESSION_FLAG] = False
    return RedirectResponse("/admin/login", status_code=302)


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


@router.get("/user", response_class=HTMLResponse)
def user_list(request: Request) -> HTMLResponse:
    """Render every username in the credential store.

    Storage faults propagate to the generic 500 handler.
    """
    if redirect := _require_admin(request):
        return redirect
    credentials: CredentialStore = request.app.state.credentials
    users = credentials.list_usernames()
    return templates.TemplateResponse(request, "user.html", {"users": users})


@router.post("/user/new")
def user_create(
    request: Request,
    user: Optional[str] = Form(None),
    password: Optional[str] = Form(None, alias="pass"),
) -> RedirectResponse:
    """Create or replace a credential. Missing fields are a silent no-op."""
    if redirect := _require_admin(request):
        return redirect
    if user and password:
        credentials: CredentialStore = request.app.state.credentials
        credentials.set_password(user, password)
        logger.info("Password set for %r", user)
    return RedirectResponse("/user", status_code=302)


@router.post("/user/{user_id}")
def user_update(
    request: Request,
    user_id: str,
    password: Optional[str] = Form(None, alias="pass"),
) -> RedirectResponse:
    """Overwrite user_id's password, or delete user_id when pass is absent/empty.

    Deletion is best-effort: a storage fault is logged and the admin is
    redirected back to the list as if it had worked.
    """
    if redirect := _require_admin(request):
        return redirect
    credentials: CredentialStore = request.app.state.credentials
    if not password:
        try:
            credentials.delete_user(user_id)
            logger.info("User %r deleted", user_id)
        except StorageError:
            logger.exception("Deleting user %r failed", user_id)
        return RedirectResponse("/user", status_code=302)

    credentials.set_password(user_id, password)
    logger.info("Password set for %r", user_id)
    return RedirectResponse("/user", status_code=302)


# ---------------------------------------------------------------------------
# Audit log viewer
# ---------------------------------------------------------------------------


@router.get("/log/{user}/{since}/{till}", response_class=HTMLResponse)
def log_view(request: Request, user: str, since: str, till: str) -> HTMLResponse:
    """Render one page of user's channel between since and till, newest first.

    user is a username or the global channel; since/till are zoned ISO8601
    timestamps or the sentinels "begin"/"now". A bad bound is a 400.
    """
    if redirect := _require_admin(request):
        return redirect
    settings: Settings = request.app.state.settings
    audit_log: AuditLogStore = request.app.state.audit_log
    try:
        page = audit_log.query_range(user, since, till, settings.log_page_size)
    except InvalidTimeBound as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return templates.TemplateResponse(
        request,
        "log.html",
        {
            "entries": annotate_for_display(page.entries),
            "has_next": page.has_more,
            "next_till": page.next_till,
            "user": user,
            "since": since,
            "till": till,
        },
    )
