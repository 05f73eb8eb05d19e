"""
api/routes/auth.py -- Credential verification endpoint for external callers.

Routes:
  POST /auth  -- {user, pass} -> {success: true} | {success: false, error: "invalid_credentials"}

Per-request flow:
  1. Parse the body (JSON or form). Unparseable bodies count as empty.
  2. Missing/empty user or pass -> invalid_credentials, no credential lookup.
  3. CredentialStore.verify(). A storage fault is logged and answered with the
     same invalid_credentials body -- callers cannot distinguish "no such
     user", "wrong password" and "store unavailable".
  4. Always, whatever happened above: record the response body in the audit
     log (global channel + the attempted user's channel). A failed audit
     write is logged and never changes the response.

Auth policy: public. This endpoint IS the authentication service.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException

from api.models import AuthRequest, AuthResponse
from audit.store import AuditLogStore
from auth.store import CredentialStore
from kv.store import StorageError

logger = logging.getLogger("authlog.api")

router = APIRouter()


async def _read_auth_request(request: Request) -> AuthRequest:
    """Parse {user, pass} from a JSON or form body; anything malformed is empty."""
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            payload = await request.json()
        else:
            payload = dict(await request.form())
    except (ValueError, HTTPException):
        # request.form() reports a broken multipart body as HTTPException(400).
        logger.info("POST /auth with unparseable body")
        return AuthRequest()
    if not isinstance(payload, dict):
        return AuthRequest()
    try:
        return AuthRequest.model_validate(payload)
    except ValidationError:
        logger.info("POST /auth with non-string credential fields")
        return AuthRequest()


def _check_credentials(credentials: CredentialStore, body: AuthRequest) -> AuthResponse:
    if not body.user or not body.password:
        return AuthResponse.invalid()
    try:
        verified = credentials.verify(body.user, body.password)
    except StorageError:
        logger.exception("Credential lookup failed for %r", body.user)
        return AuthResponse.invalid()
    return AuthResponse.ok() if verified else AuthResponse.invalid()


def _record_attempt(audit_log: AuditLogStore, user: str | None, result: dict) -> None:
    try:
        audit_log.record_attempt(user, result)
    except StorageError:
        logger.exception("Audit write failed for auth attempt by %r", user)


@router.post("/auth")
async def authenticate(request: Request) -> JSONResponse:
    """Verify a username/password pair and audit the attempt."""
    credentials: CredentialStore = request.app.state.credentials
    audit_log: AuditLogStore = request.app.state.audit_log

    body = await _read_auth_request(request)
    # Store calls block on SQLite; keep them off the event loop.
    response = await run_in_threadpool(_check_credentials, credentials, body)
    result = response.body()
    await run_in_threadpool(_record_attempt, audit_log, body.user, result)

    resp = JSONResponse(content=result)
    resp.headers["Cache-Control"] = "no-store"
    return resp
