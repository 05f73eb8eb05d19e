"""
API request and response models for authlog's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in audit/models.py, which
own the internal record shape. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

INVALID_CREDENTIALS = "invalid_credentials"

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AuthRequest(BaseModel):
    """Body of POST /auth: {"user": ..., "pass": ...}.

    Both fields are optional at this layer. A missing or empty field is an
    ordinary failed attempt (invalid_credentials), not a 422 -- the attempt
    still has to be answered and audited like any other.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user: Optional[str] = None
    password: Optional[str] = Field(default=None, alias="pass")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AuthResponse(BaseModel):
    """Body returned by POST /auth and stored verbatim as the audit record's result.

    Serialized with exclude_none so success yields exactly {"success": true}.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "AuthResponse":
        return cls(success=True)

    @classmethod
    def invalid(cls) -> "AuthResponse":
        return cls(success=False, error=INVALID_CREDENTIALS)

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
