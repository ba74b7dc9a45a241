"""
Request/response context models.

The transport itself (routing, cookie flags, TLS) lives outside this package.
These models carry what the core needs to hand back to it: cookies to set,
the one-shot token refresh advisory, and the JSON body with its status code.
"""

from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from fintrack.models.auth import ACCESS_TOKEN_COOKIE, TokenPair


REFRESHED_TOKEN_MESSAGE = (
    "Access token has been refreshed. "
    "Remember to copy the new one in the headers of subsequent calls"
)


class ApiRequest(BaseModel):
    """What a service operation needs from an inbound HTTP request."""

    cookies: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    correlation_id: UUID = Field(default_factory=uuid4)

    @property
    def tokens(self) -> TokenPair:
        return TokenPair.from_cookies(self.cookies)


class CookieDirective(BaseModel):
    """A cookie the transport layer must set on the response."""

    name: str
    value: str
    max_age_seconds: int = Field(..., ge=0)
    http_only: bool = True
    path: str = "/api"

    @classmethod
    def clear(cls, name: str) -> "CookieDirective":
        """Directive that removes a cookie on the client."""
        return cls(name=name, value="", max_age_seconds=0)


class ResponseContext(BaseModel):
    """
    Per-request scratch space, the equivalent of response locals.

    Lives for exactly one request/response exchange and is never persisted.
    """

    cookies: list[CookieDirective] = Field(default_factory=list)
    refreshed_token_message: Optional[str] = None

    def set_cookie(self, cookie: CookieDirective) -> None:
        # Last write wins for a given cookie name
        self.cookies = [c for c in self.cookies if c.name != cookie.name]
        self.cookies.append(cookie)

    def record_token_refresh(self, access_token: str, max_age_seconds: int) -> None:
        """Attach a renewed access token and the advisory message."""
        self.set_cookie(CookieDirective(
            name=ACCESS_TOKEN_COOKIE,
            value=access_token,
            max_age_seconds=max_age_seconds,
        ))
        self.refreshed_token_message = REFRESHED_TOKEN_MESSAGE

    @property
    def refreshed_access_token(self) -> Optional[str]:
        for cookie in self.cookies:
            if cookie.name == ACCESS_TOKEN_COOKIE and cookie.value:
                return cookie.value
        return None


class ApiResponse(BaseModel):
    """Status code, JSON body and cookies produced by a service operation."""

    status_code: int
    body: dict[str, Any] = Field(default_factory=dict)
    cookies: list[CookieDirective] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def data(self) -> Any:
        return self.body.get("data")

    @property
    def error(self) -> Optional[str]:
        return self.body.get("error")

    @classmethod
    def success(cls, data: Any, context: Optional[ResponseContext] = None) -> "ApiResponse":
        return cls._build(200, {"data": data}, context)

    @classmethod
    def failure(
        cls,
        status_code: int,
        error: str,
        context: Optional[ResponseContext] = None,
    ) -> "ApiResponse":
        return cls._build(status_code, {"error": error}, context)

    @classmethod
    def _build(
        cls,
        status_code: int,
        body: dict[str, Any],
        context: Optional[ResponseContext],
    ) -> "ApiResponse":
        cookies = []
        if context is not None:
            cookies = list(context.cookies)
            if context.refreshed_token_message:
                body["refreshedTokenMessage"] = context.refreshed_token_message
        return cls(status_code=status_code, body=body, cookies=cookies)
