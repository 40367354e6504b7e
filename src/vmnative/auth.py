"""
Request authentication for source and destination endpoints.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from vmnative.settings import Settings


@dataclass(frozen=True)
class AuthConfig:
    """
    Credentials injected into every outbound request.

    Supports HTTP Basic auth or a bearer token, plus arbitrary static headers
    (for example ``X-Scope-OrgID`` or a proxy token).
    """

    username: str | None = None
    password: str | None = None
    bearer_token: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.username and self.bearer_token:
            raise ValueError("basic auth and bearer token cannot be configured together")
        if self.password and not self.username:
            raise ValueError("password requires a username")

    def set_headers(self, request: httpx.Request, primary: bool) -> None:
        """
        Apply authentication headers to a request in place.

        Args:
            request: Outbound request
            primary: Whether this is the primary call to the endpoint; bearer
                tokens are only attached to primary calls
        """
        for name, value in self.headers.items():
            request.headers[name] = value

        if self.username:
            credentials = f"{self.username}:{self.password or ''}".encode()
            request.headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
        elif self.bearer_token and primary:
            request.headers["Authorization"] = f"Bearer {self.bearer_token}"

    @classmethod
    def from_settings(cls, settings: Settings, prefix: str) -> AuthConfig | None:
        """Build the auth config for the ``src`` or ``dst`` endpoint, if any."""
        username = getattr(settings, f"{prefix}_user")
        password = getattr(settings, f"{prefix}_password")
        bearer_token = getattr(settings, f"{prefix}_bearer_token")
        if not (username or bearer_token):
            return None
        return cls(username=username, password=password, bearer_token=bearer_token)
