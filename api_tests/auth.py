"""Bearer-token acquisition against the Toolshop login endpoint.

One call, no retries: a failed login raises AuthenticationError and the
fixture or setup step that asked for the token fails with it.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional

from playwright.async_api import APIRequestContext, Error as PlaywrightError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/users/login"
CURRENT_USER_PATH = "/users/me"


class AuthenticationError(Exception):
    """Login failed or did not yield a usable access token."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class TokenState(str, Enum):
    """Where a credential is in its lifecycle.

    There is deliberately no transition back to UNAUTHENTICATED when a
    protected endpoint rejects the token; that shows up as a failed
    assertion in the test that made the call.
    """

    UNAUTHENTICATED = "unauthenticated"
    ACQUIRING = "acquiring"
    ACQUIRED = "acquired"
    PERSISTED = "persisted"
    IN_MEMORY_ONLY = "in-memory-only"
    CONSUMED = "consumed"


def bearer_headers(token: str) -> Dict[str, str]:
    """Return the Authorization header for a bearer token."""
    if not token:
        raise ValueError("Cannot build an Authorization header from an empty token")
    return {"Authorization": f"Bearer {token}"}


async def acquire_token(
    request_context: APIRequestContext,
    email: str,
    password: str,
) -> str:
    """Log in and return the access token.

    Args:
        request_context: Playwright request context with base_url pointing
            at the API
        email: Account email
        password: Account password

    Returns:
        Non-empty access token string

    Raises:
        ValueError: If email or password is empty (no request is sent)
        AuthenticationError: If the request cannot be sent, or the
            response is not 200, is not a JSON
            object, or carries no usable ``access_token``
    """
    if not email or not password:
        raise ValueError("Login requires a non-empty email and password")

    logger.info("Logging in as %s", email)
    try:
        response = await request_context.post(
            LOGIN_PATH,
            headers={"Content-Type": "application/json"},
            data={"email": email, "password": password},
        )
    except PlaywrightError as exc:
        raise AuthenticationError(
            f"Authentication failed: {LOGIN_PATH} unreachable ({exc})"
        ) from exc

    if not response.ok or response.status != 200:
        raise AuthenticationError(
            f"Authentication failed: {LOGIN_PATH} returned HTTP {response.status}",
            status=response.status,
        )

    try:
        body = await response.json()
    except ValueError as exc:
        raise AuthenticationError(
            f"Authentication failed: login response is not valid JSON ({exc})",
            status=response.status,
        ) from exc

    if not isinstance(body, dict):
        raise AuthenticationError(
            "Authentication failed: login response is not a JSON object",
            status=response.status,
        )

    access_token = body.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise AuthenticationError(
            "Authentication failed: No access token received",
            status=response.status,
        )

    logger.info("Login succeeded for %s", email)
    return access_token
