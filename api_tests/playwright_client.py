"""
Playwright API Request Client
=============================

Thin wrapper around Playwright's APIRequestContext. No browser is
launched; only the request layer of Playwright is used.

Usage:
    from api_tests.playwright_client import request_session

    async with request_session(base_url, token=token) as request:
        response = await request.get("/users/me")
        assert response.status == 200
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from playwright.async_api import APIRequestContext, Playwright, async_playwright

from api_tests.auth import bearer_headers
from api_tests.config import settings

logger = logging.getLogger(__name__)


class PlaywrightClient:
    """
    Owns the Playwright driver and every request context created from it.

    Example:
        async with PlaywrightClient() as client:
            request = await client.authenticated_request_context(token, base_url)
            response = await request.get("/users/me")
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        ignore_https_errors: Optional[bool] = None,
    ):
        """
        Args:
            timeout: Default request timeout in milliseconds
                (None = settings.timeout_ms)
            ignore_https_errors: Skip TLS verification
                (None = settings.ignore_https_errors)
        """
        self.timeout = timeout if timeout is not None else settings.timeout_ms
        if ignore_https_errors is not None:
            self.ignore_https_errors = ignore_https_errors
        else:
            self.ignore_https_errors = settings.ignore_https_errors

        self._playwright: Optional[Playwright] = None
        self._contexts: List[APIRequestContext] = []

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        """Start the Playwright driver."""
        self._playwright = await async_playwright().start()

    async def new_request_context(
        self,
        base_url: Optional[str] = None,
        extra_http_headers: Optional[Dict[str, str]] = None,
    ) -> APIRequestContext:
        """
        Create a tracked request context.

        Args:
            base_url: Prefix for relative request URLs
            extra_http_headers: Headers sent with every request

        Returns:
            APIRequestContext, disposed on close() at the latest
        """
        if not self._playwright:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        context = await self._playwright.request.new_context(
            base_url=base_url,
            extra_http_headers=extra_http_headers,
            timeout=self.timeout,
            ignore_https_errors=self.ignore_https_errors,
        )
        self._contexts.append(context)
        return context

    async def authenticated_request_context(
        self,
        token: str,
        base_url: Optional[str] = None,
    ) -> APIRequestContext:
        """
        Create a request context that sends ``Authorization: Bearer <token>``
        on every request for its whole lifetime. The token is never refreshed.
        """
        return await self.new_request_context(
            base_url=base_url,
            extra_http_headers=bearer_headers(token),
        )

    async def dispose_context(self, context: APIRequestContext) -> None:
        """Dispose one context early."""
        if context in self._contexts:
            self._contexts.remove(context)
            await context.dispose()

    async def close(self):
        """Dispose all contexts and stop the driver."""
        while self._contexts:
            context = self._contexts.pop()
            await context.dispose()

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def playwright(self) -> Playwright:
        if not self._playwright:
            raise RuntimeError("Client not connected")
        return self._playwright

    @property
    def open_contexts(self) -> int:
        return len(self._contexts)


@asynccontextmanager
async def request_session(
    base_url: str,
    token: Optional[str] = None,
    timeout: Optional[int] = None,
):
    """
    Context manager for a one-off request context.

    Args:
        base_url: API base URL
        token: Bearer token to attach (None = unauthenticated)
        timeout: Request timeout in milliseconds

    Yields:
        APIRequestContext ready for requests
    """
    client = PlaywrightClient(timeout=timeout)
    await client.connect()

    try:
        if token:
            request = await client.authenticated_request_context(token, base_url)
        else:
            request = await client.new_request_context(base_url)
        yield request
    finally:
        await client.close()
