"""Shared configuration for the API test suite.

Every value is resolved in the same order:
1. Environment variable (when set and non-empty)
2. .env.defaults at the repository root
3. Built-in default

Set API_TARGET=live to run against API_BASE_URL; the default target
("mock") serves the suite from the in-process mock Toolshop API.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, Literal
from urllib.parse import urljoin

from api_tests.env_defaults import get_env_default

ApiTarget = Literal["mock", "live"]

DEFAULT_BASE_URL = "https://api-with-bugs.practicesoftwaretesting.com"
DEFAULT_EMAIL = "admin@practicesoftwaretesting.com"
DEFAULT_PASSWORD = "welcome01"
DEFAULT_AUTH_FILE = "playwright/.auth/user.json"
DEFAULT_TIMEOUT_MS = 30000

AUTH_STRATEGIES = ("ephemeral", "shared-memory", "persisted")
API_TARGETS = ("mock", "live")


def _lookup(key: str, default: str) -> str:
    """Return the first non-empty value from env, .env.defaults, default."""
    return os.getenv(key) or get_env_default(key) or default


@dataclass
class ApiTargetProfile:
    """Concrete host + credentials the suite authenticates against."""

    base_url: str
    email: str
    password: str
    auth_file: Path
    auth_strategy: str = "ephemeral"
    target: str = "mock"
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    ignore_https_errors: bool = False


def _parse_strategy(value: str) -> str:
    strategy = value.strip().lower()
    if strategy not in AUTH_STRATEGIES:
        raise ValueError(
            f"Invalid API_AUTH_STRATEGY: {value}\n"
            f"Must be one of: {', '.join(AUTH_STRATEGIES)}"
        )
    return strategy


def _parse_target(value: str) -> ApiTarget:
    target = value.strip().lower()
    if target not in API_TARGETS:
        raise ValueError(
            f"Invalid API_TARGET: {value}\n"
            f"Must be 'mock' or 'live'"
        )
    return target  # type: ignore


def _parse_timeout(value: str) -> int:
    try:
        timeout = int(value)
    except ValueError:
        raise ValueError(f"Invalid API_TIMEOUT_MS: {value!r} (expected milliseconds)") from None
    if timeout <= 0:
        raise ValueError(f"Invalid API_TIMEOUT_MS: {value!r} (must be positive)")
    return timeout


def load_profile() -> ApiTargetProfile:
    """Build a profile from the environment, reading it fresh."""
    ignore_https_str = _lookup("API_IGNORE_HTTPS_ERRORS", "0")
    return ApiTargetProfile(
        base_url=_lookup("API_BASE_URL", DEFAULT_BASE_URL),
        email=_lookup("API_EMAIL", DEFAULT_EMAIL),
        password=_lookup("API_PASSWORD", DEFAULT_PASSWORD),
        auth_file=Path(_lookup("API_AUTH_FILE", DEFAULT_AUTH_FILE)),
        auth_strategy=_parse_strategy(_lookup("API_AUTH_STRATEGY", "ephemeral")),
        target=_parse_target(_lookup("API_TARGET", "mock")),
        timeout_ms=_parse_timeout(_lookup("API_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
        ignore_https_errors=ignore_https_str.lower() in {"1", "true"},
    )


class ApiTestConfig:
    """Configuration for the API suite, loaded once at import.

    Tests read values through the properties below; ``override()``
    swaps in a modified copy of the active profile for the duration of
    a ``with`` block.
    """

    def __init__(self) -> None:
        self._active: ApiTargetProfile = load_profile()
        print(
            f"[CONFIG] target={self._active.target} base_url={self._active.base_url} "
            f"strategy={self._active.auth_strategy}"
        )

    @property
    def profile(self) -> ApiTargetProfile:
        return self._active

    @property
    def base_url(self) -> str:
        return self._active.base_url

    @property
    def email(self) -> str:
        return self._active.email

    @property
    def password(self) -> str:
        return self._active.password

    @property
    def auth_file(self) -> Path:
        return self._active.auth_file

    @property
    def auth_strategy(self) -> str:
        return self._active.auth_strategy

    @property
    def target(self) -> ApiTarget:
        return self._active.target  # type: ignore

    @property
    def timeout_ms(self) -> int:
        return self._active.timeout_ms

    @property
    def ignore_https_errors(self) -> bool:
        return self._active.ignore_https_errors

    @property
    def is_live(self) -> bool:
        return self._active.target == "live"

    @contextmanager
    def override(self, **fields) -> Iterator[ApiTargetProfile]:
        """Temporarily replace fields of the active profile.

        Strategy, target and timeout values are validated the same way the
        environment is.
        """
        if "auth_strategy" in fields:
            fields["auth_strategy"] = _parse_strategy(fields["auth_strategy"])
        if "target" in fields:
            fields["target"] = _parse_target(fields["target"])
        if "timeout_ms" in fields:
            fields["timeout_ms"] = _parse_timeout(str(fields["timeout_ms"]))
        if "auth_file" in fields:
            fields["auth_file"] = Path(fields["auth_file"])
        previous = self._active
        self._active = replace(previous, **fields)
        try:
            yield self._active
        finally:
            self._active = previous

    def reload(self) -> None:
        """Re-read the environment into the active profile."""
        self._active = load_profile()

    def url(self, path: str, base_url: str | None = None) -> str:
        """Return an absolute URL for the provided path."""
        base = base_url or self.base_url
        return urljoin(base.rstrip("/") + "/", path.lstrip("/"))


# Singleton instance - initialized on first import
settings = ApiTestConfig()
