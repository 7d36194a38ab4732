"""
Authenticated session management for API tests.

Hands out Playwright request contexts that carry a bearer token, using
one of three token strategies:

- ephemeral: every session logs in on its own
- shared-memory: the first session logs in, the token is kept on the
  manager and reused by every later session of that manager
- persisted: the token is read from the CredentialStore written by the
  setup step (api_tests.auth_setup)
"""
from enum import Enum
from typing import List, Optional
import logging

from playwright.async_api import APIRequestContext

from api_tests.auth import AuthenticationError, TokenState, acquire_token
from api_tests.auth_state import CredentialStore
from api_tests.playwright_client import PlaywrightClient

logger = logging.getLogger(__name__)


class AuthStrategy(str, Enum):
    """How a session obtains its token."""
    EPHEMERAL = "ephemeral"
    SHARED_MEMORY = "shared-memory"
    PERSISTED = "persisted"

    @classmethod
    def parse(cls, value: "str | AuthStrategy") -> "AuthStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown auth strategy {value!r} (expected one of: {valid})") from None


class AuthSessionManager:
    """
    Creates authenticated request contexts for tests.

    The manager is the only holder of a shared-memory token. Fixtures
    that need that token receive the manager (or the token itself) as an
    argument; nothing is stashed in module globals.

    Usage:
        async with AuthSessionManager(client, base_url, email, password) as manager:
            request = await manager.authenticated_session()
            response = await request.get('/users/me')
    """

    def __init__(
        self,
        client: PlaywrightClient,
        base_url: str,
        email: str,
        password: str,
        strategy: "str | AuthStrategy" = AuthStrategy.EPHEMERAL,
        store: Optional[CredentialStore] = None,
    ):
        """
        Args:
            client: Connected PlaywrightClient
            base_url: API base URL
            email: Login email
            password: Login password
            strategy: Token strategy (see module docstring)
            store: Credential store for the persisted strategy
                (default: CredentialStore() at settings.auth_file)
        """
        self.client = client
        self.base_url = base_url
        self.email = email
        self.password = password
        self.strategy = AuthStrategy.parse(strategy)
        self.store = store or CredentialStore()
        self.sessions: List[APIRequestContext] = []
        self.login_count = 0
        self._shared_token: Optional[str] = None
        self._state = TokenState.UNAUTHENTICATED

    def __repr__(self) -> str:
        return (
            f"AuthSessionManager(strategy={self.strategy.value}, "
            f"state={self._state.value}, sessions={len(self.sessions)})"
        )

    async def __aenter__(self) -> 'AuthSessionManager':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()

    @property
    def state(self) -> TokenState:
        return self._state

    async def login(self) -> str:
        """
        Acquire a fresh token through a throwaway request context.

        Raises:
            AuthenticationError: If the login call fails
        """
        self._state = TokenState.ACQUIRING
        context = None
        try:
            context = await self.client.new_request_context(base_url=self.base_url)
            token = await acquire_token(context, self.email, self.password)
        except BaseException:
            self._state = TokenState.UNAUTHENTICATED
            raise
        finally:
            if context is not None:
                await self.client.dispose_context(context)

        self.login_count += 1
        self._state = TokenState.ACQUIRED
        return token

    async def get_token(self) -> str:
        """Return a token according to the configured strategy."""
        if self.strategy is AuthStrategy.EPHEMERAL:
            token = await self.login()
            self._state = TokenState.IN_MEMORY_ONLY
            return token

        if self.strategy is AuthStrategy.SHARED_MEMORY:
            if self._shared_token is None:
                self._shared_token = await self.login()
                self._state = TokenState.IN_MEMORY_ONLY
                logger.info("Acquired shared token for %s", self.email)
            return self._shared_token

        token = self.store.load()
        if not token:
            raise AuthenticationError(
                f"No token persisted in {self.store.path}; "
                f"run the setup step (python -m api_tests.auth_setup) first"
            )
        self._state = TokenState.PERSISTED
        return token

    async def authenticated_session(self) -> APIRequestContext:
        """
        Create a request context carrying the strategy's token.

        Returns:
            APIRequestContext sending ``Authorization: Bearer <token>``
        """
        token = await self.get_token()
        context = await self.client.authenticated_request_context(token, self.base_url)
        self.sessions.append(context)
        self._state = TokenState.CONSUMED
        logger.debug("Created authenticated session #%d (%s)", len(self.sessions), self.strategy.value)
        return context

    async def close_session(self, context: APIRequestContext) -> None:
        if context in self.sessions:
            self.sessions.remove(context)
            await self.client.dispose_context(context)

    async def close_all(self) -> None:
        """Dispose every session created by this manager."""
        for context in list(self.sessions):
            await self.close_session(context)
        logger.debug("Closed all authenticated sessions")
