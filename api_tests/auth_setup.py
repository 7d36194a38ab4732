#!/usr/bin/env python3
"""One-time setup step: log in and persist the token for later tests.

Runs as the ``auth_setup`` pytest fixture or standalone:

    python -m api_tests.auth_setup --auth-file playwright/.auth/user.json

Nothing is written when the login fails.
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from api_tests.auth import AuthenticationError, acquire_token
from api_tests.auth_state import CredentialStore
from api_tests.config import settings
from api_tests.playwright_client import PlaywrightClient

logger = logging.getLogger(__name__)


async def authenticate(
    client: PlaywrightClient,
    base_url: str,
    email: str,
    password: str,
    store: CredentialStore,
) -> str:
    """Acquire a token and save it to the store.

    Returns:
        The persisted token

    Raises:
        AuthenticationError: If login fails (store untouched)
        OSError: If the token file cannot be written
    """
    context = await client.new_request_context(base_url=base_url)
    try:
        token = await acquire_token(context, email, password)
    finally:
        await client.dispose_context(context)

    store.save(token)
    return token


async def _run(args: argparse.Namespace) -> str:
    store = CredentialStore(args.auth_file)
    async with PlaywrightClient() as client:
        return await authenticate(client, args.base_url, args.email, args.password, store)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Log in and persist a bearer token")
    parser.add_argument(
        "--base-url",
        default=settings.base_url,
        help=f"API base URL (default: {settings.base_url})",
    )
    parser.add_argument(
        "--email",
        default=settings.email,
        help="Login email (default: API_EMAIL)",
    )
    parser.add_argument(
        "--password",
        default=settings.password,
        help="Login password (default: API_PASSWORD)",
    )
    parser.add_argument(
        "--auth-file",
        default=str(settings.auth_file),
        help=f"Token file to write (default: {settings.auth_file})",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(_run(args))
    except AuthenticationError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("Token written to %s", args.auth_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
