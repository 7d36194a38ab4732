"""Get the current user with the token persisted by the setup step."""
import pytest

from api_tests.auth import CURRENT_USER_PATH, bearer_headers


pytestmark = pytest.mark.asyncio


async def test_authenticated_api_test(api_request, storage_state_token):
    """Persisted token works on the protected endpoint."""
    assert storage_state_token

    response = await api_request.get(
        CURRENT_USER_PATH,
        headers=bearer_headers(storage_state_token),
    )

    assert response.status == 200, await response.text()
    user_data = await response.json()
    assert user_data.get("email")
    assert user_data.get("id")


async def test_persisted_token_is_readable_repeatedly(auth_setup, credential_store):
    """Persisted -> Consumed is repeatable; nothing consumes the file."""
    assert credential_store.load() == auth_setup
    assert credential_store.load() == auth_setup
