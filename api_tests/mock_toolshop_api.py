"""Mock Toolshop API server for offline test runs.

Implements the two endpoints the suite talks to:
- POST /users/login: Authenticate and get a bearer token
- GET /users/me: Return the user the bearer token belongs to

Tokens live in process memory and stay valid until reset_mock_state().
"""
from __future__ import annotations

import secrets
from typing import Any, Dict, List, Tuple

from flask import Flask, Response, jsonify, request

from api_tests.config import DEFAULT_EMAIL, DEFAULT_PASSWORD, settings

# Mock data storage
TOKENS: Dict[str, str] = {}  # access_token -> email
LOGIN_CALLS: List[str] = []  # email of every login attempt, in order

FORCED_LOGIN_RESPONSE: Dict[str, Any] = {}  # body/status/content_type override

MOCK_USER_ID = "01JA7X0Z3V8M1Y6Q2K4R5T9B7C"
TOKEN_TTL = 300

USERS: Dict[str, Dict[str, Any]] = {
    DEFAULT_EMAIL: {
        "password": DEFAULT_PASSWORD,
        "profile": {
            "id": MOCK_USER_ID,
            "first_name": "John",
            "last_name": "Doe",
            "address": "Test street 98",
            "city": "Vienna",
            "state": None,
            "country": "Austria",
            "postcode": None,
            "phone": None,
            "dob": "1980-02-02",
            "email": DEFAULT_EMAIL,
            "created_at": "2024-10-01 08:00:00",
        },
    },
}


def reset_mock_state() -> None:
    """Forget all issued tokens and recorded logins."""
    TOKENS.clear()
    LOGIN_CALLS.clear()
    FORCED_LOGIN_RESPONSE.clear()


def issued_tokens() -> List[str]:
    return list(TOKENS)


def force_login_response(
    body: str,
    status: int = 200,
    content_type: str = "application/json",
) -> None:
    """Make /users/login answer with a raw body until the override is cleared."""
    FORCED_LOGIN_RESPONSE.update(body=body, status=status, content_type=content_type)


def clear_forced_login_response() -> None:
    FORCED_LOGIN_RESPONSE.clear()


def build_user_table() -> Dict[str, Dict[str, Any]]:
    """Known users plus the account the suite is configured to log in with.

    Returns a fresh dict; the module-level USERS table is never modified.
    """
    users = {email: dict(user) for email, user in USERS.items()}
    if settings.email not in users:
        profile = dict(USERS[DEFAULT_EMAIL]["profile"], email=settings.email)
        users[settings.email] = {"password": settings.password, "profile": profile}
    return users


def create_mock_api_app() -> Flask:
    """Create and configure the mock Toolshop API Flask app."""
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.json.sort_keys = False

    users = build_user_table()

    def _bearer_token() -> str | None:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return None
        return token.strip()

    @app.route('/', methods=['GET'])
    def health():
        return jsonify({"status": "ok"}), 200

    @app.route('/users/login', methods=['POST'])
    def login() -> Tuple[Any, int]:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Invalid JSON payload"}), 400

        email = data.get("email")
        password = data.get("password")
        LOGIN_CALLS.append(str(email))

        if FORCED_LOGIN_RESPONSE:
            forced = FORCED_LOGIN_RESPONSE
            return Response(forced["body"], content_type=forced["content_type"]), forced["status"]

        user = users.get(email) if isinstance(email, str) else None
        if user is None or user["password"] != password:
            return jsonify({"error": "Unauthorized"}), 401

        token = secrets.token_urlsafe(32)
        TOKENS[token] = email
        return jsonify({
            "access_token": token,
            "token_type": "bearer",
            "expires_in": TOKEN_TTL,
        }), 200

    @app.route('/users/me', methods=['GET'])
    def current_user() -> Tuple[Any, int]:
        token = _bearer_token()
        if token is None or token not in TOKENS:
            return jsonify({"message": "Unauthorized"}), 401

        user = users.get(TOKENS[token])
        if user is None:
            return jsonify({"message": "Unauthorized"}), 401
        return jsonify(user["profile"]), 200

    return app
