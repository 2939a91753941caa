"""Superuser login and token checks for the HTTP API."""

from __future__ import annotations

import hmac
import json
import logging
import secrets
import time
from collections.abc import Callable

import jwt
from werkzeug.wrappers import Request, Response

log = logging.getLogger(__name__)

SUPERUSER_SUBJECT = "superuser"
TOKEN_PREFIX = "Token "

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
_TEXT = "text/plain; charset=utf-8"


class TokenIssuer:
    """Issues and checks HMAC-signed superuser tokens that expire after ``ttl`` seconds.

    Without an explicit ``secret`` a random one is made, so tokens are valid only
    for this issuer.
    """

    def __init__(
        self,
        ttl: float,
        secret: bytes | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl
        self._secret = secret if secret is not None else secrets.token_bytes(32)
        self._clock = clock

    def generate_superuser_token(self) -> str:
        """Return a new signed token for the superuser."""
        now = self._clock()
        claims = {
            "sub": SUPERUSER_SUBJECT,
            "iat": int(now),
            "exp": int(now + self._ttl),
        }
        return jwt.encode(claims, self._secret, algorithm="HS256")

    def is_superuser_token(self, token: str) -> bool:
        """Return True if ``token`` is correctly signed, unexpired and for the superuser."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=_HMAC_ALGORITHMS,
                options={"verify_iat": False},
            )
        except jwt.PyJWTError:
            return False
        return claims.get("sub") == SUPERUSER_SUBJECT


def _text(body: str, status: int) -> Response:
    return Response(body, status=status, content_type=_TEXT)


def _unauthorized() -> Response:
    return _text("unauthorized", 401)


def _read_login(body: bytes) -> tuple[str, str] | None:
    """Parse a ``{"name": ..., "password": ...}`` body; None if it is malformed."""
    try:
        text = body.decode("utf-8").lstrip()
        value, _ = json.JSONDecoder().raw_decode(text)
    except (UnicodeDecodeError, ValueError):
        return None
    if value is None:
        return "", ""
    if not isinstance(value, dict):
        return None
    fields = []
    for key in ("name", "password"):
        item = value.get(key)
        if item is None:
            item = ""
        if not isinstance(item, str):
            return None
        fields.append(item)
    return fields[0], fields[1]


def _same(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def login_app(admin_user: str, admin_password: str, issuer: TokenIssuer):
    """WSGI app that answers valid admin credentials with a superuser token."""

    @Request.application
    def app(request: Request) -> Response:
        if request.method != "POST":
            return _text("method not allowed\n", 405)
        credentials = _read_login(request.get_data())
        if credentials is None:
            return _text("bad request\n", 400)
        name, given = credentials
        user_ok = _same(name, admin_user)
        secret_ok = _same(given, admin_password)
        if not (user_ok and secret_ok):
            return _unauthorized()
        try:
            token = issuer.generate_superuser_token()
        except Exception:
            log.exception("failed to generate token")
            return _text("internal error\n", 500)
        return _text(token, 200)

    return app


def require_superuser(app, issuer: TokenIssuer):
    """Wrap WSGI ``app`` so it runs only with an ``Authorization: Token <jwt>`` header."""

    def guarded(environ, start_response):
        header = environ.get("HTTP_AUTHORIZATION", "").strip()
        token = header[len(TOKEN_PREFIX):].strip() if header.startswith(TOKEN_PREFIX) else ""
        if not token or not issuer.is_superuser_token(token):
            return _unauthorized()(environ, start_response)
        return app(environ, start_response)

    return guarded