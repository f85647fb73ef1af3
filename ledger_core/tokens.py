"""Stateless, signed session tokens bound to an account id."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable

from jose import jwt
from jose.exceptions import JOSEError

from .exceptions import InvalidSignatureError, TokenExpiredError
from .settings import Settings

ALGORITHM = "HS256"

# Expiry is checked here so the boundary is exactly ``now >= exp``.
_DECODE_OPTIONS = {
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_aud": False,
}


class TokenService:
    """Issues and validates HS256 tokens carrying ``{sub, iat, exp}``."""

    def __init__(
        self,
        settings: Settings,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._secret = settings.secret_key
        self._lifetime = int(settings.token_lifetime.total_seconds())
        self._clock = clock

    @property
    def lifetime_seconds(self) -> int:
        return self._lifetime

    def issue_token(self, account_id: str) -> str:
        now = self._clock().timestamp()
        # exp rounds up so a sub-second issue time never shortens the lifetime.
        claims = {
            "sub": account_id,
            "iat": math.floor(now),
            "exp": math.ceil(now + self._lifetime),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def validate_token(self, token: object) -> str:
        if not isinstance(token, str) or not token:
            raise InvalidSignatureError("Token is missing or malformed")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
        except JOSEError as exc:
            raise InvalidSignatureError("Token signature is invalid") from exc

        account_id = claims.get("sub")
        expires_at = claims.get("exp")
        if not isinstance(account_id, str) or not account_id:
            raise InvalidSignatureError("Token subject is missing")
        if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
            raise InvalidSignatureError("Token expiry is missing")

        if self._clock().timestamp() >= expires_at:
            raise TokenExpiredError("Token has expired")
        return account_id
