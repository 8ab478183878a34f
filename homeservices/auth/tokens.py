"""Session token codec built on the signed-token primitives."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from homeservices.auth.models import SessionClaims
from homeservices.core.security import build_signed_token, decode_signed_token

LOGGER = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60


class TokenCodec:
    """Issue and parse stateless HS256 session tokens.

    ``parse`` fails closed: malformed, tampered or expired tokens yield ``None``
    rather than an exception, so callers never use exceptions for control flow.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, identity: Mapping[str, Any]) -> str:
        """Sign identity fields with injected ``iat`` and ``exp`` claims."""
        now = int(self._clock())
        claims = SessionClaims(
            id=identity["id"],
            email=identity["email"],
            name=identity["name"],
            user_type=identity["user_type"],
            verified=bool(identity.get("verified")),
            iat=now,
            exp=now + self._ttl_seconds,
        )
        return build_signed_token(
            claims.model_dump(mode="json", by_alias=True), self._secret_key
        )

    def parse(self, token: str) -> SessionClaims | None:
        """Return verified claims or ``None`` for any invalid token."""
        if not isinstance(token, str) or not token:
            return None
        try:
            payload = decode_signed_token(token, self._secret_key)
        except ValueError as exc:
            LOGGER.debug("token_rejected: %s", exc)
            return None

        try:
            claims = SessionClaims.model_validate(payload)
        except ValidationError:
            LOGGER.debug("token_rejected: claims do not match schema")
            return None

        if claims.expires_at < int(self._clock()):
            LOGGER.debug("token_rejected: expired", extra={"user_id": claims.id})
            return None
        return claims
