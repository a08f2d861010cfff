"""HS256 access tokens carrying the caller's user id in ``sub``."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from uuid import UUID

import jwt
from jwt import InvalidTokenError

from friendgraph.settings import settings


ISSUER = "friendgraph-api"
AUDIENCE = "friendgraph-clients"

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud"]


def encode_access(user_id: Union[str, UUID], *, ttl_seconds: Optional[int] = None) -> str:
    issued_at = datetime.now(timezone.utc)
    ttl = settings.access_token_ttl_seconds if ttl_seconds is None else ttl_seconds
    claims = {
        "sub": str(user_id),
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=ttl),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=_ALGORITHM)


def decode_access(token: str) -> UUID:
    """Validate ``token`` and return the user id it was issued for.

    Raises ``jwt.InvalidTokenError`` for a bad signature, an expired or
    foreign token, and for a ``sub`` that is not a user id.
    """
    claims = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[_ALGORITHM],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": _REQUIRED_CLAIMS},
    )
    try:
        return UUID(str(claims["sub"]))
    except ValueError as exc:
        raise InvalidTokenError("sub_not_a_user_id") from exc
