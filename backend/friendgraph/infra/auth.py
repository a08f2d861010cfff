"""Authentication helpers for FastAPI endpoints.

- Bearer JWTs are verified (HS256) using settings.secret_key.
- The X-User-Id header is only respected in development.
- Either way the caller id must parse as a UUID, otherwise the request is
  rejected with 401 before any query runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from friendgraph.infra import jwt as jwt_helper
from friendgraph.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str


_bearer_scheme = HTTPBearer(auto_error=False)


def _invalid_token() -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def verify_access_jwt(token: str) -> AuthenticatedUser:
	try:
		user_id = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise _invalid_token() from None
	return AuthenticatedUser(id=str(user_id))


def _dev_header_user(x_user_id: str) -> AuthenticatedUser:
	try:
		user_id = UUID(x_user_id.strip())
	except ValueError:
		raise _invalid_token() from None
	return AuthenticatedUser(id=str(user_id))


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow a plain X-User-Id header. In all other environments
	the header is ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		return _dev_header_user(x_user_id)

	raise _invalid_token()
