"""Authentication helpers for FastAPI endpoints.

A Bearer JWT is required outside development. In development the
``X-User-Id`` header is accepted so local tools can act as any user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from agora.infra import jwt as jwt_helper
from agora.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: UUID
	display_name: Optional[str] = None
	roles: Tuple[str, ...] = ()
	session_id: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def _parse_user_id(raw: object) -> UUID:
	try:
		return UUID(str(raw).strip())
	except (TypeError, ValueError):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode an access JWT into an AuthenticatedUser.

	Roles can be a list of strings or a comma-separated string.
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from None

	display_name = payload.get("name") or payload.get("display_name")
	roles_claim = payload.get("roles") or payload.get("role")
	roles: Tuple[str, ...]
	if isinstance(roles_claim, (list, tuple)):
		roles = tuple(str(r).strip() for r in roles_claim if str(r).strip())
	elif isinstance(roles_claim, str):
		roles = tuple(part.strip() for part in roles_claim.split(",") if part.strip())
	else:
		roles = ()
	session_id = payload.get("sid")
	return AuthenticatedUser(
		id=_parse_user_id(payload.get("sub")),
		display_name=str(display_name) if display_name is not None else None,
		roles=roles,
		session_id=str(session_id) if session_id is not None else None,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=_parse_user_id(x_user_id))
	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
