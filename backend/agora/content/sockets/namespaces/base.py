"""Shared helpers for content Socket.IO namespaces."""

from __future__ import annotations

from typing import Dict, Optional
from urllib.parse import parse_qs
from uuid import UUID

import socketio

from agora.infra.auth import AuthenticatedUser


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class BaseContentNamespace(socketio.AsyncNamespace):
	"""Base namespace that extracts AuthenticatedUser from the handshake."""

	def __init__(self, namespace: str) -> None:
		super().__init__(namespace)
		self._sessions: Dict[str, AuthenticatedUser] = {}

	@staticmethod
	def _handshake_value(environ: dict, auth: Optional[dict], name: str) -> Optional[str]:
		scope = environ.get("asgi.scope", environ)
		payload = auth or environ.get("auth") or scope.get("auth") or {}
		if payload.get(name):
			return str(payload[name])
		params = parse_qs(scope.get("query_string", b"").decode())
		return (params.get(name) or [None])[0]

	def _resolve_user(self, environ: dict, auth: Optional[dict] = None) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		user_id = self._handshake_value(environ, auth, "userId") or _header(scope, "x-user-id")
		if not user_id:
			raise ConnectionRefusedError("missing user id")
		try:
			return AuthenticatedUser(id=UUID(user_id))
		except ValueError as exc:
			raise ConnectionRefusedError("invalid user id") from exc

	def get_user(self, sid: str) -> Optional[AuthenticatedUser]:
		return self._sessions.get(sid)
