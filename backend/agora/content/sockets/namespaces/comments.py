"""Socket.IO namespace relaying comment activity on content items."""

from __future__ import annotations

from typing import Dict, Optional
from uuid import UUID

from agora.content.domain import repo as repo_module
from agora.content.domain.exceptions import NotFoundError
from agora.content.domain.kinds import resolve_kind
from agora.content.domain.models import EntityRef
from agora.content.sockets.namespaces.base import BaseContentNamespace
from agora.obs import metrics as obs_metrics


class CommentNamespace(BaseContentNamespace):
	"""Clients join one room per content item to receive ``commentAdded``."""

	def __init__(self, *, repository: repo_module.ContentRepository | None = None) -> None:
		super().__init__("/comments")
		self.repo = repository or repo_module.ContentRepository()
		self._rooms: Dict[str, str] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = self._resolve_user(environ, auth)
			entity = await self._resolve_entity(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		room = self.room_name(entity)
		self._sessions[sid] = user
		self._rooms[sid] = room
		await self.enter_room(sid, room)
		await self.emit("comment:ready", {"entityType": entity.kind.value, "entityId": str(entity.id)}, room=sid)

	async def on_disconnect(self, sid: str, reason: Optional[str] = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		room = self._rooms.pop(sid, None)
		if room:
			await self.leave_room(sid, room)
		self._sessions.pop(sid, None)

	async def _resolve_entity(self, environ: dict, auth: Optional[dict]) -> EntityRef:
		kind_raw = self._handshake_value(environ, auth, "entityType")
		id_raw = self._handshake_value(environ, auth, "entityId")
		if not kind_raw or not id_raw:
			raise ConnectionRefusedError("missing entity")
		try:
			spec = resolve_kind(kind_raw)
			item_id = UUID(id_raw)
		except (NotFoundError, ValueError) as exc:
			raise ConnectionRefusedError("invalid entity") from exc
		item = await self.repo.get(spec.kind, item_id)
		if item is None or item.is_deleted:
			raise ConnectionRefusedError("entity_not_found")
		return EntityRef(kind=spec.kind, id=item_id)

	@staticmethod
	def room_name(entity: EntityRef) -> str:
		return f"comment:{entity.kind.value}:{entity.id}"
