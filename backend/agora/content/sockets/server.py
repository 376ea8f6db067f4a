"""Entry-point utilities for emitting via content Socket.IO namespaces."""

from __future__ import annotations

import logging
from typing import Optional

import socketio

from agora.content.domain.models import EntityRef
from agora.content.sockets.namespaces.comments import CommentNamespace
from agora.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

_comment_ns: Optional[CommentNamespace] = None


def set_namespace(comments: Optional[CommentNamespace]) -> None:
	global _comment_ns
	_comment_ns = comments


def register(server: socketio.AsyncServer) -> CommentNamespace:
	"""Register content namespaces on the global Socket.IO server."""
	comment_ns = CommentNamespace()
	server.register_namespace(comment_ns)
	set_namespace(comment_ns)
	return comment_ns


async def emit_comment(entity: EntityRef, event: str, payload: dict) -> None:
	"""Emit to the entity's comment room. Failures are logged, never raised."""
	if _comment_ns is None:
		return
	obs_metrics.socket_event(_comment_ns.namespace, event)
	try:
		await _comment_ns.emit(event, payload, room=CommentNamespace.room_name(entity))
	except Exception:
		obs_metrics.socket_emit_failed(_comment_ns.namespace, event)
		logger.exception(
			"socket_emit_failed",
			extra={"event": event, "entity_kind": entity.kind.value, "entity_id": str(entity.id)},
		)
