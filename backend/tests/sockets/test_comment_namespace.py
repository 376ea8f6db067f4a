from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import socketio

from agora.content.domain.models import ContentKind, EntityRef
from agora.content.sockets import server as socket_server
from agora.content.sockets.namespaces.comments import CommentNamespace


def _environ(**query: str) -> dict:
	query_string = "&".join(f"{key}={value}" for key, value in query.items()).encode()
	return {"asgi.scope": {"headers": [], "query_string": query_string}}


def _namespace(store) -> CommentNamespace:
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = CommentNamespace(repository=store)
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	namespace.enter_room = AsyncMock()
	namespace.leave_room = AsyncMock()
	return namespace


@pytest.mark.asyncio
async def test_connect_requires_user(store):
	namespace = _namespace(store)

	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", _environ(entityType="issue", entityId=str(uuid4())))


@pytest.mark.asyncio
async def test_connect_rejects_unknown_entity(store):
	namespace = _namespace(store)

	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event(
			"connect", "sid-1", _environ(userId=str(uuid4()), entityType="issue", entityId=str(uuid4()))
		)
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event(
			"connect", "sid-1", _environ(userId=str(uuid4()), entityType="poll", entityId=str(uuid4()))
		)


@pytest.mark.asyncio
async def test_connect_joins_entity_room(store):
	namespace = _namespace(store)
	item = store.seed(ContentKind.DEBATE)

	await namespace.trigger_event(
		"connect", "sid-1", _environ(userId=str(uuid4()), entityType="debate", entityId=str(item.id))
	)

	namespace.enter_room.assert_awaited_once_with("sid-1", f"comment:debate:{item.id}")
	assert namespace.emit.await_args.args[0] == "comment:ready"

	await namespace.trigger_event("disconnect", "sid-1")
	namespace.leave_room.assert_awaited_once_with("sid-1", f"comment:debate:{item.id}")
	assert namespace.get_user("sid-1") is None


@pytest.mark.asyncio
async def test_emit_comment_swallows_relay_failures(store):
	namespace = _namespace(store)
	namespace.emit = AsyncMock(side_effect=RuntimeError("socket down"))
	original = socket_server._comment_ns
	socket_server.set_namespace(namespace)
	entity = EntityRef(kind=ContentKind.ISSUE, id=uuid4())
	try:
		await socket_server.emit_comment(entity, "commentAdded", {"id": "c1"})
	finally:
		socket_server.set_namespace(original)

	namespace.emit.assert_awaited_once_with("commentAdded", {"id": "c1"}, room=f"comment:issue:{entity.id}")
