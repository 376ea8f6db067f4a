"""AsyncPG pool management for the backend."""

from __future__ import annotations

import json
from typing import Awaitable, Callable, Optional, TypeVar

import asyncpg

from agora.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None

T = TypeVar("T")


async def _init_connection(conn: asyncpg.Connection) -> None:
	# List-shaped content fields are stored as JSONB; decode them to Python values.
	await conn.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")
	await conn.set_type_codec("json", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
			init=_init_connection,
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None


async def run_atomically(work: Callable[[asyncpg.Connection], Awaitable[T]]) -> T:
	"""Run ``work`` on one connection inside a transaction.

	The transaction commits when ``work`` returns and rolls back when it raises;
	the exception is re-raised unchanged.
	"""
	pool = await get_pool()
	async with pool.acquire() as conn:
		async with conn.transaction():
			return await work(conn)
