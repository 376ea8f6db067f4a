"""Object storage uploads for content attachments."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional, Sequence

import httpx

from agora.content.domain import models
from agora.content.domain.exceptions import UpstreamError, ValidationError
from agora.obs import metrics as obs_metrics
from agora.settings import settings

logger = logging.getLogger(__name__)

_ALLOWED_CONTEXT_TAGS = {"club", "node"}


@dataclass(slots=True)
class UploadedFile:
	"""A file received from the client together with its declared metadata."""

	content: bytes
	filename: str
	mimetype: str
	size: Optional[int] = None

	@property
	def declared_size(self) -> int:
		return self.size if self.size is not None else len(self.content)


@dataclass(slots=True)
class UploadResult:
	key: str
	url: str


def _generate_key(filename: str, context_tag: str) -> str:
	extension = PurePath(filename).suffix.lower()
	return f"{context_tag}/{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"


class UploadService:
	"""PUTs objects to the configured storage endpoint."""

	def __init__(self, client: httpx.AsyncClient | None = None) -> None:
		self._client = client

	async def upload(self, content: bytes, filename: str, mimetype: str, context_tag: str) -> UploadResult:
		if context_tag not in _ALLOWED_CONTEXT_TAGS:
			raise ValidationError("Unsupported upload context.")
		key = _generate_key(filename, context_tag)
		headers = {"Content-Type": mimetype}
		if settings.upload_auth_token:
			headers["Authorization"] = f"Bearer {settings.upload_auth_token}"
		target = f"{settings.upload_endpoint.rstrip('/')}/{key}"
		try:
			if self._client is not None:
				response = await self._client.put(target, content=content, headers=headers)
			else:
				async with httpx.AsyncClient(timeout=settings.upload_timeout_seconds) as client:
					response = await client.put(target, content=content, headers=headers)
			response.raise_for_status()
		except httpx.HTTPError as exc:
			logger.error("upload_failed", extra={"key": key, "error": str(exc)})
			obs_metrics.inc_upload("error")
			raise UpstreamError("Upload failed, please try again later.") from exc
		obs_metrics.inc_upload("ok")
		return UploadResult(key=key, url=settings.public_upload_url(key))

	async def upload_many(self, files: Sequence[UploadedFile], context_tag: str) -> list[models.FileObject]:
		"""Upload concurrently; results are matched to ``files`` by position."""
		if not files:
			return []
		results = await asyncio.gather(
			*(self.upload(item.content, item.filename, item.mimetype, context_tag) for item in files)
		)
		return [
			models.FileObject(
				url=result.url,
				original_name=item.filename,
				mimetype=item.mimetype,
				size=item.declared_size,
			)
			for item, result in zip(files, results)
		]
