"""Per-user bookmark folders over content items."""

from __future__ import annotations

import logging
from uuid import UUID

from agora.content.domain import models
from agora.content.domain import repo as repo_module
from agora.content.domain.exceptions import NotFoundError, ValidationError
from agora.content.domain.kinds import resolve_kind
from agora.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

MAX_FOLDER_TITLE_LENGTH = 120


class BookmarkService:
	def __init__(self, repository: repo_module.ContentRepository | None = None) -> None:
		self.repo = repository or repo_module.ContentRepository()

	async def _require_folder(self, folder_id: UUID, user_id: UUID) -> models.BookmarkFolder:
		# Folders owned by someone else are indistinguishable from missing ones.
		folder = await self.repo.get_bookmark_folder(folder_id, user_id)
		if folder is None:
			raise NotFoundError("Bookmark folder not found.")
		return folder

	async def _require_entity(self, entity: models.EntityRef) -> None:
		spec = resolve_kind(entity.kind)
		item = await self.repo.get(spec.kind, entity.id)
		if item is None or item.is_deleted:
			raise NotFoundError(f"{spec.label} not found.")

	async def create_folder(self, user_id: UUID, title: str) -> models.BookmarkFolder:
		name = (title or "").strip()
		if not name:
			raise ValidationError("Folder title is required.")
		if len(name) > MAX_FOLDER_TITLE_LENGTH:
			raise ValidationError(f"Folder title is limited to {MAX_FOLDER_TITLE_LENGTH} characters.")
		folder = await self.repo.create_bookmark_folder(user_id, name)
		obs_metrics.inc_bookmark("create_folder", "ok")
		logger.info("bookmark_folder_created", extra={"folder_id": str(folder.id), "user_id": str(user_id)})
		return folder

	async def list_folders(self, user_id: UUID) -> list[models.BookmarkFolder]:
		return await self.repo.list_bookmark_folders(user_id)

	async def add_to_folder(
		self,
		user_id: UUID,
		folder_id: UUID,
		entity: models.EntityRef,
	) -> tuple[models.BookmarkFolder, str]:
		"""Add ``entity`` to the folder; bookmarking the same item again is a no-op."""
		folder = await self._require_folder(folder_id, user_id)
		await self._require_entity(entity)
		added = await self.repo.add_bookmark(folder.id, entity)
		obs_metrics.inc_bookmark("add", "added" if added else "present")
		logger.info(
			"bookmark_added",
			extra={
				"folder_id": str(folder.id),
				"entity_kind": entity.kind.value,
				"entity_id": str(entity.id),
				"added": added,
			},
		)
		folder = await self._require_folder(folder_id, user_id)
		return folder, f"Successfully added to {folder.title}"

	async def remove_from_folder(
		self,
		user_id: UUID,
		folder_id: UUID,
		entity: models.EntityRef,
	) -> models.BookmarkFolder:
		folder = await self._require_folder(folder_id, user_id)
		removed = await self.repo.remove_bookmark(folder.id, entity)
		obs_metrics.inc_bookmark("remove", "removed" if removed else "absent")
		if not removed:
			return folder
		return await self._require_folder(folder_id, user_id)
