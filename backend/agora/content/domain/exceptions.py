"""Custom exceptions for content services."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ContentError(Exception):
	"""Base class for content workflow errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "The request could not be processed."

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class ValidationError(ContentError):
	"""Caller input is missing a required field or contradicts itself."""

	status_code = _HTTP_422
	detail = "Invalid request."


class NotAMemberError(ContentError):
	"""The caller holds no membership in the club or node being acted on."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "User is not a member of the specified entity."


class UnauthorizedError(ContentError):
	"""Role or ownership does not allow the action."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "You are not authorized to perform this action."


class NotFoundError(ContentError):
	"""Referenced entity does not exist."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "Resource not found."


class TransactionError(ContentError):
	"""A multi-row write was rolled back. Retrying the whole operation is safe."""

	status_code = status.HTTP_503_SERVICE_UNAVAILABLE
	detail = "The operation could not be completed, please retry."


class UpstreamError(ContentError):
	"""File storage or another outbound dependency failed."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "Upstream service failed, please try again later."
