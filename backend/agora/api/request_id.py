"""Request id lookup for error responses."""

from __future__ import annotations

from fastapi import Request

from agora.obs import logging as obs_logging


def get_request_id(request: Request | None = None, default: str = "unknown") -> str:
	"""Return the id bound by the observability middleware, else the header, else ``default``."""
	rid = obs_logging._REQUEST_ID.get()
	if rid:
		return rid
	if request is not None:
		state_id = getattr(request.state, "request_id", None)
		if state_id:
			return str(state_id)
		header = request.headers.get("X-Request-Id")
		if header:
			return header
	return default
