"""JSON logging with per-request context.

Request fields are kept in one context variable so every record emitted while
serving a request carries them without threading a logger adapter through the
call stack. Keys that may hold credentials or a friend's profile are redacted.
"""

from __future__ import annotations

import json
import logging
import random
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from friendgraph.settings import settings

REQUEST_ID_ATTR = "request_id"

_LOGGER_NAME = "friendgraph"

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("friendgraph_log_context", default={})

# Context key -> name in the emitted payload.
_CONTEXT_FIELDS = {"request_id": "request_id", "route": "route", "user_id": "user_id", "client_ip": "ip"}

_REDACT_IF_CONTAINS = ("token", "secret", "authorization", "password", "phone", "full_name", "fullname", "body")

_MAX_STRING_LENGTH = 256
_MAX_COLLECTION_ITEMS = 10

_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge the non-empty ``fields`` into the current log context."""
	merged = dict(_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _is_sensitive(key: str) -> bool:
	lowered = key.lower()
	return any(fragment in lowered for fragment in _REDACT_IF_CONTAINS)


def _scrub(key: str, value: Any) -> Any:
	if _is_sensitive(key):
		return "[redacted]"
	return _clip(value)


def _clip(value: Any) -> Any:
	if isinstance(value, str):
		if len(value) > _MAX_STRING_LENGTH:
			return value[:_MAX_STRING_LENGTH] + "…"
		return value
	if isinstance(value, Mapping):
		entries = list(value.items())
		clipped = {str(key): _scrub(str(key), nested) for key, nested in entries[:_MAX_COLLECTION_ITEMS]}
		if len(entries) > _MAX_COLLECTION_ITEMS:
			clipped["…"] = f"+{len(entries) - _MAX_COLLECTION_ITEMS} keys"
		return clipped
	if isinstance(value, (list, tuple, set, frozenset)):
		items = [_clip(item) for item in value]
		if len(items) > _MAX_COLLECTION_ITEMS:
			items = items[:_MAX_COLLECTION_ITEMS] + ["…"]
		return items
	return value


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per record: fixed service fields, request context, then extras."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for key, value in _CONTEXT.get().items():
			payload[_CONTEXT_FIELDS.get(key, key)] = value
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		payload.update(
			{key: _scrub(key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS}
		)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Pass a ``LOG_SAMPLING_RATE_INFO`` share of info records; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(rate, 0.0)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	# The middleware already emits one http_request line per request.
	logging.getLogger("uvicorn.access").disabled = True
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
