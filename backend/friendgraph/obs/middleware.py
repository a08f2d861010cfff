"""Request middleware: request ids always, metrics and access logs when enabled."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from friendgraph.obs import logging as obs_logging
from friendgraph.obs import metrics
from friendgraph.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"


def _route_template(request: Request) -> str:
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	def __init__(self, app, *, enabled: bool = True) -> None:
		super().__init__(app)
		self._enabled = enabled
		self._logger = obs_logging.get_logger("friendgraph.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		setattr(request.state, obs_logging.REQUEST_ID_ATTR, request_id)
		if self._enabled and settings.obs_enabled:
			response = await self._observed(request, call_next, request_id)
		else:
			response = await call_next(request)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response

	async def _observed(self, request: Request, call_next: RequestResponseEndpoint, request_id: str) -> Response:
		token = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			user_id=request.headers.get("X-User-Id"),
			client_ip=request.client.host if request.client else None,
		)
		start = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			return response
		except Exception:
			self._logger.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - start
			metrics.observe_request(_route_template(request), request.method, status_code, elapsed)
			self._logger.info(
				"http_request",
				extra={"status": status_code, "method": request.method, "latency_ms": round(elapsed * 1000, 3)},
			)
			obs_logging.reset_context(token)


def install(app, *, enabled: bool = True) -> None:
	app.add_middleware(ObservabilityMiddleware, enabled=enabled)
