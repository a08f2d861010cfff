"""Observability wiring for the FastAPI app."""

from __future__ import annotations

from fastapi import FastAPI

from friendgraph.obs import logging as obs_logging
from friendgraph.obs import middleware
from friendgraph.settings import settings


def init(app: FastAPI) -> None:
	"""Install the request middleware once per app.

	Request ids are assigned even with ``OBS_ENABLED=false``; logging setup,
	metrics and access logs follow the flag.
	"""
	if getattr(app.state, "obs_installed", False):
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	middleware.install(app, enabled=settings.obs_enabled)
	app.state.obs_installed = True


__all__ = ["init"]
