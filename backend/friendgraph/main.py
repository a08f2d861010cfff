"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from friendgraph import obs
from friendgraph.api import ops, social
from friendgraph.api.errors import install_error_handlers
from friendgraph.infra import postgres
from friendgraph.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="friendgraph", lifespan=lifespan)

obs.init(app)
if settings.cors_allow_origins:
	app.add_middleware(
		CORSMiddleware,
		allow_origins=list(settings.cors_allow_origins),
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
install_error_handlers(app)

app.include_router(ops.router)
app.include_router(social.router)
