"""Entry point for the FastAPI-powered Netflix Rows service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .database import Database
from .models import RowConfiguration
from .services.config_store import ConfigurationStore
from .services.jellyfin import JellyfinClient
from .services.row_engine import RowEngine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    jellyfin_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.jellyfin_url),
            timeout=httpx.Timeout(settings.jellyfin_timeout_seconds, connect=5.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    jellyfin = JellyfinClient(settings, jellyfin_http_client)
    fastapi_app.state.row_engine = RowEngine(
        library=jellyfin, users=jellyfin, presenter=jellyfin
    )
    fastapi_app.state.config_store = ConfigurationStore(
        database, settings.default_row_configuration()
    )
    fastapi_app.state.database = database
    logger.info("Serving rows for Jellyfin at %s", settings.jellyfin_url)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Netflix-style home screen rows for Jellyfin libraries",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_row_engine(app: FastAPI) -> RowEngine:
    engine = getattr(app.state, "row_engine", None)
    if not isinstance(engine, RowEngine):
        raise RuntimeError("Row engine not initialised")
    return engine


def get_config_store(app: FastAPI) -> ConfigurationStore:
    store = getattr(app.state, "config_store", None)
    if not isinstance(store, ConfigurationStore):
        raise RuntimeError("Configuration store not initialised")
    return store


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/NetflixRows/Rows")
    async def list_rows(user_id: str = Query(alias="userId")) -> JSONResponse:
        engine = get_row_engine(fastapi_app)
        config = await get_config_store(fastapi_app).load()
        rows = await engine.list_rows(user_id, config)
        return JSONResponse([row.to_payload() for row in rows])

    @fastapi_app.get("/NetflixRows/Row/{row_type}/Items")
    async def row_items(
        row_type: str,
        user_id: str = Query(alias="userId"),
        genre: str | None = Query(default=None),
        start_index: int = Query(default=0, alias="startIndex"),
        limit: int | None = Query(default=None),
        seed: int | None = Query(default=None),
    ) -> JSONResponse:
        engine = get_row_engine(fastapi_app)
        config = await get_config_store(fastapi_app).load()
        page = await engine.get_row_items(
            user_id,
            row_type,
            config,
            genre=genre,
            start_index=start_index,
            limit=limit,
            seed=seed,
        )
        return JSONResponse(page.to_payload())

    @fastapi_app.get("/NetflixRows/Genres")
    async def list_genres(user_id: str = Query(alias="userId")) -> list[str]:
        engine = get_row_engine(fastapi_app)
        config = await get_config_store(fastapi_app).load()
        return await engine.list_genres(user_id, config)

    @fastapi_app.get("/NetflixRows/Config")
    async def get_config() -> JSONResponse:
        config = await get_config_store(fastapi_app).load()
        return JSONResponse(config.to_payload())

    @fastapi_app.post("/NetflixRows/Config")
    async def update_config(request: Request) -> JSONResponse:
        store = get_config_store(fastapi_app)
        try:
            payload = await request.json()
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            config = RowConfiguration.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc
        saved = await store.save(config)
        return JSONResponse(saved.to_payload())


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
