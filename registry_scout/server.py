# File: registry_scout/server.py
"""registry_scout.server: тонкий HTTP API поверх Engine (``GET /api/search?from=...``)."""

from __future__ import annotations

from typing import AsyncIterator, Optional

from aiohttp import web

from registry_scout.config import ScraperConfig
from registry_scout.engine import Engine
from registry_scout.errors import InvalidQuery
from registry_scout.logger import logger

__all__ = ["create_app", "run_server", "ENGINE_KEY"]

ENGINE_KEY = web.AppKey("engine", Engine)


async def handle_search(request: web.Request) -> web.Response:
    query = request.query.get("from", "")
    if not query.strip():
        return web.json_response({"error": "Company name or number is required"}, status=400)
    engine = request.app[ENGINE_KEY]
    try:
        result = await engine.search(query)
    except InvalidQuery as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except Exception as exc:
        logger.error("Search %r failed: %s", query, exc)
        return web.json_response({"error": str(exc) or type(exc).__name__}, status=500)
    return web.json_response(result.to_payload())


def create_app(config: ScraperConfig, engine: Optional[Engine] = None) -> web.Application:
    """Собирает aiohttp-приложение; Engine запускается и закрывается вместе с ним."""
    app = web.Application()
    app[ENGINE_KEY] = engine if engine is not None else Engine(config)

    async def engine_ctx(app: web.Application) -> AsyncIterator[None]:
        await app[ENGINE_KEY].start()
        yield
        await app[ENGINE_KEY].close()

    app.cleanup_ctx.append(engine_ctx)
    app.router.add_get("/api/search", handle_search)
    return app


def run_server(config: ScraperConfig, host: Optional[str] = None, port: Optional[int] = None) -> None:
    host = host or config.server.host
    port = port or config.server.port
    logger.info("Server is running on %s:%d", host, port)
    web.run_app(create_app(config), host=host, port=port, print=None)
