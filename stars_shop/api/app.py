# stars_shop/api/app.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from stars_shop.api.router import router as api_router, telegram_webhook
from stars_shop.config import Settings
from stars_shop.core.pipeline import ShopPipeline
from stars_shop.core.webhook import ensure_webhook

log = logging.getLogger(__name__)


def create_app(pipeline: ShopPipeline, settings: Settings, webhook_enabled: bool = False) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if webhook_enabled:
            if settings.webhook_full_url:
                await ensure_webhook(pipeline.bot, settings.webhook_full_url, settings.WEBHOOK_SECRET)
            else:
                log.warning("RUN_MODE=webhook, але WEBHOOK_URL порожній — webhook не встановлено")

        yield

        await pipeline.close()
        if webhook_enabled:
            await pipeline.bot.session.close()

    app = FastAPI(lifespan=lifespan)
    app.state.pipeline = pipeline
    app.state.webhook_secret = settings.WEBHOOK_SECRET

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    if webhook_enabled:
        app.add_api_route(settings.WEBHOOK_PATH, telegram_webhook, methods=["POST"])
    app.include_router(api_router)

    public_dir = Path(settings.PUBLIC_DIR).resolve()

    # SPA: все інше віддає index.html (або файл з public, якщо такий є)
    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa(full_path: str):
        candidate = (public_dir / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(public_dir):
            return FileResponse(candidate)

        index = public_dir / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=404, detail="index.html not found")
        return FileResponse(index)

    return app
