# stars_shop/main.py
from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn
from aiogram import Bot
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.client.telegram import TelegramAPIServer
from fastapi import FastAPI
from pydantic import ValidationError

from stars_shop.api.app import create_app
from stars_shop.config import Settings
from stars_shop.core.modes import PaymentConfig, key_environment
from stars_shop.core.pipeline import MODE_LABELS, ShopPipeline
from stars_shop.core.polling import run_polling
from stars_shop.products.catalog import default_catalog

log = logging.getLogger(__name__)

# тестовий сервер Telegram: /bot{token}/test/{method}
TELEGRAM_TEST_SERVER = TelegramAPIServer(
    base="https://api.telegram.org/bot{token}/test/{method}",
    file="https://api.telegram.org/file/bot{token}/test/{path}",
)


def load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        log.error("❌ ERROR: конфігурація невалідна (BOT_TOKEN?): %s", e)
        sys.exit(1)


def build_bot(settings: Settings) -> Bot:
    session = AiohttpSession(api=TELEGRAM_TEST_SERVER) if settings.USE_TEST_ENVIRONMENT else None
    return Bot(token=settings.BOT_TOKEN, session=session)


def build_pipeline(settings: Settings, bot: Bot) -> ShopPipeline:
    config = PaymentConfig.from_settings(settings)

    log.info("🤖 Bot is starting...")
    log.info("🔧 Key environment: %s", key_environment(settings.STRIPE_SECRET_KEY))
    log.info("🎛️ Payment mode: %s (%s)", config.mode.value, MODE_LABELS[config.mode])
    log.info("💳 Key prefix: %s...", config.key_prefix)

    return ShopPipeline(bot, default_catalog(), config)


def build_app() -> FastAPI:
    """
    Фабрика для uvicorn (webhook-режим): uvicorn stars_shop.main:build_app --factory
    """
    logging.basicConfig(level=logging.INFO)
    settings = load_settings()
    bot = build_bot(settings)
    return create_app(build_pipeline(settings, bot), settings, webhook_enabled=True)


async def _serve_polling(settings: Settings) -> None:
    bot = build_bot(settings)
    pipeline = build_pipeline(settings, bot)
    app = create_app(pipeline, settings, webhook_enabled=False)

    server = uvicorn.Server(uvicorn.Config(app, host=settings.HOST, port=settings.PORT, log_level="info"))
    polling = asyncio.create_task(run_polling(bot, pipeline))

    try:
        await server.serve()
    finally:
        polling.cancel()
        await asyncio.gather(polling, return_exceptions=True)
        await pipeline.close()
        await bot.session.close()


def run() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = load_settings()

    if settings.RUN_MODE == "webhook":
        log.info("🚀 Webhook mode on %s:%s", settings.HOST, settings.PORT)
        uvicorn.run(
            "stars_shop.main:build_app",
            factory=True,
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.DEBUG,
        )
        return

    log.info("🚀 Polling mode, API on %s:%s", settings.HOST, settings.PORT)
    asyncio.run(_serve_polling(settings))


if __name__ == "__main__":
    run()
