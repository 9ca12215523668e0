# stars_shop/core/webhook.py
from __future__ import annotations

import json
import logging

from aiogram import Bot

from stars_shop.core.events import events_from_update
from stars_shop.core.pipeline import ShopPipeline

log = logging.getLogger(__name__)

ALLOWED_UPDATES = ["message", "callback_query", "pre_checkout_query"]


async def handle_webhook_body(pipeline: ShopPipeline, body: bytes) -> int:
    """
    Сирі байти від Telegram -> події -> той самий pipeline що й у polling.
    Кидає ValueError на битому JSON. Повертає кількість оброблених подій.
    """
    update = json.loads(body)
    events = events_from_update(update)
    if not events:
        log.debug("webhook update ignored: update_id=%s", update.get("update_id"))
        return 0

    for event in events:
        await pipeline.dispatch(event)
    return len(events)


async def ensure_webhook(bot: Bot, url: str, secret: str = "") -> None:
    """
    Ставить webhook, якщо він ще не такий.
    """
    try:
        info = await bot.get_webhook_info()
        if (info.url or "").strip() == url:
            log.info("Webhook уже корректен: %s", url)
            return
    except Exception as e:
        log.warning("getWebhookInfo failed: %s", e)

    await bot.set_webhook(
        url,
        secret_token=secret or None,
        drop_pending_updates=False,
        allowed_updates=ALLOWED_UPDATES,
    )
    log.info("Webhook set to %s", url)
