# stars_shop/core/polling.py
from __future__ import annotations

import logging

from aiogram import Bot, Dispatcher, F, Router
from aiogram.types import CallbackQuery, Message, PreCheckoutQuery

from stars_shop.core.events import from_callback, from_message, from_pre_checkout
from stars_shop.core.pipeline import ShopPipeline
from stars_shop.core.webhook import ALLOWED_UPDATES

log = logging.getLogger(__name__)


def build_router() -> Router:
    """
    Тонкий адаптер: aiogram-обʼєкти -> внутрішні події -> pipeline.dispatch.
    pipeline приходить з workflow_data диспетчера.
    """
    router = Router(name="stars_shop")

    @router.pre_checkout_query()
    async def on_pre_checkout(query: PreCheckoutQuery, pipeline: ShopPipeline) -> None:
        await pipeline.dispatch(from_pre_checkout(query))

    @router.message(F.successful_payment)
    async def on_successful_payment(message: Message, pipeline: ShopPipeline) -> None:
        event = from_message(message)
        if event:
            await pipeline.dispatch(event)

    @router.message(F.text)
    async def on_text(message: Message, pipeline: ShopPipeline) -> None:
        event = from_message(message)
        if event:
            await pipeline.dispatch(event)

    @router.callback_query()
    async def on_callback(callback: CallbackQuery, pipeline: ShopPipeline) -> None:
        event = from_callback(callback)
        if event:
            await pipeline.dispatch(event)

    return router


def build_dispatcher(pipeline: ShopPipeline) -> Dispatcher:
    dp = Dispatcher(pipeline=pipeline)
    dp.include_router(build_router())
    return dp


async def run_polling(bot: Bot, pipeline: ShopPipeline) -> None:
    dp = build_dispatcher(pipeline)

    # polling і webhook не можуть працювати разом
    try:
        await bot.delete_webhook(drop_pending_updates=False)
        log.info("✅ Webhook видалено, стартуємо polling")
    except Exception as e:
        log.warning("delete_webhook failed: %s", e)

    await dp.start_polling(
        bot,
        allowed_updates=ALLOWED_UPDATES,
        handle_signals=False,
        # апдейти по одному, в порядку надходження
        handle_as_tasks=False,
        close_bot_session=False,
    )
