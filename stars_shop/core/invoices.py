# stars_shop/core/invoices.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from aiogram import Bot
from aiogram.types import LabeledPrice

from stars_shop.core.checkout import STARS_CURRENCY
from stars_shop.core.events import PaymentConfirmed
from stars_shop.core.modes import PaymentConfig, PaymentMode
from stars_shop.products.catalog import Product
from stars_shop.shared.utils import h, send_message
from stars_shop.ui import pay_link_kb

log = logging.getLogger(__name__)

PAYMENT_UNAVAILABLE_TEXT = "❌ 抱歉，支付系統暫時無法使用。請稍後再試。"

ConfirmHandler = Callable[[PaymentConfirmed], Awaitable[object]]


def invoice_kwargs(product: Product, credential: str) -> dict:
    """
    Спільні параметри для send_invoice / create_invoice_link.
    payload == product.id, Telegram поверне його без змін.
    """
    kwargs = dict(
        title=product.title,
        description=product.description,
        payload=product.id,
        currency=STARS_CURRENCY,
        prices=[LabeledPrice(label=product.title, amount=product.price_stars)],
        provider_token=credential,
        is_flexible=False,
        need_name=False,
        need_phone_number=False,
        need_email=False,
        need_shipping_address=False,
    )
    if product.photo_url:
        kwargs["photo_url"] = product.photo_url
    return kwargs


class InvoiceIssuer:
    def __init__(self, bot: Bot, config: PaymentConfig, on_confirmed: ConfirmHandler) -> None:
        self.bot = bot
        self.config = config
        self._on_confirmed = on_confirmed
        self._tasks: set[asyncio.Task] = set()

    # =====================================================
    # Test / Real: один шлях, різниться тільки credential
    # =====================================================
    async def send_invoice(self, chat_id: int, product: Product, user_id: int = 0) -> bool:
        mode = self.config.mode
        log.info("%s invoice: user=%s product=%s chat=%s", mode.value, user_id, product.id, chat_id)

        try:
            if self.config.delivery == "link":
                url = await self.create_link(product)
                await send_message(
                    self.bot,
                    chat_id,
                    f"🧾 <b>您選擇購買：{h(product.title)}</b>\n價格：{product.price_stars} Stars",
                    reply_markup=pay_link_kb(url, test=mode is not PaymentMode.REAL),
                )
            else:
                await self.bot.send_invoice(chat_id=chat_id, **invoice_kwargs(product, self.config.credential))
        except Exception as e:
            log.exception("invoice failed mode=%s product=%s chat=%s: %s", mode.value, product.id, chat_id, e)
            await self._apologize(chat_id)
            return False

        log.info("invoice sent: product=%s chat=%s", product.id, chat_id)
        return True

    async def create_link(self, product: Product, credential: str | None = None) -> str:
        return await self.bot.create_invoice_link(
            **invoice_kwargs(product, self.config.credential if credential is None else credential)
        )

    # =====================================================
    # Simulation: без платіжної системи Telegram
    # =====================================================
    async def simulate(self, chat_id: int, product: Product, user_id: int = 0) -> asyncio.Task:
        log.info("simulation: user=%s product=%s", user_id, product.id)

        try:
            await send_message(
                self.bot,
                chat_id,
                "🧪 <b>模擬購買處理中...</b>\n\n"
                f"商品：{h(product.title)}\n"
                f"價格：{product.price_stars} Stars\n\n"
                "⏳ 正在模擬支付流程...",
            )
        except Exception as e:
            log.warning("simulation notice failed chat=%s err=%s", chat_id, e)

        task = asyncio.create_task(self._simulate_later(chat_id, product, user_id))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    async def _simulate_later(self, chat_id: int, product: Product, user_id: int) -> None:
        await asyncio.sleep(self.config.simulation_delay)
        payment = PaymentConfirmed(
            chat_id=chat_id,
            user_id=user_id,
            payload=product.id,
            total_amount=product.price_stars,
            currency=STARS_CURRENCY,
            charge_id=f"SIM_{int(time.time() * 1000)}",
            simulated=True,
        )
        await self._on_confirmed(payment)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("simulated payment failed: %s", exc, exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def close(self) -> None:
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def _apologize(self, chat_id: int) -> None:
        try:
            await send_message(self.bot, chat_id, PAYMENT_UNAVAILABLE_TEXT)
        except Exception as e:
            log.warning("apology send failed chat=%s err=%s", chat_id, e)
