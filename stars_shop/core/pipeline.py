# stars_shop/core/pipeline.py
from __future__ import annotations

import logging

from aiogram import Bot

from stars_shop.core.checkout import answer_pre_checkout
from stars_shop.core.delivery import deliver_purchase
from stars_shop.core.events import (
    BUY_PREFIX,
    AckCallback,
    BuyIntent,
    CancelIntent,
    Event,
    ModeInfoCommand,
    PaymentConfirmed,
    PreCheckout,
    StartCommand,
)
from stars_shop.core.invoices import InvoiceIssuer
from stars_shop.core.modes import PaymentConfig, PaymentMode
from stars_shop.products.catalog import Catalog
from stars_shop.shared.utils import answer_callback, h, send_message
from stars_shop.ui import products_kb

log = logging.getLogger(__name__)

PRODUCT_NOT_FOUND_TEXT = "❌ 抱歉，找不到您選擇的商品。"
CANCELLED_TEXT = "❌ 已取消購買。"

MODE_LABELS = {
    PaymentMode.SIMULATION: "純模擬",
    PaymentMode.TEST: "測試支付",
    PaymentMode.REAL: "真實支付",
}


def mode_indicator(mode: PaymentMode) -> str:
    if mode is PaymentMode.SIMULATION:
        return "🧪 <b>模擬模式</b> - 無真實扣款"
    if mode is PaymentMode.TEST:
        return "🧪 <b>測試模式</b> - 無真實費用"
    return "💰 <b>正式模式</b> - 真實支付"


class ShopPipeline:
    """
    Один конвеєр для обох транспортів (polling / webhook).

    buy_<id> -> вибір стратегії -> інвойс -> pre_checkout -> successful_payment
    """

    def __init__(self, bot: Bot, catalog: Catalog, config: PaymentConfig) -> None:
        self.bot = bot
        self.catalog = catalog
        self.config = config
        self.issuer = InvoiceIssuer(bot, config, on_confirmed=self.confirm_payment)

    @property
    def mode(self) -> PaymentMode:
        return self.config.mode

    async def dispatch(self, event: Event) -> None:
        if isinstance(event, PreCheckout):
            await self.pre_checkout(event)
        elif isinstance(event, PaymentConfirmed):
            await self.confirm_payment(event)
        elif isinstance(event, BuyIntent):
            await self.buy(event)
        elif isinstance(event, StartCommand):
            await self.start(event)
        elif isinstance(event, ModeInfoCommand):
            await self.mode_info(event)
        elif isinstance(event, CancelIntent):
            await self.cancel(event)
        elif isinstance(event, AckCallback):
            await answer_callback(self.bot, event.callback_id)
        else:
            log.debug("unhandled event: %r", event)

    # =====================================================
    # Mode router
    # =====================================================
    async def buy(self, intent: BuyIntent) -> None:
        await answer_callback(self.bot, intent.callback_id)

        product = self.catalog.get(intent.product_id)
        if product is None:
            log.warning("buy: unknown product=%s user=%s", intent.product_id, intent.user_id)
            await self._safe_send(intent.chat_id, PRODUCT_NOT_FOUND_TEXT)
            return

        log.info("buy: user=%s product=%s mode=%s", intent.user_id, product.id, self.mode.value)

        # рівно одна стратегія
        if self.mode is PaymentMode.SIMULATION:
            await self.issuer.simulate(intent.chat_id, product, intent.user_id)
        else:
            await self.issuer.send_invoice(intent.chat_id, product, intent.user_id)

    async def pre_checkout(self, query: PreCheckout) -> None:
        try:
            await answer_pre_checkout(self.bot, self.catalog, query)
        except Exception as e:
            log.exception("answer_pre_checkout failed id=%s: %s", query.query_id, e)

    async def confirm_payment(self, payment: PaymentConfirmed) -> None:
        try:
            await deliver_purchase(self.bot, self.catalog, self.mode, payment)
        except Exception as e:
            # контент не доставлено — в лог з ключем для ручної звірки
            log.exception("delivery failed key=%s chat=%s: %s", payment.dedup_key, payment.chat_id, e)

    # =====================================================
    # Commands
    # =====================================================
    async def start(self, cmd: StartCommand) -> None:
        if cmd.payload.startswith(BUY_PREFIX):
            product_id = cmd.payload[len(BUY_PREFIX):]
            if self.catalog.get(product_id) is not None:
                await self.buy(BuyIntent(user_id=cmd.user_id, chat_id=cmd.chat_id, product_id=product_id))
                return

        text = (
            "🚀 歡迎來到我們的 Telegram Stars 商店！\n\n"
            f"{mode_indicator(self.mode)}\n\n"
            "您可以購買以下精選商品：\n"
        )
        for p in self.catalog:
            text += f"\n• {h(p.title)} — {p.price_stars} ⭐️"

        await self._safe_send(cmd.chat_id, text, reply_markup=products_kb(self.catalog))

    async def mode_info(self, cmd: ModeInfoCommand) -> None:
        prefix = h(self.config.key_prefix) if self.config.key_prefix else "—"
        text = (
            "🧪 <b>當前測試模式資訊</b>\n\n"
            f"🎛️ 支付模式：{MODE_LABELS[self.mode]}\n"
            f"💳 金鑰前綴：{prefix}...\n\n"
            "📋 <b>模式說明</b>\n"
            "• 純模擬：完全模擬支付流程，無任何真實扣款\n"
            "• 測試支付：使用測試憑證，無真實費用\n"
            "• 真實支付：使用正式金鑰，會產生真實費用\n\n"
            "🔧 <b>切換模式</b>\n"
            "請修改 .env 檔案中的環境變數：\n"
            "• SIMULATION_ONLY=true/false\n"
            "• ENABLE_REAL_PAYMENTS=true/false"
        )
        await self._safe_send(cmd.chat_id, text)

    async def cancel(self, intent: CancelIntent) -> None:
        await answer_callback(self.bot, intent.callback_id)
        await self._safe_send(intent.chat_id, CANCELLED_TEXT)

    async def close(self) -> None:
        await self.issuer.close()

    async def _safe_send(self, chat_id: int, text: str, reply_markup=None) -> None:
        try:
            await send_message(self.bot, chat_id, text, reply_markup=reply_markup)
        except Exception as e:
            log.warning("send_message failed chat=%s err=%s", chat_id, e)
