# stars_shop/core/delivery.py
from __future__ import annotations

import logging

from aiogram import Bot

from stars_shop.core.events import PaymentConfirmed
from stars_shop.core.modes import PaymentMode
from stars_shop.products.catalog import Catalog, Product
from stars_shop.shared.utils import h, send_message

log = logging.getLogger(__name__)

UNRECOGNIZED_PRODUCT_TEXT = "❌ 感謝您的購買！但我們無法識別您購買的商品。請聯繫客服。"


def _success_text(mode: PaymentMode, product: Product, payment: PaymentConfirmed) -> str:
    head = (
        f"您已成功購買：{h(product.title)}\n\n"
        f"{h(product.secret_content)}\n\n"
    )

    if payment.simulated or mode is PaymentMode.SIMULATION:
        return (
            "🎉 <b>模擬支付成功！</b>\n\n" + head
            + "🧪 <b>模擬模式資訊</b>\n"
            f"💰 模擬金額：{payment.total_amount} Stars\n"
            f"📋 模擬交易 ID：{h(payment.charge_id)}\n"
            f"⏰ 模擬時間：{payment.paid_at:%Y/%m/%d %H:%M:%S}\n\n"
            "⚠️ 這是模擬模式，沒有真實扣款"
        )

    if mode is PaymentMode.TEST:
        return (
            "🎉 <b>測試支付成功！</b>\n\n" + head
            + "🧪 <b>測試環境資訊</b>\n"
            f"💰 支付金額：{payment.total_amount} {h(payment.currency)}\n"
            f"📋 Telegram Charge ID：{h(payment.charge_id)}\n\n"
            "⚠️ 這是測試環境，無真實扣款"
        )

    return (
        "🎉 <b>支付成功！</b>\n\n" + head
        + f"💰 支付金額：{payment.total_amount} {h(payment.currency)}\n"
        f"📋 交易 ID：{h(payment.charge_id)}"
    )


async def deliver_purchase(bot: Bot, catalog: Catalog, mode: PaymentMode, payment: PaymentConfirmed) -> bool:
    """
    Повертає True якщо контент видано.
    Невідомий товар — ніколи не губимо мовчки: юзеру повідомлення, в лог error.
    """
    log.info(
        "payment confirmed user=%s payload=%s amount=%s %s charge=%s simulated=%s",
        payment.user_id, payment.payload, payment.total_amount, payment.currency,
        payment.charge_id, payment.simulated,
    )

    product = catalog.get(payment.payload)
    if product is None:
        log.error("payment received but product is unknown key=%s", payment.dedup_key)
        await send_message(bot, payment.chat_id, UNRECOGNIZED_PRODUCT_TEXT)
        return False

    await send_message(bot, payment.chat_id, _success_text(mode, product, payment))
    log.info("purchase delivered user=%s product=%s key=%s", payment.user_id, product.id, payment.dedup_key)
    return True
