# stars_shop/core/checkout.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from aiogram import Bot

from stars_shop.core.events import PreCheckout
from stars_shop.products.catalog import Catalog, Product

log = logging.getLogger(__name__)

STARS_CURRENCY = "XTR"

INVALID_ORDER_TEXT = "❌ 您的訂單無效，商品資訊可能已更新或庫存不足。請重新嘗試。"


@dataclass(frozen=True)
class CheckoutDecision:
    ok: bool
    product: Product | None = None
    reason: str = ""


def validate_checkout(catalog: Catalog, payload: str, total_amount: int, currency: str) -> CheckoutDecision:
    """
    Перевіряємо заново навіть якщо інвойс щойно зібрали з того ж каталогу.
    Всі три умови обовʼязкові.
    """
    product = catalog.get(payload)
    if product is None:
        return CheckoutDecision(False, None, "unknown product")
    if total_amount != product.price_stars:
        return CheckoutDecision(False, product, "amount mismatch")
    if currency != STARS_CURRENCY:
        return CheckoutDecision(False, product, "currency mismatch")
    return CheckoutDecision(True, product)


async def answer_pre_checkout(bot: Bot, catalog: Catalog, query: PreCheckout) -> CheckoutDecision:
    # Telegram дає ~10 сек на відповідь, тому ніякого I/O до answer
    decision = validate_checkout(catalog, query.payload, query.total_amount, query.currency)

    if decision.ok:
        await bot.answer_pre_checkout_query(pre_checkout_query_id=query.query_id, ok=True)
        log.info("pre_checkout approved id=%s payload=%s amount=%s", query.query_id, query.payload, query.total_amount)
    else:
        await bot.answer_pre_checkout_query(
            pre_checkout_query_id=query.query_id,
            ok=False,
            error_message=INVALID_ORDER_TEXT,
        )
        log.warning(
            "pre_checkout rejected id=%s payload=%s amount=%s %s reason=%s",
            query.query_id, query.payload, query.total_amount, query.currency, decision.reason,
        )
    return decision
