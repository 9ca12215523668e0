# stars_shop/ui.py
from __future__ import annotations

from typing import Iterable

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from stars_shop.core.events import BUY_PREFIX, CANCEL_DATA
from stars_shop.products.catalog import Product


def products_kb(products: Iterable[Product]) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=f"🛒 購買 {p.title}", callback_data=f"{BUY_PREFIX}{p.id}")]
        for p in products
    ])


def pay_link_kb(invoice_url: str, test: bool = True) -> InlineKeyboardMarkup:
    label = "🧪 支付" if test else "⭐ 支付"
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text=label, url=invoice_url)],
        [InlineKeyboardButton(text="❌ 取消", callback_data=CANCEL_DATA)],
    ])
