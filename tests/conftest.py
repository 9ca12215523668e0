from __future__ import annotations

import asyncio

import pytest

from stars_shop.core.modes import PaymentConfig, PaymentMode
from stars_shop.core.pipeline import ShopPipeline
from stars_shop.products.catalog import default_catalog

TEST_CREDENTIAL = "test-provider-token"
REAL_CREDENTIAL = "pk_live_publishable"
INVOICE_URL = "https://t.me/$test-invoice"


class FakeBot:
    """Записує всі виклики Bot API замість реальних запитів."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.fail: set[str] = set()

    async def _call(self, method: str, kwargs: dict):
        self.calls.append((method, kwargs))
        if method in self.fail:
            raise RuntimeError(f"{method} failed")

    async def send_message(self, **kwargs):
        await self._call("send_message", kwargs)

    async def send_invoice(self, **kwargs):
        await self._call("send_invoice", kwargs)

    async def create_invoice_link(self, **kwargs):
        await self._call("create_invoice_link", kwargs)
        return INVOICE_URL

    async def answer_pre_checkout_query(self, **kwargs):
        await self._call("answer_pre_checkout_query", kwargs)
        return True

    async def answer_callback_query(self, **kwargs):
        await self._call("answer_callback_query", kwargs)
        return True

    async def delete_webhook(self, **kwargs):
        await self._call("delete_webhook", kwargs)
        return True

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]

    def of(self, method: str) -> list[dict]:
        return [kw for m, kw in self.calls if m == method]

    def texts(self) -> list[str]:
        return [kw["text"] for kw in self.of("send_message")]


@pytest.fixture
def bot() -> FakeBot:
    return FakeBot()


@pytest.fixture
def catalog():
    return default_catalog()


def make_config(mode: PaymentMode, delivery: str = "invoice") -> PaymentConfig:
    return PaymentConfig(
        mode=mode,
        test_credential=TEST_CREDENTIAL,
        real_credential=REAL_CREDENTIAL,
        delivery=delivery,
        simulation_delay=0,
        key_prefix="sk_test",
    )


@pytest.fixture
def make_pipeline(bot, catalog):
    def _make(mode: PaymentMode = PaymentMode.TEST, delivery: str = "invoice") -> ShopPipeline:
        return ShopPipeline(bot, catalog, make_config(mode, delivery))

    return _make


async def drain(pipeline: ShopPipeline) -> None:
    tasks = list(pipeline.issuer._tasks)
    if tasks:
        await asyncio.gather(*tasks)
