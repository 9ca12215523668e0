from __future__ import annotations

from stars_shop.core.delivery import UNRECOGNIZED_PRODUCT_TEXT
from stars_shop.core.events import BuyIntent, CancelIntent, ModeInfoCommand, PaymentConfirmed, PreCheckout, StartCommand
from stars_shop.core.invoices import PAYMENT_UNAVAILABLE_TEXT
from stars_shop.core.modes import PaymentConfig, PaymentMode
from stars_shop.core.pipeline import CANCELLED_TEXT, PRODUCT_NOT_FOUND_TEXT, ShopPipeline
from tests.conftest import INVOICE_URL, REAL_CREDENTIAL, TEST_CREDENTIAL, drain

INVOICE_APIS = {"send_invoice", "create_invoice_link"}


def _buy(product_id: str = "gold_100") -> BuyIntent:
    return BuyIntent(user_id=7, chat_id=100, product_id=product_id, callback_id="cb1")


async def test_test_mode_sends_invoice(bot, make_pipeline):
    pipeline = make_pipeline(PaymentMode.TEST)
    await pipeline.dispatch(_buy())

    assert bot.of("answer_callback_query")[0]["callback_query_id"] == "cb1"
    (inv,) = bot.of("send_invoice")
    assert inv["chat_id"] == 100
    assert inv["payload"] == "gold_100"
    assert inv["currency"] == "XTR"
    assert inv["provider_token"] == TEST_CREDENTIAL
    assert [(p.label, p.amount) for p in inv["prices"]] == [("10金幣", 200)]
    assert inv["photo_url"].endswith("Gold.jpg")
    assert inv["is_flexible"] is False
    for flag in ("need_name", "need_phone_number", "need_email", "need_shipping_address"):
        assert inv[flag] is False


async def test_real_mode_differs_only_by_credential(bot, make_pipeline):
    await make_pipeline(PaymentMode.TEST).dispatch(_buy())
    await make_pipeline(PaymentMode.REAL).dispatch(_buy())

    test_inv, real_inv = bot.of("send_invoice")
    assert test_inv["provider_token"] == TEST_CREDENTIAL
    assert real_inv["provider_token"] == REAL_CREDENTIAL
    test_inv.pop("provider_token")
    real_inv.pop("provider_token")
    assert test_inv == real_inv


async def test_simulation_never_calls_invoice_api(bot, make_pipeline):
    pipeline = make_pipeline(PaymentMode.SIMULATION)
    await pipeline.dispatch(_buy())
    await drain(pipeline)

    assert not INVOICE_APIS & set(bot.methods())
    notice, success = bot.texts()
    assert "模擬購買處理中" in notice
    assert "模擬支付成功" in success
    assert "恭喜！您的金幣是: 100" in success
    assert "SIM_" in success
    assert "沒有真實扣款" in success
    assert pipeline.issuer.pending == 0


async def test_simulation_close_cancels_pending(bot, catalog):
    pipeline = ShopPipeline(bot, catalog, PaymentConfig(mode=PaymentMode.SIMULATION, simulation_delay=60))
    await pipeline.dispatch(_buy())
    assert pipeline.issuer.pending == 1

    await pipeline.close()
    assert pipeline.issuer.pending == 0
    assert len(bot.texts()) == 1  # тільки "processing"


async def test_link_delivery_sends_pay_button(bot, make_pipeline):
    pipeline = make_pipeline(PaymentMode.TEST, delivery="link")
    await pipeline.dispatch(_buy("gold_500"))

    (link,) = bot.of("create_invoice_link")
    assert link["payload"] == "gold_500"
    assert [p.amount for p in link["prices"]] == [1000]
    assert "send_invoice" not in bot.methods()
    (msg,) = bot.of("send_message")
    buttons = [b for row in msg["reply_markup"].inline_keyboard for b in row]
    assert buttons[0].url == INVOICE_URL
    assert buttons[1].callback_data == "cancel"


async def test_unknown_product_at_buy(bot, make_pipeline):
    for mode in PaymentMode:
        await make_pipeline(mode).dispatch(_buy("gold_999"))

    assert not INVOICE_APIS & set(bot.methods())
    assert bot.texts() == [PRODUCT_NOT_FOUND_TEXT] * 3


async def test_invoice_failure_is_reported_not_raised(bot, make_pipeline):
    bot.fail.add("send_invoice")
    await make_pipeline(PaymentMode.REAL).dispatch(_buy())
    assert bot.texts() == [PAYMENT_UNAVAILABLE_TEXT]


async def test_gold_100_scenario(bot, make_pipeline):
    pipeline = make_pipeline(PaymentMode.TEST)

    await pipeline.dispatch(_buy("gold_100"))
    (inv,) = bot.of("send_invoice")
    assert inv["prices"][0].amount == 200
    assert inv["currency"] == "XTR"

    await pipeline.dispatch(PreCheckout(
        query_id="pq", user_id=7, payload=inv["payload"], total_amount=200, currency="XTR",
    ))
    assert bot.of("answer_pre_checkout_query") == [{"pre_checkout_query_id": "pq", "ok": True}]

    await pipeline.dispatch(PaymentConfirmed(
        chat_id=100, user_id=7, payload=inv["payload"], total_amount=200,
        currency="XTR", charge_id="tg_charge_42",
    ))
    text = bot.texts()[-1]
    assert "恭喜！您的金幣是: 100" in text
    assert "tg_charge_42" in text
    assert "200 XTR" in text
    assert "無真實扣款" in text


async def test_real_mode_confirmation_has_no_disclaimer(bot, make_pipeline):
    await make_pipeline(PaymentMode.REAL).dispatch(PaymentConfirmed(
        chat_id=1, user_id=1, payload="gold_200", total_amount=400, currency="XTR", charge_id="c1",
    ))
    (text,) = bot.texts()
    assert "恭喜！您的金幣是: 200" in text
    assert "交易 ID：c1" in text
    assert "測試" not in text and "模擬" not in text


async def test_unknown_product_at_pre_checkout(bot, make_pipeline):
    await make_pipeline().dispatch(PreCheckout(
        query_id="pq", user_id=1, payload="ghost", total_amount=200, currency="XTR",
    ))
    (call,) = bot.of("answer_pre_checkout_query")
    assert call["ok"] is False
    assert "send_message" not in bot.methods()


async def test_unknown_product_at_successful_payment(bot, make_pipeline):
    await make_pipeline().dispatch(PaymentConfirmed(
        chat_id=5, user_id=1, payload="ghost", total_amount=200, currency="XTR", charge_id="c",
    ))
    assert bot.texts() == [UNRECOGNIZED_PRODUCT_TEXT]


async def test_delivery_failure_does_not_raise(bot, make_pipeline):
    bot.fail.add("send_message")
    await make_pipeline().dispatch(PaymentConfirmed(
        chat_id=5, user_id=1, payload="gold_100", total_amount=200, currency="XTR", charge_id="c",
    ))
    assert bot.methods() == ["send_message"]


async def test_start_lists_products(bot, make_pipeline):
    await make_pipeline(PaymentMode.SIMULATION).dispatch(StartCommand(chat_id=3, user_id=7))
    (msg,) = bot.of("send_message")
    assert "模擬模式" in msg["text"]
    data = [row[0].callback_data for row in msg["reply_markup"].inline_keyboard]
    assert data == ["buy_gold_100", "buy_gold_200", "buy_gold_500"]


async def test_start_deep_link_starts_purchase(bot, make_pipeline):
    await make_pipeline().dispatch(StartCommand(chat_id=3, user_id=7, payload="buy_gold_200"))
    (inv,) = bot.of("send_invoice")
    assert inv["payload"] == "gold_200"


async def test_start_unknown_deep_link_shows_catalog(bot, make_pipeline):
    await make_pipeline().dispatch(StartCommand(chat_id=3, user_id=7, payload="buy_ghost"))
    assert bot.methods() == ["send_message"]


async def test_mode_info_and_cancel(bot, make_pipeline):
    pipeline = make_pipeline(PaymentMode.REAL)
    await pipeline.dispatch(ModeInfoCommand(chat_id=3))
    await pipeline.dispatch(CancelIntent(chat_id=3, callback_id="cb9"))

    info, cancelled = bot.texts()
    assert "真實支付" in info
    assert "sk_test" in info
    assert cancelled == CANCELLED_TEXT
    assert bot.of("answer_callback_query")[0]["callback_query_id"] == "cb9"


def test_dedup_key():
    p = PaymentConfirmed(chat_id=1, user_id=1, payload="gold_100", total_amount=200, currency="XTR", charge_id="c")
    assert p.dedup_key == ("gold_100", "c")
