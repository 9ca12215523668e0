# stars_shop/core/events.py
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Any, Union

from aiogram.types import CallbackQuery, Message, PreCheckoutQuery

BUY_PREFIX = "buy_"
CANCEL_DATA = "cancel"


@dataclass(frozen=True)
class StartCommand:
    chat_id: int
    user_id: int = 0
    payload: str = ""  # deep link: /start buy_gold_100


@dataclass(frozen=True)
class ModeInfoCommand:
    chat_id: int


@dataclass(frozen=True)
class BuyIntent:
    user_id: int
    chat_id: int
    product_id: str
    callback_id: str | None = None


@dataclass(frozen=True)
class CancelIntent:
    chat_id: int
    callback_id: str | None = None


@dataclass(frozen=True)
class AckCallback:
    # callback без дії — тільки прибрати "крутилку"
    callback_id: str


@dataclass(frozen=True)
class PreCheckout:
    query_id: str
    user_id: int
    payload: str
    total_amount: int
    currency: str


@dataclass(frozen=True)
class PaymentConfirmed:
    chat_id: int
    user_id: int
    payload: str
    total_amount: int
    currency: str
    charge_id: str
    simulated: bool = False
    paid_at: _dt.datetime = field(default_factory=_dt.datetime.now)

    @property
    def dedup_key(self) -> tuple[str, str]:
        # Telegram може повторити successful_payment, ключ для майбутнього ledger
        return self.payload, self.charge_id


Event = Union[
    StartCommand, ModeInfoCommand, BuyIntent, CancelIntent, AckCallback, PreCheckout, PaymentConfirmed,
]


def _normalize_cmd(text: str) -> tuple[str, str]:
    t = (text or "").strip()
    if not t:
        return "", ""
    parts = t.split(maxsplit=1)
    first = parts[0]
    if "@" in first:
        first = first.split("@", 1)[0]
    arg = parts[1].strip() if len(parts) > 1 else ""
    return first, arg


def _command_event(chat_id: int, user_id: int, text: str) -> Event | None:
    cmd, arg = _normalize_cmd(text)
    if cmd == "/start":
        return StartCommand(chat_id=chat_id, user_id=user_id, payload=arg)
    if cmd == "/testmode":
        return ModeInfoCommand(chat_id=chat_id)
    return None


def _callback_event(chat_id: int, user_id: int, data: str, callback_id: str | None) -> Event | None:
    if not chat_id:
        return AckCallback(callback_id) if callback_id else None
    if data.startswith(BUY_PREFIX):
        return BuyIntent(
            user_id=user_id,
            chat_id=chat_id,
            product_id=data[len(BUY_PREFIX):],
            callback_id=callback_id,
        )
    if data == CANCEL_DATA:
        return CancelIntent(chat_id=chat_id, callback_id=callback_id)
    if callback_id:
        return AckCallback(callback_id)
    return None


# =========================================================
# Raw update (webhook body)
# =========================================================
def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def events_from_update(update: dict) -> list[Event]:
    """
    Сирий update від Telegram -> внутрішні події.
    Невідомі типи апдейтів просто ігноруються.
    """
    if not isinstance(update, dict):
        raise ValueError("update must be a JSON object")

    out: list[Event] = []

    q = update.get("pre_checkout_query")
    if q:
        out.append(PreCheckout(
            query_id=str(q.get("id") or ""),
            user_id=_int((q.get("from") or {}).get("id")),
            payload=str(q.get("invoice_payload") or ""),
            total_amount=_int(q.get("total_amount")),
            currency=str(q.get("currency") or ""),
        ))

    msg = update.get("message") or {}
    chat_id = _int((msg.get("chat") or {}).get("id"))
    user_id = _int((msg.get("from") or {}).get("id"))

    sp = msg.get("successful_payment")
    if sp and chat_id:
        out.append(PaymentConfirmed(
            chat_id=chat_id,
            user_id=user_id,
            payload=str(sp.get("invoice_payload") or ""),
            total_amount=_int(sp.get("total_amount")),
            currency=str(sp.get("currency") or ""),
            charge_id=str(sp.get("telegram_payment_charge_id") or ""),
        ))
    elif msg.get("text") and chat_id:
        ev = _command_event(chat_id, user_id, msg["text"])
        if ev:
            out.append(ev)

    cb = update.get("callback_query")
    if cb:
        cb_chat_id = _int(((cb.get("message") or {}).get("chat") or {}).get("id"))
        ev = _callback_event(
            cb_chat_id,
            _int((cb.get("from") or {}).get("id")),
            (cb.get("data") or "").strip(),
            str(cb["id"]) if cb.get("id") else None,
        )
        if ev:
            out.append(ev)

    return out


# =========================================================
# aiogram types (polling)
# =========================================================
def from_message(message: Message) -> Event | None:
    chat_id = message.chat.id
    user_id = message.from_user.id if message.from_user else 0

    sp = message.successful_payment
    if sp:
        return PaymentConfirmed(
            chat_id=chat_id,
            user_id=user_id,
            payload=sp.invoice_payload,
            total_amount=sp.total_amount,
            currency=sp.currency,
            charge_id=sp.telegram_payment_charge_id,
        )

    if message.text:
        return _command_event(chat_id, user_id, message.text)
    return None


def from_callback(callback: CallbackQuery) -> Event | None:
    return _callback_event(
        callback.message.chat.id if callback.message else 0,
        callback.from_user.id,
        (callback.data or "").strip(),
        callback.id,
    )


def from_pre_checkout(query: PreCheckoutQuery) -> PreCheckout:
    return PreCheckout(
        query_id=query.id,
        user_id=query.from_user.id,
        payload=query.invoice_payload,
        total_amount=query.total_amount,
        currency=query.currency,
    )
