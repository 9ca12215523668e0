from __future__ import annotations

import html
import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import InlineKeyboardMarkup, Message

log = logging.getLogger(__name__)

HTML_PARSE_MODE = "HTML"


def h(text: object) -> str:
    return html.escape(str(text), quote=False)


async def send_message(
    bot: Bot,
    chat_id: int,
    text: str,
    reply_markup: InlineKeyboardMarkup | None = None,
) -> Message:
    return await bot.send_message(
        chat_id=chat_id,
        text=text,
        parse_mode=HTML_PARSE_MODE,
        reply_markup=reply_markup,
    )


async def answer_callback(bot: Bot, callback_query_id: str | None, text: str = "", show_alert: bool = False) -> None:
    if not callback_query_id:
        return
    try:
        await bot.answer_callback_query(callback_query_id=callback_query_id, text=text, show_alert=show_alert)
    except TelegramBadRequest:
        # "query is too old" — не критично
        return
    except TelegramAPIError as e:
        log.warning("answer_callback_query failed id=%s err=%s", callback_query_id, e)
