# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from stars_shop.core.pipeline import ShopPipeline
from stars_shop.core.webhook import handle_webhook_body

log = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

router = APIRouter(prefix="/api", tags=["shop"])


def _pipeline(req: Request) -> ShopPipeline:
    return req.app.state.pipeline


@router.get("/health")
async def health():
    return {"success": True, "status": "success", "message": "查詢成功"}


@router.post("/create-invoice")
async def create_invoice(req: Request):
    """
    Mini App просить invoice link, щоб відкрити оплату всередині себе.
    """
    try:
        body: Any = await req.json()
    except ValueError:
        return JSONResponse({"success": False, "error": "請求格式錯誤"}, status_code=400)
    if not isinstance(body, dict):
        return JSONResponse({"success": False, "error": "請求格式錯誤"}, status_code=400)

    product_id = body.get("productId")
    user_id = body.get("userId")

    pipeline = _pipeline(req)
    product = pipeline.catalog.get(str(product_id) if product_id is not None else None)
    log.info("create-invoice: product=%s user=%s", product_id, user_id)
    if not product:
        return JSONResponse({"success": False, "error": "商品不存在"}, status_code=404)

    try:
        invoice_url = await pipeline.issuer.create_link(product)
    except Exception as e:
        log.exception("create_invoice_link failed product=%s: %s", product.id, e)
        return JSONResponse(
            {"success": False, "error": "建立 Invoice Link 失敗", "message": str(e) or "未知錯誤"},
            status_code=500,
        )

    log.info("✅ Invoice link created: %s", invoice_url)
    return {
        "success": True,
        "invoiceUrl": invoice_url,
        "message": "Invoice 已產生",
        "debug": {"productId": product.id, "userId": user_id},
    }


async def telegram_webhook(req: Request):
    secret = req.app.state.webhook_secret
    if secret and req.headers.get(SECRET_HEADER, "") != secret:
        return Response(status_code=403)

    # сирі байти, не pre-parsed JSON
    body = await req.body()
    try:
        await handle_webhook_body(_pipeline(req), body)
    except Exception as e:
        log.exception("webhook handling failed: %s", e)
        return Response(status_code=500)

    return Response(status_code=200)
