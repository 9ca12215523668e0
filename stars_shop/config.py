# stars_shop/config.py
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # порожній BOT_TOKEN= вважаємо відсутнім
    BOT_TOKEN: str = Field(min_length=1)

    # polling і webhook взаємовиключні для одного токена
    RUN_MODE: Literal["polling", "webhook"] = "polling"

    WEBHOOK_URL: str = ""
    WEBHOOK_PATH: str = "/api/webhook"
    WEBHOOK_SECRET: str = ""  # X-Telegram-Bot-Api-Secret-Token

    # === Payment modes ===
    SIMULATION_ONLY: bool = False
    ENABLE_REAL_PAYMENTS: bool = False

    # префікс sk_live_ / sk_test_ вирішує Real vs Test
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    TEST_PROVIDER_TOKEN: str = ""  # для Stars порожній токен валідний

    INVOICE_DELIVERY: Literal["invoice", "link"] = "invoice"
    SIMULATION_DELAY_SEC: float = 2.0

    USE_TEST_ENVIRONMENT: bool = False

    HOST: str = "0.0.0.0"
    PORT: int = 3001
    PUBLIC_DIR: str = "public"
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def webhook_full_url(self) -> str:
        if not self.WEBHOOK_URL:
            return ""
        return self.WEBHOOK_URL.rstrip("/") + self.WEBHOOK_PATH
