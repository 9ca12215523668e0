# stars_shop/core/modes.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Literal

from stars_shop.config import Settings

LIVE_KEY_PREFIX = "sk_live_"
TEST_KEY_PREFIX = "sk_test_"


class PaymentMode(str, enum.Enum):
    SIMULATION = "simulation"
    TEST = "test"
    REAL = "real"


def resolve_mode(simulation_only: bool, real_payments: bool, secret_key: str | None) -> PaymentMode:
    """
    Пріоритет:
    1) SIMULATION_ONLY — завжди симуляція
    2) ENABLE_REAL_PAYMENTS + live-ключ — реальні платежі
    3) все інше — Test (навіть якщо флаг real є, а ключ не live)
    """
    if simulation_only:
        return PaymentMode.SIMULATION
    if real_payments and (secret_key or "").startswith(LIVE_KEY_PREFIX):
        return PaymentMode.REAL
    return PaymentMode.TEST


def key_environment(secret_key: str | None) -> str:
    key = secret_key or ""
    if key.startswith(TEST_KEY_PREFIX):
        return "test"
    if key.startswith(LIVE_KEY_PREFIX):
        return "live"
    return "unknown"


@dataclass(frozen=True)
class PaymentConfig:
    mode: PaymentMode
    test_credential: str = ""
    real_credential: str = ""
    delivery: Literal["invoice", "link"] = "invoice"
    simulation_delay: float = 2.0
    key_prefix: str = ""  # тільки для логів і /testmode

    @property
    def credential(self) -> str:
        if self.mode is PaymentMode.REAL:
            return self.real_credential
        return self.test_credential

    @classmethod
    def from_settings(cls, settings: Settings) -> PaymentConfig:
        return cls(
            mode=resolve_mode(
                settings.SIMULATION_ONLY,
                settings.ENABLE_REAL_PAYMENTS,
                settings.STRIPE_SECRET_KEY,
            ),
            test_credential=settings.TEST_PROVIDER_TOKEN,
            real_credential=settings.STRIPE_PUBLISHABLE_KEY,
            delivery=settings.INVOICE_DELIVERY,
            simulation_delay=settings.SIMULATION_DELAY_SEC,
            key_prefix=(settings.STRIPE_SECRET_KEY or "")[:7],
        )
