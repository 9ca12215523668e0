from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator


class CatalogError(ValueError):
    pass


@dataclass(frozen=True)
class Product:
    id: str                  # payload інвойсу, має повертатись без змін
    title: str
    description: str
    price_stars: int
    secret_content: str
    photo_url: str | None = None


GOLD_PHOTO_URL = "https://www.silubr.com.tw/data/editor/files/Gold.jpg"

DEFAULT_PRODUCTS: tuple[Product, ...] = (
    Product(
        id="gold_100",
        title="10金幣",
        description="儲值100金幣",
        price_stars=200,
        secret_content="恭喜！您的金幣是: 100",
        photo_url=GOLD_PHOTO_URL,
    ),
    Product(
        id="gold_200",
        title="20金幣",
        description="儲值200金幣",
        price_stars=400,
        secret_content="恭喜！您的金幣是: 200",
        photo_url=GOLD_PHOTO_URL,
    ),
    Product(
        id="gold_500",
        title="50金幣",
        description="儲值500金幣",
        price_stars=1000,
        secret_content="恭喜！您的金幣是: 500",
        photo_url=GOLD_PHOTO_URL,
    ),
)


class Catalog:
    """
    Статичний каталог. Завантажується один раз і далі тільки читається.
    """

    def __init__(self, products: Iterable[Product]) -> None:
        items = tuple(products)
        by_id: dict[str, Product] = {}
        for p in items:
            if p.id in by_id:
                raise CatalogError(f"duplicate product id: {p.id}")
            # bool теж int, але ціною бути не може
            if isinstance(p.price_stars, bool) or not isinstance(p.price_stars, int) or p.price_stars <= 0:
                raise CatalogError(f"price_stars must be a positive int: {p.id}={p.price_stars!r}")
            by_id[p.id] = p
        self._items = items
        self._by_id = by_id

    def get(self, product_id: str | None) -> Product | None:
        if not product_id:
            return None
        return self._by_id.get(product_id)

    def __iter__(self) -> Iterator[Product]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


def default_catalog() -> Catalog:
    return Catalog(DEFAULT_PRODUCTS)
