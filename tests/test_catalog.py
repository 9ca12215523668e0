from __future__ import annotations

import pytest

from stars_shop.products.catalog import DEFAULT_PRODUCTS, Catalog, CatalogError, Product, default_catalog


def _product(pid: str = "p1", price=10) -> Product:
    return Product(id=pid, title="T", description="D", price_stars=price, secret_content="S")


def test_default_catalog_invariants():
    catalog = default_catalog()
    ids = [p.id for p in catalog]
    assert len(ids) == len(set(ids)) == len(DEFAULT_PRODUCTS)
    for p in catalog:
        assert isinstance(p.price_stars, int) and p.price_stars > 0


def test_lookup():
    catalog = default_catalog()
    gold = catalog.get("gold_100")
    assert gold is not None
    assert gold.price_stars == 200
    assert gold.secret_content == "恭喜！您的金幣是: 100"
    assert catalog.get("gold_999") is None
    assert catalog.get("") is None
    assert catalog.get(None) is None


def test_duplicate_ids_rejected():
    with pytest.raises(CatalogError):
        Catalog([_product("a"), _product("a")])


@pytest.mark.parametrize("price", [0, -5, 1.5, True, "100"])
def test_bad_price_rejected(price):
    with pytest.raises(CatalogError):
        Catalog([_product(price=price)])


def test_product_is_immutable():
    p = _product()
    with pytest.raises(AttributeError):
        p.price_stars = 1  # type: ignore[misc]
