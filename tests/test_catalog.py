"""Tests for catalog response mapping."""

from decimal import Decimal

import pytest

from storefront.catalog import join_image_url, product_from_catalog
from storefront.errors import CatalogError

CATALOG_PRODUCT = {
    "ID": 847694,
    "name": "Shea Butter",
    "description": "Raw unrefined shea butter",
    "image_base_url": "https://cdn.example.com/img/",
    "images": ["/shea-1.jpg", "shea-2.jpg"],
    "features": ["Organic", "Handmade"],
    "sizes": [
        {"size": "Small", "weight": "250g", "price": 8, "quantity": 10, "container_image": "/jar-s.png"},
        {"size": "Medium", "weight": "500g", "price": "12.50", "quantity": 3, "container_image": None},
        {"size": "Large", "weight": "1kg", "price": "call us", "quantity": "5"},
    ],
}


class TestProductFromCatalog:
    def test_maps_product(self):
        product = product_from_catalog(CATALOG_PRODUCT)

        assert product.id == "847694"
        assert product.name == "Shea Butter"
        assert product.images == (
            "https://cdn.example.com/img/shea-1.jpg",
            "https://cdn.example.com/img/shea-2.jpg",
        )
        assert product.features == ("Organic", "Handmade")

    def test_maps_sizes(self):
        sizes = product_from_catalog(CATALOG_PRODUCT).sizes

        assert [s.id for s in sizes] == ["small", "medium", "large"]
        small = sizes[0]
        assert small.name == "Small"
        assert small.stock == 10
        assert small.price == Decimal("8")
        assert small.container_image == "https://cdn.example.com/img/jar-s.png"
        assert sizes[1].container_image is None

    def test_non_numeric_price_is_zero(self):
        large = product_from_catalog(CATALOG_PRODUCT).find_size("large")
        assert large.price == Decimal("0.00")
        assert large.stock == 5

    def test_bad_stock_is_zero(self):
        data = {**CATALOG_PRODUCT, "sizes": [{"size": "Small", "price": 1, "quantity": -4},
                                             {"size": "Tiny", "price": 1, "quantity": "lots"}]}
        assert [s.stock for s in product_from_catalog(data).sizes] == [0, 0]

    def test_lowercase_id_key(self):
        data = {"id": "abc", "name": "Thing"}
        product = product_from_catalog(data)
        assert product.id == "abc"
        assert product.sizes == ()

    def test_entries_without_size_label_are_skipped(self):
        data = {**CATALOG_PRODUCT, "sizes": [{"price": 1}, "junk", {"size": "One", "quantity": 1}]}
        assert [s.id for s in product_from_catalog(data).sizes] == ["one"]

    @pytest.mark.parametrize(
        "data",
        [None, [], {"name": "No id"}, {"ID": 1}, {"ID": 1, "name": "X", "sizes": "many"}],
    )
    def test_unusable_payload_raises(self, data):
        with pytest.raises(CatalogError):
            product_from_catalog(data)


def test_join_image_url():
    assert join_image_url("https://x/", "/a.png") == "https://x/a.png"
    assert join_image_url(None, "/a.png") == "/a.png"
