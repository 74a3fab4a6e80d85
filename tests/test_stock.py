"""Tests for stock clamping."""

import pytest

from storefront.stock import clamp, is_selectable

from .conftest import make_size


class TestClamp:
    @pytest.mark.parametrize("requested", [-100, -1, 0, 1, 2, 3, 4, 50])
    def test_result_within_stock_bounds(self, requested):
        size = make_size(stock=3)
        assert 1 <= clamp(requested, size) <= 3

    def test_zero_and_negative_yield_one(self):
        size = make_size(stock=3)
        assert clamp(0, size) == 1
        assert clamp(-5, size) == 1

    def test_above_stock_yields_stock(self):
        assert clamp(10, make_size(stock=3)) == 3

    def test_in_range_unchanged(self):
        assert clamp(2, make_size(stock=3)) == 2

    def test_never_zero_for_sold_out_size(self):
        assert clamp(5, make_size(stock=0)) == 1


class TestIsSelectable:
    def test_in_stock(self):
        assert is_selectable(make_size(stock=1))

    def test_sold_out(self):
        assert not is_selectable(make_size(stock=0))
