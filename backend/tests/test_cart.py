"""
Cart tests: stock reservation across item and bundle lines, totals, discounts.
"""

import pytest

from branchpos.records import BundleComponentRecord, BundleRecord, DiscountRecord, InventoryItemRecord
from branchpos.services.cart import Cart


def _item(item_id, stock, price_cents=100, category_id=None, **kw):
    return InventoryItemRecord(
        id=item_id, branch_id=1, name=f"item {item_id}", price_cents=price_cents,
        stock=stock, category_id=category_id, **kw,
    )


@pytest.fixture
def items():
    return [_item(1, 5, 300, category_id=10), _item(2, 4, 150, category_id=20), _item(3, 0)]


@pytest.fixture
def cart(items):
    return Cart(items)


@pytest.fixture
def meal():
    return BundleRecord(
        id=7, branch_id=1, name="Meal", price_cents=500,
        components=(BundleComponentRecord(1, 1), BundleComponentRecord(2, 2)),
    )


@pytest.fixture
def pick_three():
    return BundleRecord(id=8, branch_id=1, name="Pick Three", price_cents=600, is_custom=True, max_pieces=3)


class TestItemLines:
    def test_quantity_caps_at_stock(self, cart, items):
        x = items[0]
        assert cart.add_item(x, 2)
        for _ in range(3):
            assert cart.add_item(x)
        assert cart.lines["item:1"].quantity == 5
        # 6th unit is a no-op
        assert cart.add_item(x) is False
        assert cart.lines["item:1"].quantity == 5

    def test_out_of_stock_and_inactive_items_are_rejected(self, cart, items):
        assert cart.add_item(items[2]) is False
        assert cart.add_item(_item(4, 10, is_active=False)) is False
        assert cart.is_empty

    def test_decrement_below_one_removes_line(self, cart, items):
        cart.add_item(items[0], 2)
        assert cart.update_quantity("item:1", -1)
        assert cart.lines["item:1"].quantity == 1
        assert cart.update_quantity("item:1", -5)
        assert "item:1" not in cart.lines

    def test_increment_respects_stock(self, cart, items):
        cart.add_item(items[1], 4)
        assert cart.update_quantity("item:2", 1) is False
        assert cart.lines["item:2"].quantity == 4


class TestBundleLines:
    def test_bundles_reserve_component_stock(self, cart, items, meal):
        assert cart.add_bundle(meal, 2)
        # two meals reserve 2 of item 1 and all 4 of item 2
        assert cart.available(1) == 3
        assert cart.available(2) == 0
        assert cart.add_item(items[1]) is False
        assert cart.add_bundle(meal) is False

    def test_item_lines_limit_bundles(self, cart, items, meal):
        cart.add_item(items[0], 5)
        assert cart.add_bundle(meal) is False

    def test_custom_bundle_checks_pieces_and_stock(self, cart, pick_three):
        assert cart.add_custom_bundle(pick_three, {1: 2, 2: 2}) is False  # 4 pieces > 3
        assert cart.add_custom_bundle(pick_three, {3: 1}) is False        # no stock
        assert cart.add_custom_bundle(pick_three, {1: 2, 2: 1})
        assert cart.add_custom_bundle(pick_three, {1: 3})
        # item 1 now fully reserved by the two custom lines
        assert cart.available(1) == 0
        assert len([k for k in cart.lines if k.startswith("custom:8:")]) == 2

    def test_fixed_add_rejects_custom_bundle(self, cart, pick_three):
        assert cart.add_bundle(pick_three) is False

    def test_refresh_reflects_new_stock(self, cart, items):
        cart.add_item(items[0], 5)
        cart.refresh([_item(1, 3, 300, category_id=10)])
        assert cart.available(1) == 0
        assert cart.add_item(items[0]) is False


class TestTotals:
    def test_subtotal_discount_total(self, cart, items, meal):
        cart.add_item(items[0], 2)      # 600
        cart.add_bundle(meal)           # 500
        assert cart.subtotal_cents == 1100
        assert cart.item_count == 3

        discount = DiscountRecord(id=1, branch_id=1, code="TEN", discount_type="percentage", value=10)
        assert cart.apply_discount(discount) == 110
        assert cart.total_cents == 990

    def test_category_scoped_discount(self, cart, items):
        cart.add_item(items[0])
        scoped = DiscountRecord(id=1, branch_id=1, code="DRINKS", discount_type="flat",
                                value=50, applies_to_category_id=20)
        assert cart.apply_discount(scoped) == 0
        cart.add_item(items[1])
        assert cart.discount_cents == 50

    def test_clear_drops_discount(self, cart, items):
        cart.add_item(items[0])
        cart.apply_discount(DiscountRecord(id=1, branch_id=1, code="X", discount_type="flat", value=10))
        cart.clear()
        assert cart.is_empty
        assert cart.discount is None
        assert cart.total_cents == 0

    def test_order_lines(self, cart, items, meal, pick_three):
        cart.add_item(items[0])
        cart.add_bundle(meal)
        cart.add_custom_bundle(pick_three, {2: 1})
        assert cart.to_order_lines() == [
            {"item_id": 1, "quantity": 1},
            {"bundle_id": 7, "quantity": 1},
            {"bundle_id": 8, "quantity": 1, "components": [{"inventory_item_id": 2, "quantity": 1}]},
        ]
