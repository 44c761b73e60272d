"""
ORM-level immutability enforcement.

Stock movements and order items are append-only, orders only change
status, reviewed designs are frozen and product counters only move
through the ledger.
"""

from decimal import Decimal

import pytest

from storefront_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from storefront_kernel.domain.lifecycle import ReviewDecision
from storefront_kernel.domain.values import MovementKind
from storefront_kernel.exceptions import ImmutabilityViolationError
from storefront_kernel.models import Design, Order, OrderItem, Product, StockMovement

IMAGE_URL = "https://img.example.com/wave.png"


@pytest.fixture
def placed_order(session, sequencer, make_product, cart_line, shipping_address):
    product = make_product(price=Decimal("20.00"))
    placement = sequencer.place_order(
        [cart_line(product, 2)], Decimal("40.00"), shipping_address,
    )
    return session.get(Order, placement.order_id)


class TestStockMovementImmutability:
    def test_update_blocked(self, session, ledger, admin, make_product):
        product = make_product()
        record = ledger.record_movement(admin, product.product_id, 5, MovementKind.STOCK_IN)
        movement = session.get(StockMovement, record.movement_id)

        movement.delta = 50
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "StockMovement"

    def test_delete_blocked(self, session, ledger, admin, make_product):
        product = make_product()
        record = ledger.record_movement(admin, product.product_id, 5, MovementKind.STOCK_IN)
        movement = session.get(StockMovement, record.movement_id)

        session.delete(movement)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_is_logged(self, session, ledger, admin, make_product, captured_logs):
        product = make_product()
        record = ledger.record_movement(admin, product.product_id, 5, MovementKind.STOCK_IN)
        movement = session.get(StockMovement, record.movement_id)

        movement.reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

        blocked = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert blocked[0]["entity_type"] == "StockMovement"
        assert blocked[0]["operation"] == "UPDATE"


class TestOrderImmutability:
    def test_total_change_blocked(self, session, placed_order):
        placed_order.total = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "total" in exc_info.value.reason

    def test_status_change_allowed(self, session, placed_order):
        placed_order.status = "processing"
        session.flush()
        assert placed_order.status == "processing"

    def test_delete_blocked(self, session, placed_order):
        session.delete(placed_order)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_item_update_blocked(self, session, placed_order):
        item = placed_order.items[0]
        item.quantity = 99
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "OrderItem"

    def test_item_delete_blocked(self, session, placed_order):
        session.delete(session.get(OrderItem, placed_order.items[0].id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestDesignImmutability:
    def test_draft_is_editable(self, session, design_service, customer):
        record = design_service.save_design(
            customer.actor_id, "Wave", "ocean wave", "Hoodie", IMAGE_URL,
        )
        design = session.get(Design, record.design_id)
        design.name = "Big Wave"
        session.flush()

    def test_approved_design_frozen(self, session, design_service, admin, customer):
        record = design_service.save_design(
            customer.actor_id, "Wave", "ocean wave", "Hoodie", IMAGE_URL,
        )
        design_service.review(admin, record.design_id, ReviewDecision.APPROVE)
        design = session.get(Design, record.design_id)

        design.image_url = "https://img.example.com/other.png"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_rejected_design_cannot_return_to_draft(
        self, session, design_service, admin, customer,
    ):
        record = design_service.save_design(
            customer.actor_id, "Wave", "ocean wave", "Cap", IMAGE_URL,
        )
        design_service.review(admin, record.design_id, ReviewDecision.REJECT)
        design = session.get(Design, record.design_id)

        design.status = "draft"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "status" in exc_info.value.reason


class TestProductCounterProtection:
    def test_stock_assignment_blocked(self, session, make_product):
        product = session.get(Product, make_product(stock=3).product_id)
        product.stock_on_hand = 99
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_catalog_fields_editable(self, session, make_product):
        product = session.get(Product, make_product().product_id)
        product.name = "Renamed"
        session.flush()


class TestListenerRegistration:
    def test_register_twice_and_unregister(self, session, make_product):
        register_immutability_listeners()
        unregister_immutability_listeners()

        product = session.get(Product, make_product().product_id)
        product.stock_on_hand = 5
        session.flush()

        register_immutability_listeners()
        product.stock_on_hand = 6
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
