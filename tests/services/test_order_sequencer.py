"""
Tests for OrderSequencer: checkout persistence, order numbering and the
order status lifecycle.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from storefront_kernel.domain.lifecycle import OrderStatus
from storefront_kernel.domain.policies import OrderingPolicy
from storefront_kernel.domain.values import SYSTEM_ACTOR_ID, MovementKind
from storefront_kernel.exceptions import (
    InsufficientStockError,
    InvalidTransitionError,
    OrderNotFoundError,
    UnauthorizedError,
    ValidationFailedError,
)
from storefront_kernel.models import Order, OrderItem, StockMovement
from storefront_kernel.selectors.inventory_selector import InventorySelector
from storefront_kernel.selectors.order_selector import OrderSelector
from storefront_kernel.services.order_sequencer import OrderSequencer
from storefront_kernel.services.sequence_service import SequenceService


def _count(session, model) -> int:
    return session.execute(select(func.count(model.id))).scalar_one()


@pytest.fixture
def decrementing_sequencer(session, inventory_policy, deterministic_clock):
    return OrderSequencer(
        session,
        OrderingPolicy(decrement_stock_on_checkout=True),
        inventory_policy,
        deterministic_clock,
    )


class TestOrderNumbering:
    """ORD-<n> allocation from the locked per-store counter."""

    def test_first_order_is_ord_7001(self, sequencer, make_product, cart_line, shipping_address):
        product = make_product(price=Decimal("25.00"))
        placement = sequencer.place_order(
            [cart_line(product, 2)], Decimal("50.00"), shipping_address,
        )
        assert placement.order_number == "ORD-7001"
        assert placement.total == Decimal("50.00")

    def test_numbers_strictly_increase(
        self, sequencer, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"))
        numbers = [
            sequencer.place_order(
                [cart_line(product)], Decimal("10.00"), shipping_address,
            ).order_number
            for _ in range(3)
        ]
        assert numbers == ["ORD-7001", "ORD-7002", "ORD-7003"]

    def test_counter_tracks_last_number(
        self, session, sequencer, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"))
        sequencer.place_order([cart_line(product)], Decimal("10.00"), shipping_address)
        sequencer.place_order([cart_line(product)], Decimal("10.00"), shipping_address)

        name = SequenceService.order_number_sequence("default")
        assert SequenceService(session).current_value(name) == 7002

    def test_stores_number_independently(
        self, session, sequencer, make_product, cart_line, shipping_address,
        deterministic_clock,
    ):
        eu = OrderSequencer(
            session,
            OrderingPolicy(store_id="eu", order_number_prefix="EU-", order_number_start=100),
            clock=deterministic_clock,
        )
        product = make_product(price=Decimal("10.00"))

        default_first = sequencer.place_order(
            [cart_line(product)], Decimal("10.00"), shipping_address,
        )
        eu_first = eu.place_order([cart_line(product)], Decimal("10.00"), shipping_address)

        assert default_first.order_number == "ORD-7001"
        assert eu_first.order_number == "EU-101"

    def test_counter_seeded_from_existing_orders(
        self, session, sequencer, make_product, cart_line, shipping_address, captured_logs,
    ):
        """Orders written before the counter existed never get re-numbered."""
        session.add(Order(
            store_id="default",
            seq=7050,
            order_number="ORD-7050",
            status="delivered",
            subtotal=Decimal("5.00"),
            tax=Decimal("0.00"),
            total=Decimal("5.00"),
            ship_name="Legacy",
            ship_email="legacy@example.com",
            ship_street="1 Old Road",
            ship_city="Bristol",
            ship_state="Avon",
            ship_postal_code="BS1 1AA",
            ship_phone="01179460000",
            created_by_id=SYSTEM_ACTOR_ID,
        ))
        session.flush()

        product = make_product(price=Decimal("10.00"))
        placement = sequencer.place_order(
            [cart_line(product)], Decimal("10.00"), shipping_address,
        )

        assert placement.order_number == "ORD-7051"
        assert any(
            r["message"] == "order_counter_seeded_from_existing_orders"
            for r in captured_logs()
        )


class TestPlaceOrder:
    """What a successful checkout writes."""

    def test_order_and_items_persisted(
        self, session, sequencer, make_product, cart_line, shipping_address, customer,
    ):
        tee = make_product(name="Tee", price=Decimal("25.00"))
        cap = make_product(name="Cap", price=Decimal("12.50"))

        placement = sequencer.place_order(
            [cart_line(tee, 2, size="L"), cart_line(cap, 1, color="#FFFFFF")],
            Decimal("62.50"),
            shipping_address,
            user_id=customer.actor_id,
        )

        order = OrderSelector(session).get_order(placement.order_id)
        assert order.order_number == "ORD-7001"
        assert order.seq == 7001
        assert order.status is OrderStatus.PENDING
        assert order.user_id == customer.actor_id
        assert order.subtotal == Decimal("62.50")
        assert order.tax == Decimal("0.00")
        assert order.total == Decimal("62.50")
        assert order.shipping_address == shipping_address
        assert [item.line_no for item in order.items] == [1, 2]
        assert order.items[0].product_name == "Tee"
        assert order.items[0].size == "L"
        assert order.items[0].line_subtotal == Decimal("50.00")
        assert order.items[1].color == "#FFFFFF"
        assert order.item_count == 3

    def test_guest_checkout_recorded_as_system_actor(
        self, session, sequencer, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"))
        placement = sequencer.place_order(
            [cart_line(product)], Decimal("10.00"), shipping_address,
        )
        order = session.get(Order, placement.order_id)
        assert order.user_id is None
        assert order.created_by_id == SYSTEM_ACTOR_ID

    def test_tax_applied(
        self, session, make_product, cart_line, shipping_address, deterministic_clock,
    ):
        taxed = OrderSequencer(
            session, OrderingPolicy(tax_rate=Decimal("0.10")), clock=deterministic_clock,
        )
        product = make_product(price=Decimal("19.99"))

        placement = taxed.place_order(
            [cart_line(product, 3)], Decimal("65.97"), shipping_address,
        )

        order = session.get(Order, placement.order_id)
        assert order.subtotal == Decimal("59.97")
        assert order.tax == Decimal("6.00")
        assert order.total == Decimal("65.97")

    def test_order_placed_logged(
        self, sequencer, make_product, cart_line, shipping_address, captured_logs,
    ):
        product = make_product(price=Decimal("10.00"))
        sequencer.place_order([cart_line(product)], Decimal("10.00"), shipping_address)

        placed = [r for r in captured_logs() if r["message"] == "order_placed"]
        assert len(placed) == 1
        assert placed[0]["order_number"] == "ORD-7001"
        assert placed[0]["store_id"] == "default"
        assert placed[0]["total"] == "10.00"

    def test_stock_untouched_by_default(
        self, sequencer, ledger, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)
        sequencer.place_order([cart_line(product, 2)], Decimal("20.00"), shipping_address)
        assert ledger.current_stock(product.product_id) == 5


class TestPlaceOrderRejections:
    """Rejected checkouts write nothing and consume no number."""

    def test_total_mismatch_writes_nothing(
        self, session, sequencer, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("25.00"))

        with pytest.raises(ValidationFailedError) as exc_info:
            sequencer.place_order(
                [cart_line(product, 2)], Decimal("49.00"), shipping_address,
            )

        assert exc_info.value.field_errors[0]["field"] == "total"
        assert _count(session, Order) == 0
        assert _count(session, OrderItem) == 0
        name = SequenceService.order_number_sequence("default")
        assert SequenceService(session).current_value(name) is None

    def test_empty_cart(self, sequencer, shipping_address):
        with pytest.raises(ValidationFailedError):
            sequencer.place_order([], Decimal("0.00"), shipping_address)

    def test_rejection_does_not_burn_a_number(
        self, sequencer, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"))
        with pytest.raises(ValidationFailedError):
            sequencer.place_order([cart_line(product)], Decimal("11.00"), shipping_address)

        placement = sequencer.place_order(
            [cart_line(product)], Decimal("10.00"), shipping_address,
        )
        assert placement.order_number == "ORD-7001"


class TestCheckoutStockDecrement:
    """decrement_stock_on_checkout=True: checkout issues STOCK_OUT movements."""

    def test_stock_decremented_with_order_reference(
        self, session, decrementing_sequencer, ledger, make_product, cart_line,
        shipping_address,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)

        placement = decrementing_sequencer.place_order(
            [cart_line(product, 2)], Decimal("20.00"), shipping_address,
        )

        assert ledger.current_stock(product.product_id) == 3
        history = InventorySelector(session).movement_history(
            kind=MovementKind.STOCK_OUT, product_id=product.product_id,
        )
        assert len(history) == 1
        assert history[0].delta == -2
        assert history[0].reference == placement.order_number
        assert history[0].reason == "Order ORD-7001"

    def test_insufficient_stock_rolls_back_whole_order(
        self, session, decrementing_sequencer, ledger, make_product, cart_line,
        shipping_address,
    ):
        plenty = make_product(price=Decimal("10.00"), stock=10)
        scarce = make_product(price=Decimal("10.00"), stock=1)

        with pytest.raises(InsufficientStockError) as exc_info:
            decrementing_sequencer.place_order(
                [cart_line(plenty, 2), cart_line(scarce, 2)],
                Decimal("40.00"),
                shipping_address,
            )

        assert exc_info.value.on_hand == 1
        assert exc_info.value.requested == 2
        assert _count(session, Order) == 0
        assert ledger.current_stock(plenty.product_id) == 10
        assert ledger.current_stock(scarce.product_id) == 1
        assert _count(session, StockMovement) == 2

        placement = decrementing_sequencer.place_order(
            [cart_line(plenty, 1)], Decimal("10.00"), shipping_address,
        )
        assert placement.order_number == "ORD-7001"


class TestUpdateStatus:
    """Admin status changes along the order lifecycle."""

    @pytest.fixture
    def order_id(self, sequencer, make_product, cart_line, shipping_address):
        product = make_product(price=Decimal("10.00"))
        return sequencer.place_order(
            [cart_line(product)], Decimal("10.00"), shipping_address,
        ).order_id

    def test_happy_path_to_delivered(self, session, sequencer, admin, order_id):
        for status in ("processing", "shipped", "delivered"):
            assert sequencer.update_status(admin, order_id, status) is OrderStatus(status)

        order = session.get(Order, order_id)
        assert order.status == "delivered"
        assert order.updated_by_id == admin.actor_id

    def test_illegal_transition(self, sequencer, admin, order_id):
        with pytest.raises(InvalidTransitionError) as exc_info:
            sequencer.update_status(admin, order_id, OrderStatus.SHIPPED)
        assert exc_info.value.from_status == "pending"
        assert exc_info.value.to_status == "shipped"

    def test_terminal_status_is_final(self, sequencer, admin, order_id):
        sequencer.update_status(admin, order_id, OrderStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            sequencer.update_status(admin, order_id, OrderStatus.PROCESSING)

    def test_same_status_is_noop(self, sequencer, admin, order_id, captured_logs):
        assert sequencer.update_status(admin, order_id, "pending") is OrderStatus.PENDING
        assert not any(r["message"] == "order_status_changed" for r in captured_logs())

    def test_customer_cannot_change_status(self, sequencer, customer, order_id):
        with pytest.raises(UnauthorizedError):
            sequencer.update_status(customer, order_id, OrderStatus.PROCESSING)

    def test_unknown_order(self, sequencer, admin):
        with pytest.raises(OrderNotFoundError):
            sequencer.update_status(admin, uuid4(), OrderStatus.PROCESSING)

    def test_unknown_status(self, sequencer, admin, order_id):
        with pytest.raises(ValidationFailedError):
            sequencer.update_status(admin, order_id, "lost")


class TestCancellationRestock:
    def test_cancel_restocks_when_checkout_decrements(
        self, session, decrementing_sequencer, ledger, admin, make_product, cart_line,
        shipping_address,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)
        placement = decrementing_sequencer.place_order(
            [cart_line(product, 2)], Decimal("20.00"), shipping_address,
        )
        assert ledger.current_stock(product.product_id) == 3

        decrementing_sequencer.update_status(admin, placement.order_id, OrderStatus.CANCELLED)

        assert ledger.current_stock(product.product_id) == 5
        restock = InventorySelector(session).movement_history(
            kind=MovementKind.STOCK_IN, product_id=product.product_id, limit=1,
        )[0]
        assert restock.delta == 2
        assert restock.reason == "Order ORD-7001 cancelled"

    def test_cancel_without_decrement_leaves_stock(
        self, sequencer, ledger, admin, make_product, cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)
        placement = sequencer.place_order(
            [cart_line(product, 2)], Decimal("20.00"), shipping_address,
        )
        sequencer.update_status(admin, placement.order_id, OrderStatus.CANCELLED)
        assert ledger.current_stock(product.product_id) == 5

    def test_cancel_after_enabling_decrement_leaves_stock(
        self, session, sequencer, ledger, admin, make_product, cart_line,
        shipping_address, inventory_policy, deterministic_clock,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)
        placement = sequencer.place_order(
            [cart_line(product, 3)], Decimal("30.00"), shipping_address,
        )

        OrderSequencer(
            session,
            OrderingPolicy(decrement_stock_on_checkout=True),
            inventory_policy,
            deterministic_clock,
        ).update_status(admin, placement.order_id, OrderStatus.CANCELLED)

        assert ledger.current_stock(product.product_id) == 5
        assert InventorySelector(session).movement_history(
            kind=MovementKind.STOCK_IN, product_id=product.product_id,
        )[0].reason != "Order ORD-7001 cancelled"

    def test_cancel_after_disabling_decrement_restocks(
        self, session, decrementing_sequencer, sequencer, ledger, admin, make_product,
        cart_line, shipping_address,
    ):
        product = make_product(price=Decimal("10.00"), stock=5)
        placement = decrementing_sequencer.place_order(
            [cart_line(product, 3)], Decimal("30.00"), shipping_address,
        )
        assert ledger.current_stock(product.product_id) == 2

        sequencer.update_status(admin, placement.order_id, OrderStatus.CANCELLED)

        assert ledger.current_stock(product.product_id) == 5
