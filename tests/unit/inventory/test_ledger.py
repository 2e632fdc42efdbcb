"""Unit tests for InventoryLedger.

Covers:
- Conditional decrement and the movement written with it.
- Rejection when stock is short (no movement, stock untouched).
- Unconditional restore.
- Movement queries used for reconciliation.
- Refusal to run outside a transaction.
"""

from __future__ import annotations

import pytest

from django.db import transaction

from modules.inventory.exceptions import InsufficientStock, TransactionRequired
from modules.inventory.ledger import InventoryLedger
from modules.inventory.models import InventoryMovement, MovementType, ReferenceType
from modules.products.exceptions import ProductNotFound

pytestmark = pytest.mark.unit


@pytest.fixture()
def ledger():
    return InventoryLedger()


class TestDecrement:
    def test_decrements_and_records_movement(self, ledger, make_product):
        product = make_product(stock=10)

        movement = ledger.decrement(product.id, 3, "Order ORD-1", reference_id=7)

        product.refresh_from_db()
        assert product.stock_quantity == 7
        assert movement.type == MovementType.OUT
        assert movement.quantity == 3
        assert movement.previous_stock == 10
        assert movement.new_stock == 7
        assert movement.reference_type == ReferenceType.ORDER
        assert movement.reference_id == 7

    def test_can_take_the_last_unit(self, ledger, make_product):
        product = make_product(stock=2)
        ledger.decrement(product.id, 2, "Order ORD-1", reference_id=1)
        product.refresh_from_db()
        assert product.stock_quantity == 0

    def test_insufficient_stock_is_rejected(self, ledger, make_product):
        product = make_product(stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            ledger.decrement(product.id, 3, "Order ORD-1", reference_id=1)

        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert exc_info.value.details == {
            "product_id": product.id,
            "requested_quantity": 3,
            "available_quantity": 2,
        }
        product.refresh_from_db()
        assert product.stock_quantity == 2
        assert not InventoryMovement.objects.filter(product=product).exists()

    def test_missing_product(self, ledger):
        with pytest.raises(ProductNotFound):
            ledger.decrement(999_999, 1, "Order ORD-1", reference_id=1)

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5])
    def test_quantity_must_be_positive_int(self, ledger, make_product, quantity):
        product = make_product(stock=5)
        with pytest.raises(ValueError):
            ledger.decrement(product.id, quantity, "bad", reference_id=1)


class TestRestore:
    def test_restores_and_records_return(self, ledger, make_product):
        product = make_product(stock=4)

        movement = ledger.restore(
            product.id, 2, "Order ORD-1 cancelled", reference_id=7
        )

        product.refresh_from_db()
        assert product.stock_quantity == 6
        assert movement.type == MovementType.IN
        assert movement.previous_stock == 4
        assert movement.new_stock == 6
        assert movement.reference_type == ReferenceType.RETURN

    def test_missing_product(self, ledger):
        with pytest.raises(ProductNotFound):
            ledger.restore(999_999, 1, "nothing", reference_id=1)


class TestQueries:
    def test_movements_for_reference(self, ledger, make_product):
        a = make_product(stock=5)
        b = make_product(stock=5)
        ledger.decrement(a.id, 1, "Order 1", reference_id=1)
        ledger.decrement(b.id, 2, "Order 1", reference_id=1)
        ledger.decrement(a.id, 1, "Order 2", reference_id=2)
        ledger.restore(b.id, 2, "Order 1 cancelled", reference_id=1)

        movements = ledger.movements_for(1)

        assert [(m.product_id, m.type) for m in movements] == [
            (a.id, MovementType.OUT),
            (b.id, MovementType.OUT),
            (b.id, MovementType.IN),
        ]
        assert len(ledger.movements_for(1, [ReferenceType.ORDER])) == 2

    def test_net_movement(self, ledger, make_product):
        product = make_product(stock=10)
        ledger.decrement(product.id, 4, "Order 1", reference_id=1)
        ledger.restore(product.id, 1, "Order 1 cancelled", reference_id=1)

        assert ledger.net_movement(product.id) == -3
        product.refresh_from_db()
        assert product.stock_quantity == 10 + ledger.net_movement(product.id)


@pytest.mark.django_db(transaction=True)
class TestTransactionGuard:
    def test_decrement_outside_transaction_is_refused(self, ledger, make_product):
        product = make_product(stock=5)

        with pytest.raises(TransactionRequired):
            ledger.decrement(product.id, 1, "Order 1", reference_id=1)

        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_restore_outside_transaction_is_refused(self, ledger, make_product):
        product = make_product(stock=5)
        with pytest.raises(TransactionRequired):
            ledger.restore(product.id, 1, "Order 1 cancelled", reference_id=1)

    def test_inside_atomic_is_accepted(self, ledger, make_product):
        product = make_product(stock=5)
        with transaction.atomic():
            ledger.decrement(product.id, 1, "Order 1", reference_id=1)
        product.refresh_from_db()
        assert product.stock_quantity == 4
