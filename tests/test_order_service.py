from decimal import Decimal

import pytest

from espetinhos.database import LedgerStore
from espetinhos.errors import InvalidStateError, NotFoundError, ValidationError
from espetinhos.models.cash import CashCategory, CashTransaction, CashTransactionType
from espetinhos.models.inventory import InventoryItem, InventoryMovementType, InventoryTransaction
from espetinhos.models.order import Order, OrderItem, OrderStatus
from espetinhos.models.product import ProductCategory
from espetinhos.schemas.order import OrderCreate, OrderItemCreate, PartialPayment, PartialPaymentLine
from espetinhos.schemas.product import ProductCreate
from espetinhos.services import cash_service, inventory_service, notification_service, order_service, product_service


def _stock(db, product) -> Decimal:
    db.expire_all()
    return db.query(InventoryItem).filter(InventoryItem.product_id == product.id).one().quantity


# --- Opening and editing ---

def test_create_order_starts_open(db):
    order = order_service.create_order(db, OrderCreate(table_number=3, customer_name=" Ana "))
    assert order.status == OrderStatus.OPEN
    assert order.customer_name == "Ana"
    assert order.closed_at is None


def test_create_order_rejects_non_positive_table(db):
    with pytest.raises(ValidationError):
        order_service.create_order(db, OrderCreate(table_number=0))
    assert db.query(Order).count() == 0


def test_add_order_item_merges_same_product(db, make_product, make_order):
    product = make_product()
    order_id = make_order((product, 2))
    order_service.add_order_item(db, order_id, OrderItemCreate(product_id=product.id, quantity=Decimal("1.5")))

    lines = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()
    assert len(lines) == 1
    assert lines[0].quantity == Decimal("3.5")


def test_add_order_item_validates_input(db, make_product, make_order):
    product = make_product()
    order_id = make_order()
    with pytest.raises(ValidationError):
        order_service.add_order_item(db, order_id, OrderItemCreate(product_id=product.id, quantity=Decimal("0")))
    with pytest.raises(NotFoundError):
        order_service.add_order_item(db, order_id, OrderItemCreate(product_id="missing", quantity=Decimal("1")))
    with pytest.raises(NotFoundError):
        order_service.add_order_item(db, "missing", OrderItemCreate(product_id=product.id, quantity=Decimal("1")))


def test_remove_order_item(db, make_product, make_order):
    product = make_product()
    order_id = make_order((product, 1))
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()

    order_service.remove_order_item(db, line.id)

    assert db.query(OrderItem).count() == 0
    with pytest.raises(NotFoundError):
        order_service.remove_order_item(db, line.id)


def test_list_open_orders_reports_amounts(db, make_product, make_order):
    a = make_product(name="Espetinho de frango", price="7.50")
    open_id = make_order((a, 2))
    closed_id = make_order((a, 1), table_number=2)
    order_service.close_order(db, closed_id)

    orders = order_service.list_open_orders(db)

    assert [o.id for o in orders] == [open_id]
    assert orders[0].total == Decimal("15.00")
    assert orders[0].amount_due == Decimal("15.00")


# --- Partial payment ---

def test_partial_payment_accumulates_without_cash_or_stock(db, make_product, make_order):
    product = make_product(stock="10")
    order_id = make_order((product, 4))
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()

    order = order_service.pay_partial_order_items(
        db, order_id, PartialPayment(items=[PartialPaymentLine(order_item_id=line.id, quantity=Decimal("1"))])
    )
    order = order_service.pay_partial_order_items(
        db, order_id, PartialPayment(items=[PartialPaymentLine(order_item_id=line.id, quantity=Decimal("2"))])
    )

    assert order.items[0].paid_quantity == Decimal("3")
    assert order.amount_paid == Decimal("24.00")
    assert order.amount_due == Decimal("8.00")
    assert order.status == OrderStatus.OPEN
    assert db.query(CashTransaction).count() == 0
    assert _stock(db, product) == Decimal("10")


def test_partial_payment_is_clamped_to_ordered_quantity(db, make_product, make_order):
    product = make_product()
    order_id = make_order((product, 2))
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()

    for paid in ("1.5", "1.5", "5"):
        order_service.pay_partial_order_items(
            db, order_id, PartialPayment(items=[PartialPaymentLine(order_item_id=line.id, quantity=Decimal(paid))])
        )
        db.refresh(line)
        assert line.paid_quantity <= line.quantity

    assert line.paid_quantity == Decimal("2")


def test_partial_payment_rejects_foreign_item(db, make_product, make_order):
    product = make_product()
    first = make_order((product, 1))
    second = make_order((product, 1), table_number=2)
    foreign_line = db.query(OrderItem).filter(OrderItem.order_id == second).one()

    with pytest.raises(NotFoundError):
        order_service.pay_partial_order_items(
            db, first, PartialPayment(items=[PartialPaymentLine(order_item_id=foreign_line.id, quantity=Decimal("1"))])
        )
    db.refresh(foreign_line)
    assert foreign_line.paid_quantity == 0


# --- Settlement ---

def test_close_order_conserves_revenue(db, make_product, make_order):
    a = make_product(name="Espetinho de carne", price="10.00", stock="10")
    b = make_product(name="Refrigerante", price="5.00", stock="10")
    order_id = make_order((a, 2), (b, 1))

    result = order_service.close_order(db, order_id)

    assert result.success is True
    assert result.total == Decimal("25.00")
    cash = db.query(CashTransaction).all()
    assert len(cash) == 1
    assert cash[0].amount == Decimal("25.00")
    assert cash[0].type == CashTransactionType.INFLOW
    assert cash[0].category == CashCategory.SALE
    assert order_id in cash[0].description

    outs = (
        db.query(InventoryTransaction)
        .filter(InventoryTransaction.type == InventoryMovementType.OUT)
        .all()
    )
    assert sorted(t.quantity for t in outs) == [Decimal("1"), Decimal("2")]
    assert all(order_id in t.description for t in outs)

    order = db.get(Order, order_id)
    assert order.status == OrderStatus.CLOSED
    assert order.closed_at is not None
    assert {i.unit_price for i in order.items} == {Decimal("10.00"), Decimal("5.00")}


def test_close_order_scenario_table_three(db, make_product, make_order):
    espetinho = make_product(name="Espetinho", price="8.00", stock="5")
    order_id = make_order((espetinho, 3), table_number=3, customer_name="Ana")

    order_service.close_order(db, order_id)

    assert cash_service.get_cash_flow(db).total_entries == Decimal("24.00")
    assert _stock(db, espetinho) == Decimal("2")


def test_close_order_clamps_short_stock(db, make_product, make_order, caplog):
    espetinho = make_product(name="Espetinho", price="8.00", stock="1")
    order_id = make_order((espetinho, 3), table_number=3, customer_name="Ana")

    with caplog.at_level("WARNING"):
        result = order_service.close_order(db, order_id)

    assert result.total == Decimal("24.00")
    assert _stock(db, espetinho) == Decimal("0")
    assert result.deductions[0].deducted == Decimal("1")
    assert result.deductions[0].shortfall == Decimal("2")
    assert "Insufficient stock" in caplog.text


def test_close_order_twice_is_rejected_without_side_effects(db, make_product, make_order):
    product = make_product(price="10.00", stock="10")
    order_id = make_order((product, 2))
    order_service.close_order(db, order_id)

    with pytest.raises(InvalidStateError):
        order_service.close_order(db, order_id)

    assert db.query(CashTransaction).count() == 1
    assert db.query(InventoryTransaction).filter(InventoryTransaction.type == InventoryMovementType.OUT).count() == 1
    assert _stock(db, product) == Decimal("8")


def test_close_order_sums_duplicate_products_once(db, make_product, make_order):
    product = make_product(stock="10")
    order_id = make_order((product, 1), (product, 2))

    result = order_service.close_order(db, order_id)

    assert len(result.deductions) == 1
    assert result.deductions[0].deducted == Decimal("3")


def test_close_order_without_stock_record_still_settles(db, make_order):
    from espetinhos.models.product import Product, ProductCategory

    product = Product(name="Porção de mandioca", price=Decimal("12.00"), category=ProductCategory.ACOMPANHAMENTO)
    db.add(product)
    db.commit()
    order_id = make_order((product, 1))

    result = order_service.close_order(db, order_id)

    assert result.total == Decimal("12.00")
    assert result.deductions == []
    assert db.query(InventoryTransaction).count() == 0


def test_close_missing_order(db):
    with pytest.raises(NotFoundError):
        order_service.close_order(db, "missing")


def test_closed_order_cannot_be_edited(db, make_product, make_order):
    product = make_product()
    order_id = make_order((product, 1))
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()
    order_service.close_order(db, order_id)

    with pytest.raises(InvalidStateError):
        order_service.add_order_item(db, order_id, OrderItemCreate(product_id=product.id, quantity=Decimal("1")))
    with pytest.raises(InvalidStateError):
        order_service.remove_order_item(db, line.id)
    with pytest.raises(InvalidStateError):
        order_service.pay_partial_order_items(
            db, order_id, PartialPayment(items=[PartialPaymentLine(order_item_id=line.id, quantity=Decimal("1"))])
        )


@pytest.mark.parametrize(
    "module, name",
    [
        (cash_service, "record_cash"),
        (inventory_service, "deduct_stock"),
    ],
)
def test_close_order_rolls_back_on_failure(db, make_product, make_order, monkeypatch, module, name):
    product = make_product(price="10.00", stock="5")
    order_id = make_order((product, 2))
    stock_moves_before = db.query(InventoryTransaction).count()

    def boom(*args, **kwargs):
        raise RuntimeError("disk unplugged")

    monkeypatch.setattr(module, name, boom)

    with pytest.raises(RuntimeError):
        order_service.close_order(db, order_id)

    db.expire_all()
    order = db.get(Order, order_id)
    assert order.status == OrderStatus.OPEN
    assert order.closed_at is None
    assert all(i.unit_price is None for i in order.items)
    assert db.query(CashTransaction).count() == 0
    assert db.query(InventoryTransaction).count() == stock_moves_before
    assert _stock(db, product) == Decimal("5")


def test_close_order_rolls_back_when_movement_write_fails(db, make_product, make_order, monkeypatch):
    a = make_product(name="A", stock="5")
    b = make_product(name="B", stock="5")
    order_id = make_order((a, 1), (b, 1))
    original = inventory_service._record_movement
    calls = []

    def fail_on_second(db_, item, quantity, movement, description):
        calls.append(item.id)
        if len(calls) == 2:
            raise RuntimeError("constraint violated")
        return original(db_, item, quantity, movement, description)

    monkeypatch.setattr(inventory_service, "_record_movement", fail_on_second)

    with pytest.raises(RuntimeError):
        order_service.close_order(db, order_id)

    assert db.get(Order, order_id).status == OrderStatus.OPEN
    assert _stock(db, a) == Decimal("5")
    assert _stock(db, b) == Decimal("5")


def test_close_order_publishes_notification(db, make_product, make_order):
    product = make_product(price="10.00")
    order_id = make_order((product, 1))
    seen = []
    notification_service.subscribe(notification_service.ORDER_CLOSED, lambda event, payload: seen.append(payload))

    order_service.close_order(db, order_id)

    assert seen == [{"order_id": order_id, "table_number": 1, "total": "10.00"}]


def test_close_empty_order_posts_zero_sale(db, make_order):
    order_id = make_order()

    result = order_service.close_order(db, order_id)

    assert result.total == Decimal("0.00")
    assert result.deductions == []
    assert db.query(CashTransaction).one().amount == Decimal("0.00")


def test_quantity_below_stored_precision_is_rejected(db, make_product, make_order):
    product = make_product(stock="5")
    order_id = make_order()

    with pytest.raises(ValidationError):
        order_service.add_order_item(db, order_id, OrderItemCreate(product_id=product.id, quantity=Decimal("0.0004")))

    assert db.query(OrderItem).count() == 0


def test_partial_payment_below_stored_precision_is_rejected(db, make_product, make_order):
    product = make_product()
    order_id = make_order((product, 1))
    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()

    with pytest.raises(ValidationError):
        order_service.pay_partial_order_items(
            db, order_id, PartialPayment(items=[PartialPaymentLine(order_item_id=line.id, quantity=Decimal("0.0004"))])
        )


def test_quantity_is_rounded_to_stored_precision(db, make_product, make_order):
    product = make_product(price="10.00")
    order_id = make_order((product, "0.0005"))

    line = db.query(OrderItem).filter(OrderItem.order_id == order_id).one()
    assert line.quantity == Decimal("0.001")
    assert order_service.close_order(db, order_id).total == Decimal("0.01")


def test_concurrent_close_settles_once(tmp_path):
    ledger = LedgerStore(f"sqlite:///{tmp_path / 'ledger.db'}")
    ledger.create_schema()
    first, second = ledger.session(), ledger.session()
    try:
        product = product_service.create_product(
            first, ProductCreate(name="Espetinho", price=Decimal("8.00"), category=ProductCategory.ESPETINHO)
        )
        order = order_service.create_order(first, OrderCreate(table_number=3))
        order_service.add_order_item(first, order.id, OrderItemCreate(product_id=product.id, quantity=Decimal("2")))

        # the second session already holds the order as open
        stale = order_service.require_order(second, order.id)
        assert stale.status == OrderStatus.OPEN

        order_service.close_order(first, order.id)

        with pytest.raises(InvalidStateError):
            order_service.close_order(second, order.id)

        second.expire_all()
        assert second.query(CashTransaction).count() == 1
        assert (
            second.query(InventoryTransaction).filter(InventoryTransaction.type == InventoryMovementType.OUT).count()
            == 1
        )
        assert second.get(Order, order.id).status == OrderStatus.CLOSED
    finally:
        first.close()
        second.close()
        ledger.dispose()
