import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from espetinhos.database import atomic
from espetinhos.errors import InvalidStateError, NotFoundError, ValidationError
from espetinhos.models.cash import CashCategory, CashTransactionType
from espetinhos.models.order import Order, OrderItem, OrderStatus, ensure_open, ensure_transition
from espetinhos.schemas.inventory import StockLine
from espetinhos.schemas.order import OrderCloseResult, OrderCreate, OrderItemCreate, PartialPayment
from espetinhos.services import cash_service, inventory_service, notification_service, product_service
from espetinhos.time_utils import now_local

logger = logging.getLogger(__name__)


def create_order(db: Session, data: OrderCreate) -> Order:
    if data.table_number < 1:
        raise ValidationError("Table number must be a positive integer")
    customer_name = (data.customer_name or "").strip() or None

    with atomic(db):
        order = Order(table_number=data.table_number, customer_name=customer_name, status=OrderStatus.OPEN)
        db.add(order)
    logger.info("Opened order %s for table %s", order.id, data.table_number)
    db.refresh(order)
    return order


def get_order(db: Session, order_id: str) -> Order | None:
    return db.query(Order).filter(Order.id == order_id).first()


def require_order(db: Session, order_id: str) -> Order:
    order = get_order(db, order_id)
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def list_open_orders(db: Session) -> list[Order]:
    return db.query(Order).filter(Order.status == OrderStatus.OPEN).order_by(Order.created_at).all()


def add_order_item(db: Session, order_id: str, data: OrderItemCreate) -> OrderItem:
    """Add ``quantity`` of a product to an open order, merging into an existing line."""
    if data.quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")
    order = require_order(db, order_id)
    ensure_open(order)
    product = product_service.require_product(db, data.product_id)

    with atomic(db):
        line = (
            db.query(OrderItem)
            .filter(OrderItem.order_id == order.id, OrderItem.product_id == product.id)
            .first()
        )
        if line:
            line.quantity = line.quantity + data.quantity
        else:
            line = OrderItem(order_id=order.id, product_id=product.id, quantity=data.quantity, paid_quantity=Decimal("0"))
            db.add(line)
    db.refresh(line)
    return line


def remove_order_item(db: Session, order_item_id: str) -> None:
    line = db.query(OrderItem).filter(OrderItem.id == order_item_id).first()
    if not line:
        raise NotFoundError(f"Order item {order_item_id} not found")
    ensure_open(line.order)
    with atomic(db):
        db.delete(line)


def pay_partial_order_items(db: Session, order_id: str, data: PartialPayment) -> Order:
    """Mark part of an open order's lines as paid.

    ``paid_quantity`` never exceeds the ordered quantity: an excess payment is
    clamped and logged. No cash or stock is touched.
    """
    order = require_order(db, order_id)
    ensure_open(order)
    lines = {item.id: item for item in order.items}
    for payment in data.items:
        if payment.order_item_id not in lines:
            raise NotFoundError(f"Order item {payment.order_item_id} not found in order {order_id}")
        if payment.quantity <= 0:
            raise ValidationError("Paid quantity must be greater than zero")

    with atomic(db):
        for payment in data.items:
            line = lines[payment.order_item_id]
            paid = line.paid_quantity + payment.quantity
            if paid > line.quantity:
                logger.warning(
                    "Clamping paid quantity of item %s to %s (requested total %s)", line.id, line.quantity, paid
                )
                paid = line.quantity
            line.paid_quantity = paid
    db.refresh(order)
    return order


def close_order(db: Session, order_id: str) -> OrderCloseResult:
    """Settle an open order as one atomic unit.

    Marks it closed, freezes line prices, posts the sale to the cash flow and
    takes every sold product out of stock. Any failure rolls all of it back.
    Closing a non-open order is rejected, so stock and cash move at most once.
    """
    order = require_order(db, order_id)
    ensure_transition(order.status, OrderStatus.CLOSED)

    with atomic(db):
        # Conditional write: a competing close that got here first leaves nothing to update
        result = db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.OPEN)
            .values(status=OrderStatus.CLOSED, closed_at=now_local())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError(f"Order {order_id} is already closed")
        db.refresh(order)

        total = Decimal("0.00")
        sold: dict[str, Decimal] = defaultdict(Decimal)
        for item in order.items:
            item.unit_price = item.product.price
            total += item.line_total
            sold[item.product_id] += item.quantity

        cash = cash_service.record_cash(
            db,
            CashTransactionType.INFLOW,
            total,
            CashCategory.SALE,
            f"Venda automática via pedido {order.id}",
        )
        deductions = inventory_service.deduct_stock(
            db,
            [StockLine(product_id=product_id, quantity=qty) for product_id, qty in sold.items()],
            f"Venda automática via pedido {order.id}",
        )
        cash_id = cash.id

    logger.info("Closed order %s: total %s, %d stock deductions", order_id, total, len(deductions))
    notification_service.publish(
        notification_service.ORDER_CLOSED,
        {"order_id": order_id, "table_number": order.table_number, "total": str(total)},
    )
    return OrderCloseResult(order_id=order_id, total=total, cash_transaction_id=cash_id, deductions=deductions)
