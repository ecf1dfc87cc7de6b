import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from espetinhos.database import Base
from espetinhos.errors import InvalidStateError
from espetinhos.time_utils import now_local

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


class OrderStatus(str, PyEnum):
    OPEN = "open"
    CLOSED = "closed"


# Closed is terminal
_ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.OPEN: frozenset({OrderStatus.CLOSED}),
    OrderStatus.CLOSED: frozenset(),
}


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if target not in _ALLOWED_TRANSITIONS[OrderStatus(current)]:
        raise InvalidStateError(f"Cannot move order from '{OrderStatus(current).value}' to '{target.value}'")


def ensure_open(order: "Order") -> None:
    if order.status != OrderStatus.OPEN:
        raise InvalidStateError(f"Order {order.id} is {OrderStatus(order.status).value}")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, values_callable=lambda x: [e.value for e in x]),
        default=OrderStatus.OPEN,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.created_at"
    )

    @property
    def total(self) -> Decimal:
        return sum((i.line_total for i in self.items), ZERO)

    @property
    def amount_paid(self) -> Decimal:
        return sum(((i.paid_quantity * i.price).quantize(CENTS) for i in self.items), ZERO)

    @property
    def amount_due(self) -> Decimal:
        return self.total - self.amount_paid


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint(
            "paid_quantity >= 0 AND paid_quantity <= quantity", name="ck_order_items_paid_within_quantity"
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id: Mapped[str] = mapped_column(
        String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(String, ForeignKey("products.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    paid_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    # Price charged, frozen when the order is closed
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product: Mapped["Product"] = relationship("Product")

    @property
    def product_name(self) -> str:
        return self.product.name

    @property
    def price(self) -> Decimal:
        return self.unit_price if self.unit_price is not None else self.product.price

    @property
    def line_total(self) -> Decimal:
        return (self.quantity * self.price).quantize(CENTS)


from espetinhos.models.product import Product  # noqa: E402, F401
