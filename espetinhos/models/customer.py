import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from espetinhos.database import Base
from espetinhos.time_utils import now_local


class CustomerTransactionType(str, PyEnum):
    CREDIT = "credit"
    PAYMENT = "payment"


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    contact: Mapped[str] = mapped_column(String, default="")
    address: Mapped[str] = mapped_column(String, default="")
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, onupdate=now_local)

    transactions: Mapped[list["CustomerTransaction"]] = relationship(
        "CustomerTransaction",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerTransaction.created_at",
    )


class CustomerTransaction(Base):
    __tablename__ = "customer_transactions"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_customer_transactions_amount_non_negative"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_id: Mapped[str] = mapped_column(
        String, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[CustomerTransactionType] = mapped_column(
        Enum(CustomerTransactionType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, index=True)

    customer: Mapped["Customer"] = relationship("Customer", back_populates="transactions")
    items: Mapped[list["CustomerTransactionItem"]] = relationship(
        "CustomerTransactionItem", back_populates="transaction", cascade="all, delete-orphan"
    )


class CustomerTransactionItem(Base):
    """Line of a credit sale; ``unit_price`` is the product price at sale time."""

    __tablename__ = "customer_transaction_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_id: Mapped[str] = mapped_column(
        String, ForeignKey("customer_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(String, ForeignKey("products.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    transaction: Mapped["CustomerTransaction"] = relationship("CustomerTransaction", back_populates="items")
    product: Mapped["Product"] = relationship("Product")


from espetinhos.models.product import Product  # noqa: E402, F401
