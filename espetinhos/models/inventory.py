import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from espetinhos.database import Base
from espetinhos.time_utils import now_local


class InventoryMovementType(str, PyEnum):
    IN = "in"
    OUT = "out"


class InventoryItem(Base):
    """Stock record, either owned by a product or named manually (raw ingredients)."""

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        CheckConstraint(
            "(product_id IS NULL) <> (manual_name IS NULL)",
            name="ck_inventory_items_product_xor_manual",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    product_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("products.id"), unique=True, nullable=True
    )
    manual_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    unit: Mapped[str] = mapped_column(String, nullable=False)
    min_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    alert_disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)

    product: Mapped[Optional["Product"]] = relationship("Product", back_populates="inventory_item")
    transactions: Mapped[list["InventoryTransaction"]] = relationship(
        "InventoryTransaction",
        back_populates="inventory_item",
        order_by="InventoryTransaction.created_at.desc()",
        passive_deletes=True,
    )

    @property
    def display_name(self) -> str:
        return self.product.name if self.product else (self.manual_name or "")

    @property
    def is_low_stock(self) -> bool:
        return not self.alert_disabled and self.quantity <= self.min_quantity


class InventoryTransaction(Base):
    """Append-only stock movement. ``quantity`` is always a positive magnitude."""

    __tablename__ = "inventory_transactions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    # Nulled when a product's stock record is dropped; the row itself survives
    inventory_item_id: Mapped[Optional[str]] = mapped_column(
        String, ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    item_name: Mapped[str] = mapped_column(String, default="")
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    type: Mapped[InventoryMovementType] = mapped_column(
        Enum(InventoryMovementType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)

    inventory_item: Mapped[Optional["InventoryItem"]] = relationship("InventoryItem", back_populates="transactions")


from espetinhos.models.product import Product  # noqa: E402, F401
