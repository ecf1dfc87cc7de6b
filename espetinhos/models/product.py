import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from espetinhos.database import Base
from espetinhos.time_utils import now_local


class ProductCategory(str, PyEnum):
    ESPETINHO = "espetinho"
    BEBIDA = "bebida"
    ACOMPANHAMENTO = "acompanhamento"


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("price >= 0", name="ck_products_price_non_negative"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[ProductCategory] = mapped_column(
        Enum(ProductCategory, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    barcode: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)

    # Products are never hard-deleted; order history keeps pointing at them
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, onupdate=now_local)

    inventory_item: Mapped[Optional["InventoryItem"]] = relationship(
        "InventoryItem", back_populates="product", uselist=False
    )


from espetinhos.models.inventory import InventoryItem  # noqa: E402, F401
