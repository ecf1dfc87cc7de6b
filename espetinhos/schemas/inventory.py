from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from espetinhos.models.inventory import InventoryMovementType
from espetinhos.schemas.precision import round_quantity
from espetinhos.schemas.product import ProductBrief


class InventoryItemCreate(BaseModel):
    product_id: str | None = None
    manual_name: str | None = None
    quantity: Decimal = Decimal("0")
    unit: str | None = None
    min_quantity: Decimal = Decimal("0")

    @field_validator("quantity", "min_quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class InventoryItemUpdate(BaseModel):
    unit: str | None = None
    min_quantity: Decimal | None = None

    @field_validator("min_quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class InventoryQuantityUpdate(BaseModel):
    quantity: Decimal
    type: InventoryMovementType
    description: str = ""

    @field_validator("quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class LowStockAlertToggle(BaseModel):
    disable: bool


class InventoryItemOut(BaseModel):
    id: str
    product_id: str | None = None
    manual_name: str | None = None
    display_name: str
    quantity: Decimal
    unit: str
    min_quantity: Decimal
    alert_disabled: bool
    is_low_stock: bool
    product: ProductBrief | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InventoryTransactionOut(BaseModel):
    id: str
    inventory_item_id: str | None = None
    item_name: str
    quantity: Decimal
    type: InventoryMovementType
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Deduction engine contracts ---

class StockLine(BaseModel):
    product_id: str
    quantity: Decimal


class StockDeduction(BaseModel):
    item_id: str
    product_id: str
    requested: Decimal
    deducted: Decimal

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.deducted
