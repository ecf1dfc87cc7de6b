from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from espetinhos.models.order import OrderStatus
from espetinhos.schemas.inventory import StockDeduction
from espetinhos.schemas.precision import round_quantity


class OrderCreate(BaseModel):
    table_number: int
    customer_name: str | None = None


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: Decimal

    @field_validator("quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class PartialPaymentLine(BaseModel):
    order_item_id: str
    quantity: Decimal

    @field_validator("quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class PartialPayment(BaseModel):
    items: list[PartialPaymentLine]


class OrderItemOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    price: Decimal
    quantity: Decimal
    paid_quantity: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: str
    table_number: int
    customer_name: str | None = None
    status: OrderStatus
    items: list[OrderItemOut]
    total: Decimal
    amount_paid: Decimal
    amount_due: Decimal
    created_at: datetime
    closed_at: datetime | None = None

    model_config = {"from_attributes": True}


class OrderCloseResult(BaseModel):
    success: bool = True
    order_id: str
    total: Decimal
    cash_transaction_id: str
    deductions: list[StockDeduction] = []
