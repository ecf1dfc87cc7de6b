from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from espetinhos.models.customer import CustomerTransactionType
from espetinhos.schemas.precision import round_money, round_quantity


class CustomerCreate(BaseModel):
    name: str
    contact: str = ""
    address: str = ""
    notes: str = ""


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CustomerOut(BaseModel):
    id: str
    name: str
    contact: str
    address: str
    notes: str
    balance: Decimal = Decimal("0.00")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CustomerTransactionItemCreate(BaseModel):
    product_id: str
    quantity: Decimal

    @field_validator("quantity")
    @classmethod
    def to_stored_scale(cls, v):
        return round_quantity(v)


class CustomerTransactionCreate(BaseModel):
    """Empty ``items`` records a payment of ``amount``; otherwise a credit sale."""

    items: list[CustomerTransactionItemCreate] = []
    amount: Optional[Decimal] = None
    description: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def to_cents(cls, v):
        return round_money(v)


class CustomerTransactionItemOut(BaseModel):
    id: str
    product_id: str
    quantity: Decimal
    unit_price: Decimal

    model_config = {"from_attributes": True}


class CustomerTransactionOut(BaseModel):
    id: str
    customer_id: str
    amount: Decimal
    description: str
    type: CustomerTransactionType
    items: list[CustomerTransactionItemOut] = []
    created_at: datetime

    model_config = {"from_attributes": True}
