from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from espetinhos.models.product import ProductCategory
from espetinhos.schemas.precision import round_money


class ProductCreate(BaseModel):
    name: str
    price: Decimal
    category: ProductCategory
    barcode: str | None = None
    unit: str | None = None  # unit of the stock record created alongside

    @field_validator("price")
    @classmethod
    def to_cents(cls, v):
        return round_money(v)


class ProductUpdate(BaseModel):
    name: str | None = None
    price: Decimal | None = None
    category: ProductCategory | None = None
    barcode: str | None = None

    @field_validator("price")
    @classmethod
    def to_cents(cls, v):
        return round_money(v)


class ProductBrief(BaseModel):
    id: str
    name: str
    price: Decimal
    category: ProductCategory

    model_config = {"from_attributes": True}


class ProductOut(ProductBrief):
    barcode: str | None = None
    deleted: bool
    created_at: datetime
    updated_at: datetime
