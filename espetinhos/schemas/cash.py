from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from espetinhos.models.cash import CashTransactionType
from espetinhos.schemas.precision import round_money


class CashTransactionCreate(BaseModel):
    type: CashTransactionType
    amount: Decimal
    category: str = ""
    description: str = ""

    @field_validator("amount")
    @classmethod
    def to_cents(cls, v):
        return round_money(v)


class CashTransactionOut(BaseModel):
    id: str
    type: CashTransactionType
    amount: Decimal
    category: str
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CashFlowSummary(BaseModel):
    total_entries: Decimal
    total_exits: Decimal
    balance: Decimal
