import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import CheckConstraint, DateTime, Enum, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from espetinhos.database import Base
from espetinhos.time_utils import now_local


class CashTransactionType(str, PyEnum):
    INFLOW = "entrada"
    OUTFLOW = "saida"


class CashCategory:
    SALE = "venda"
    CUSTOMER_PAYMENT = "pagamento cliente"


class CashTransaction(Base):
    """Append-only cash-flow entry; the balance is always summed, never stored."""

    __tablename__ = "cash_transactions"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_cash_transactions_amount_non_negative"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    type: Mapped[CashTransactionType] = mapped_column(
        Enum(CashTransactionType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[str] = mapped_column(String, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local, index=True)
