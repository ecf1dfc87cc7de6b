from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from espetinhos.database import atomic
from espetinhos.errors import ValidationError
from espetinhos.models.cash import CashTransaction, CashTransactionType
from espetinhos.schemas.cash import CashFlowSummary, CashTransactionCreate

CENTS = Decimal("0.01")


def record_cash(
    db: Session, type_: CashTransactionType, amount: Decimal, category: str, description: str
) -> CashTransaction:
    """Append a cash entry to the caller's open transaction."""
    entry = CashTransaction(
        type=type_,
        amount=Decimal(amount).quantize(CENTS),
        category=category,
        description=description,
    )
    db.add(entry)
    db.flush()
    return entry


def add_cash_transaction(db: Session, data: CashTransactionCreate) -> CashTransaction:
    if data.amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    with atomic(db):
        entry = record_cash(db, data.type, data.amount, data.category.strip(), data.description.strip())
    db.refresh(entry)
    return entry


def list_cash_transactions(db: Session, limit: int = 100) -> list[CashTransaction]:
    return db.query(CashTransaction).order_by(CashTransaction.created_at.desc()).limit(limit).all()


def _sum_by_type(db: Session, type_: CashTransactionType) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(CashTransaction.amount), 0))
        .filter(CashTransaction.type == type_)
        .scalar()
    )
    return Decimal(total).quantize(CENTS)


def get_cash_flow(db: Session) -> CashFlowSummary:
    total_entries = _sum_by_type(db, CashTransactionType.INFLOW)
    total_exits = _sum_by_type(db, CashTransactionType.OUTFLOW)
    return CashFlowSummary(
        total_entries=total_entries,
        total_exits=total_exits,
        balance=total_entries - total_exits,
    )
