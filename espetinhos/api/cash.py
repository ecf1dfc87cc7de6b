from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.schemas.cash import CashFlowSummary, CashTransactionCreate, CashTransactionOut
from espetinhos.services import cash_service

router = APIRouter(prefix="/cash", tags=["Cash"])


@router.post("/transactions", response_model=CashTransactionOut, status_code=201)
def add_cash_transaction(data: CashTransactionCreate, db: Session = Depends(get_db)):
    return cash_service.add_cash_transaction(db, data)


@router.get("/transactions", response_model=list[CashTransactionOut])
def list_cash_transactions(limit: int = 100, db: Session = Depends(get_db)):
    return cash_service.list_cash_transactions(db, limit=limit)


@router.get("/flow", response_model=CashFlowSummary)
def get_cash_flow(db: Session = Depends(get_db)):
    return cash_service.get_cash_flow(db)
