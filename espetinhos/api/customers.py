from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.schemas.customer import (
    CustomerCreate,
    CustomerOut,
    CustomerTransactionCreate,
    CustomerTransactionOut,
    CustomerUpdate,
)
from espetinhos.services import customer_service

router = APIRouter(prefix="/customers", tags=["Customers"])


# ---------------------------------------------------------------------------
# Transactions (MUST be before /{customer_id} to avoid path conflict)
# ---------------------------------------------------------------------------


@router.get("/transactions", response_model=list[CustomerTransactionOut])
def list_all_transactions(db: Session = Depends(get_db)):
    return customer_service.list_transactions(db)


# ---------------------------------------------------------------------------
# Customers CRUD
# ---------------------------------------------------------------------------


@router.post("", response_model=CustomerOut, status_code=201)
def create_customer(body: CustomerCreate, db: Session = Depends(get_db)):
    c = customer_service.create_customer(db, body)
    return customer_service.customer_out(db, c)


@router.get("", response_model=list[CustomerOut])
def list_customers(q: str = "", db: Session = Depends(get_db)):
    return customer_service.list_customers(db, q=q)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    c = customer_service.require_customer(db, customer_id)
    return customer_service.customer_out(db, c)


@router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(customer_id: str, body: CustomerUpdate, db: Session = Depends(get_db)):
    c = customer_service.update_customer(db, customer_id, body)
    return customer_service.customer_out(db, c)


@router.delete("/{customer_id}", status_code=204)
def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    customer_service.delete_customer(db, customer_id)


@router.get("/{customer_id}/transactions", response_model=list[CustomerTransactionOut])
def list_customer_transactions(customer_id: str, db: Session = Depends(get_db)):
    return customer_service.list_transactions(db, customer_id=customer_id)


@router.post("/{customer_id}/transactions", response_model=CustomerTransactionOut, status_code=201)
def add_customer_transaction(customer_id: str, body: CustomerTransactionCreate, db: Session = Depends(get_db)):
    return customer_service.add_customer_transaction(db, customer_id, body)
