from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.schemas.order import (
    OrderCloseResult,
    OrderCreate,
    OrderItemCreate,
    OrderOut,
    PartialPayment,
)
from espetinhos.services import order_service

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", response_model=OrderOut, status_code=201)
def create_order(data: OrderCreate, db: Session = Depends(get_db)):
    return order_service.create_order(db, data)


@router.get("", response_model=list[OrderOut])
def list_open_orders(db: Session = Depends(get_db)):
    return order_service.list_open_orders(db)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: str, db: Session = Depends(get_db)):
    return order_service.require_order(db, order_id)


@router.post("/{order_id}/items", response_model=OrderOut, status_code=201)
def add_order_item(order_id: str, data: OrderItemCreate, db: Session = Depends(get_db)):
    order_service.add_order_item(db, order_id, data)
    return order_service.require_order(db, order_id)


@router.delete("/items/{order_item_id}", status_code=204)
def remove_order_item(order_item_id: str, db: Session = Depends(get_db)):
    order_service.remove_order_item(db, order_item_id)


@router.post("/{order_id}/partial-payment", response_model=OrderOut)
def pay_partial_order_items(order_id: str, data: PartialPayment, db: Session = Depends(get_db)):
    return order_service.pay_partial_order_items(db, order_id, data)


@router.post("/{order_id}/close", response_model=OrderCloseResult)
def close_order(order_id: str, db: Session = Depends(get_db)):
    return order_service.close_order(db, order_id)
