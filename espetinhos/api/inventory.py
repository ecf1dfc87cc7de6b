from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    InventoryQuantityUpdate,
    InventoryTransactionOut,
    LowStockAlertToggle,
)
from espetinhos.services import inventory_service

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("", response_model=list[InventoryItemOut])
def list_inventory_items(db: Session = Depends(get_db)):
    return inventory_service.list_inventory_items(db)


@router.get("/low-stock", response_model=list[InventoryItemOut])
def low_stock(db: Session = Depends(get_db)):
    return inventory_service.get_low_stock(db)


@router.post("", response_model=InventoryItemOut, status_code=201)
def add_inventory_item(data: InventoryItemCreate, db: Session = Depends(get_db)):
    return inventory_service.add_inventory_item(db, data)


@router.patch("/{item_id}", response_model=InventoryItemOut)
def update_inventory_item(item_id: str, data: InventoryItemUpdate, db: Session = Depends(get_db)):
    return inventory_service.update_inventory_item(db, item_id, data)


@router.post("/{item_id}/quantity", response_model=InventoryItemOut)
def update_inventory_quantity(item_id: str, data: InventoryQuantityUpdate, db: Session = Depends(get_db)):
    return inventory_service.update_inventory_quantity(db, item_id, data)


@router.post("/{item_id}/low-stock-alert", response_model=InventoryItemOut)
def toggle_low_stock_alert(item_id: str, data: LowStockAlertToggle, db: Session = Depends(get_db)):
    return inventory_service.toggle_low_stock_alert(db, item_id, data.disable)


@router.get("/{item_id}/transactions", response_model=list[InventoryTransactionOut])
def get_inventory_transactions(item_id: str, db: Session = Depends(get_db)):
    return inventory_service.get_inventory_transactions(db, item_id)


@router.delete("/{item_id}", status_code=204)
def delete_inventory_item(item_id: str, db: Session = Depends(get_db)):
    inventory_service.delete_inventory_item(db, item_id)
