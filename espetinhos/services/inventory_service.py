import logging
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from espetinhos.config import settings
from espetinhos.database import atomic
from espetinhos.errors import InvalidStateError, NotFoundError, ValidationError
from espetinhos.models.inventory import InventoryItem, InventoryMovementType, InventoryTransaction
from espetinhos.models.product import Product
from espetinhos.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemUpdate,
    InventoryQuantityUpdate,
    StockDeduction,
    StockLine,
)

logger = logging.getLogger(__name__)


def _record_movement(
    db: Session, item: InventoryItem, quantity: Decimal, movement: InventoryMovementType, description: str
) -> InventoryTransaction:
    entry = InventoryTransaction(
        inventory_item_id=item.id,
        item_name=item.display_name,
        quantity=quantity,
        type=movement,
        description=description,
    )
    db.add(entry)
    return entry


def deduct_stock(db: Session, lines: Iterable[StockLine], reason: str) -> list[StockDeduction]:
    """Take sold quantities out of stock inside the caller's open transaction.

    Each line is matched to the stock record of its product. Products that were
    never stocked are skipped. When stock is short only what is available is
    taken, leaving the record at exactly zero; the shortfall is logged and the
    caller carries on. One ``out`` movement is appended per matched line.

    Nothing is committed here: the new levels become visible when the caller's
    transaction commits.
    """
    deductions: list[StockDeduction] = []
    for line in lines:
        item = db.query(InventoryItem).filter(InventoryItem.product_id == line.product_id).first()
        if not item:
            logger.debug("No stock record for product %s, skipping deduction", line.product_id)
            continue

        deducted = min(line.quantity, item.quantity)
        if deducted < line.quantity:
            logger.warning(
                "Insufficient stock for product %s: requested %s, available %s. Deducting only %s (%s)",
                line.product_id, line.quantity, item.quantity, deducted, reason,
            )
        item.quantity = item.quantity - deducted
        _record_movement(db, item, deducted, InventoryMovementType.OUT, reason)
        deductions.append(
            StockDeduction(item_id=item.id, product_id=line.product_id, requested=line.quantity, deducted=deducted)
        )
    db.flush()
    return deductions


# --- Stock records ---

def get_inventory_item(db: Session, item_id: str) -> InventoryItem | None:
    return db.query(InventoryItem).filter(InventoryItem.id == item_id).first()


def _require_item(db: Session, item_id: str) -> InventoryItem:
    item = get_inventory_item(db, item_id)
    if not item:
        raise NotFoundError(f"Inventory item {item_id} not found")
    return item


def list_inventory_items(db: Session) -> list[InventoryItem]:
    return db.query(InventoryItem).order_by(InventoryItem.created_at).all()


def get_low_stock(db: Session) -> list[InventoryItem]:
    return (
        db.query(InventoryItem)
        .filter(InventoryItem.quantity <= InventoryItem.min_quantity, InventoryItem.alert_disabled.is_(False))
        .order_by(InventoryItem.created_at)
        .all()
    )


def add_inventory_item(db: Session, data: InventoryItemCreate) -> InventoryItem:
    manual_name = (data.manual_name or "").strip()
    if bool(data.product_id) == bool(manual_name):
        raise ValidationError("Provide either a product or a manual name for the inventory item")
    if data.quantity < 0 or data.min_quantity < 0:
        raise ValidationError("Quantities cannot be negative")

    if data.product_id:
        product = db.query(Product).filter(Product.id == data.product_id, Product.deleted.is_(False)).first()
        if not product:
            raise NotFoundError(f"Product {data.product_id} not found")
        if product.inventory_item is not None:
            raise InvalidStateError(f"Product {product.name} already has a stock record")

    with atomic(db):
        item = InventoryItem(
            product_id=data.product_id or None,
            manual_name=manual_name or None,
            quantity=data.quantity,
            unit=data.unit or settings.DEFAULT_UNIT,
            min_quantity=data.min_quantity,
            alert_disabled=False,
        )
        db.add(item)
        db.flush()
        if data.quantity > 0:
            _record_movement(db, item, data.quantity, InventoryMovementType.IN, "Estoque inicial")
    db.refresh(item)
    return item


def update_inventory_item(db: Session, item_id: str, data: InventoryItemUpdate) -> InventoryItem:
    item = _require_item(db, item_id)
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if update_data.get("min_quantity", 0) < 0:
        raise ValidationError("Minimum quantity cannot be negative")
    if "unit" in update_data and not update_data["unit"].strip():
        raise ValidationError("Unit is required")
    with atomic(db):
        for field, value in update_data.items():
            setattr(item, field, value)
    db.refresh(item)
    return item


def toggle_low_stock_alert(db: Session, item_id: str, disable: bool) -> InventoryItem:
    item = _require_item(db, item_id)
    with atomic(db):
        item.alert_disabled = disable
    db.refresh(item)
    return item


def update_inventory_quantity(db: Session, item_id: str, data: InventoryQuantityUpdate) -> InventoryItem:
    """Manual stock adjustment. Unlike sales, an ``out`` beyond the stock is refused."""
    item = _require_item(db, item_id)
    if data.quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")

    if data.type == InventoryMovementType.IN:
        new_qty = item.quantity + data.quantity
    else:
        new_qty = item.quantity - data.quantity
    if new_qty < 0:
        raise ValidationError(f"Insufficient stock. Current: {item.quantity}, requested: {data.quantity}")

    with atomic(db):
        item.quantity = new_qty
        _record_movement(db, item, data.quantity, data.type, data.description)
    logger.info("Stock of %s adjusted %s %s -> %s", item.display_name, data.type.value, data.quantity, new_qty)
    db.refresh(item)
    return item


def delete_inventory_item(db: Session, item_id: str) -> None:
    item = _require_item(db, item_id)
    if item.product_id is not None:
        raise InvalidStateError("Stock records linked to a product are removed with the product")
    with atomic(db):
        for entry in item.transactions:
            db.delete(entry)
        db.delete(item)
    logger.info("Deleted manual inventory item %s", item_id)


def get_inventory_transactions(db: Session, item_id: str) -> list[InventoryTransaction]:
    _require_item(db, item_id)
    return (
        db.query(InventoryTransaction)
        .filter(InventoryTransaction.inventory_item_id == item_id)
        .order_by(InventoryTransaction.created_at.desc())
        .all()
    )
