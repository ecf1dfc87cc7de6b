import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from espetinhos.config import settings
from espetinhos.database import atomic
from espetinhos.errors import NotFoundError, ValidationError
from espetinhos.models.inventory import InventoryItem
from espetinhos.models.product import Product, ProductCategory
from espetinhos.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def _check_barcode_free(db: Session, barcode: str, product_id: str | None = None) -> None:
    q = db.query(Product).filter(Product.barcode == barcode)
    if product_id:
        q = q.filter(Product.id != product_id)
    if q.first():
        raise ValidationError(f"Barcode {barcode} is already in use")


def create_product(db: Session, data: ProductCreate) -> Product:
    name = data.name.strip()
    if not name:
        raise ValidationError("Product name is required")
    if data.price < 0:
        raise ValidationError("Price cannot be negative")
    barcode = (data.barcode or "").strip() or None
    if barcode:
        _check_barcode_free(db, barcode)

    with atomic(db):
        product = Product(name=name, price=data.price, category=data.category, barcode=barcode, deleted=False)
        db.add(product)
        db.flush()

        # Every product owns a stock record, starting empty
        db.add(
            InventoryItem(
                product_id=product.id,
                quantity=Decimal("0"),
                unit=data.unit or settings.DEFAULT_UNIT,
                min_quantity=Decimal("0"),
                alert_disabled=False,
            )
        )
    logger.info("Created product %s (%s)", product.name, product.id)
    db.refresh(product)
    return product


def get_product(db: Session, product_id: str) -> Product | None:
    return db.query(Product).filter(Product.id == product_id, Product.deleted.is_(False)).first()


def require_product(db: Session, product_id: str) -> Product:
    product = get_product(db, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(db: Session, category: ProductCategory | None = None) -> list[Product]:
    q = db.query(Product).filter(Product.deleted.is_(False))
    if category:
        q = q.filter(Product.category == category)
    return q.order_by(Product.name).all()


def update_product(db: Session, product_id: str, data: ProductUpdate) -> Product:
    product = require_product(db, product_id)
    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data:
        update_data["name"] = (update_data["name"] or "").strip()
        if not update_data["name"]:
            raise ValidationError("Product name is required")
    if "price" in update_data and (update_data["price"] is None or update_data["price"] < 0):
        raise ValidationError("Price cannot be negative")
    if "category" in update_data and update_data["category"] is None:
        raise ValidationError("Category is required")
    if "barcode" in update_data:
        update_data["barcode"] = (update_data["barcode"] or "").strip() or None
        if update_data["barcode"]:
            _check_barcode_free(db, update_data["barcode"], product_id=product.id)

    with atomic(db):
        for field, value in update_data.items():
            setattr(product, field, value)
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: str) -> None:
    """Soft-delete the product and drop its stock record.

    Past stock movements keep their rows; their item reference is nulled.
    """
    product = require_product(db, product_id)
    with atomic(db):
        product.deleted = True
        item = product.inventory_item
        if item is not None:
            db.delete(item)
    logger.info("Deactivated product %s", product_id)
