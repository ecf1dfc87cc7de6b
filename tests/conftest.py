"""Shared pytest fixtures: a fresh in-memory ledger per test plus small builders."""

from collections import defaultdict
from decimal import Decimal
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from espetinhos.database import LedgerStore, get_db
from espetinhos.main import app
from espetinhos.models.inventory import InventoryMovementType
from espetinhos.models.product import Product, ProductCategory
from espetinhos.schemas.customer import CustomerCreate
from espetinhos.schemas.inventory import InventoryQuantityUpdate
from espetinhos.schemas.order import OrderCreate, OrderItemCreate
from espetinhos.schemas.product import ProductCreate
from espetinhos.services import (
    customer_service,
    inventory_service,
    notification_service,
    order_service,
    product_service,
)


@pytest.fixture
def ledger() -> Iterator[LedgerStore]:
    store = LedgerStore("sqlite://")
    store.create_schema()
    yield store
    store.dispose()


@pytest.fixture
def db(ledger: LedgerStore) -> Iterator[Session]:
    session = ledger.session()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _isolated_listeners(monkeypatch):
    monkeypatch.setattr(notification_service, "_listeners", defaultdict(list))
    monkeypatch.setattr(notification_service.settings, "WEBHOOK_URLS", "")


@pytest.fixture
def make_product(db: Session) -> Callable[..., Product]:
    """Create a catalog product, optionally with stock on hand."""

    def factory(
        name: str = "Espetinho de carne",
        price: str = "8.00",
        category: ProductCategory = ProductCategory.ESPETINHO,
        stock: str | None = None,
        barcode: str | None = None,
    ) -> Product:
        product = product_service.create_product(
            db, ProductCreate(name=name, price=Decimal(price), category=category, barcode=barcode)
        )
        if stock is not None and Decimal(stock) > 0:
            inventory_service.update_inventory_quantity(
                db,
                product.inventory_item.id,
                InventoryQuantityUpdate(quantity=Decimal(stock), type=InventoryMovementType.IN, description="Compra"),
            )
            db.refresh(product)
        return product

    return factory


@pytest.fixture
def make_order(db: Session) -> Callable[..., str]:
    """Open an order and add ``(product, quantity)`` lines; returns the order id."""

    def factory(*lines, table_number: int = 1, customer_name: str | None = None) -> str:
        order = order_service.create_order(db, OrderCreate(table_number=table_number, customer_name=customer_name))
        for product, quantity in lines:
            order_service.add_order_item(
                db, order.id, OrderItemCreate(product_id=product.id, quantity=Decimal(str(quantity)))
            )
        return order.id

    return factory


@pytest.fixture
def make_customer(db: Session):
    def factory(name: str = "Carlos", **kwargs):
        return customer_service.create_customer(db, CustomerCreate(name=name, **kwargs))

    return factory


@pytest.fixture
def client(ledger: LedgerStore) -> Iterator[TestClient]:
    def override_get_db():
        session = ledger.session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
