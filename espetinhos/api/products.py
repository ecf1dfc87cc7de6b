from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.models.product import ProductCategory
from espetinhos.schemas.product import ProductCreate, ProductOut, ProductUpdate
from espetinhos.services import product_service

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=ProductOut, status_code=201)
def create_product(data: ProductCreate, db: Session = Depends(get_db)):
    return product_service.create_product(db, data)


@router.get("", response_model=list[ProductOut])
def list_products(category: ProductCategory | None = None, db: Session = Depends(get_db)):
    return product_service.list_products(db, category=category)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    return product_service.require_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: str, data: ProductUpdate, db: Session = Depends(get_db)):
    return product_service.update_product(db, product_id, data)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: str, db: Session = Depends(get_db)):
    product_service.delete_product(db, product_id)
