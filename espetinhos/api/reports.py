from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from espetinhos.database import get_db
from espetinhos.models.product import ProductCategory
from espetinhos.schemas.inventory import InventoryTransactionOut
from espetinhos.schemas.report import (
    ConsolidatedReport,
    PriceRange,
    ProductReport,
    ReportFilters,
    ReportSort,
    SalesReport,
)
from espetinhos.services import report_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/sales", response_model=SalesReport)
def sales_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    category: ProductCategory | None = Query(None),
    price_range: PriceRange | None = Query(None),
    sort_by: ReportSort = Query(ReportSort.REVENUE),
    db: Session = Depends(get_db),
):
    filters = ReportFilters(
        start_date=start_date,
        end_date=end_date,
        category=category,
        price_range=price_range,
        sort_by=sort_by,
    )
    return report_service.sales_report(db, filters)


@router.get("/products", response_model=ProductReport)
def product_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    category: ProductCategory | None = Query(None),
    db: Session = Depends(get_db),
):
    return report_service.product_report(db, start_date, end_date, category=category)


@router.get("/beverages", response_model=ProductReport)
def beverage_report(start_date: date = Query(...), end_date: date = Query(...), db: Session = Depends(get_db)):
    return report_service.beverage_report(db, start_date, end_date)


@router.get("/consolidated", response_model=ConsolidatedReport)
def consolidated_report(start_date: date = Query(...), end_date: date = Query(...), db: Session = Depends(get_db)):
    return report_service.consolidated_report(db, start_date, end_date)


@router.get("/inventory-movement", response_model=list[InventoryTransactionOut])
def inventory_movement_report(item_id: str | None = None, limit: int = 50, db: Session = Depends(get_db)):
    return report_service.inventory_movement(db, item_id=item_id, limit=limit)
