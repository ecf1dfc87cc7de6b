from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from espetinhos.config import settings
from espetinhos.errors import ValidationError
from espetinhos.models.customer import CustomerTransaction, CustomerTransactionItem, CustomerTransactionType
from espetinhos.models.inventory import InventoryTransaction
from espetinhos.models.order import Order, OrderItem, OrderStatus
from espetinhos.models.product import Product, ProductCategory
from espetinhos.schemas.report import (
    ConsolidatedReport,
    PriceRange,
    ProductReport,
    ProductSales,
    ReportFilters,
    ReportSort,
    SalesReport,
)
from espetinhos.time_utils import day_bounds

CENTS = Decimal("0.01")
QTY = Decimal("0.001")

_PRICE_BANDS = {
    PriceRange.UP_TO_15: (None, Decimal("15")),
    PriceRange.FROM_15_TO_30: (Decimal("15"), Decimal("30")),
    PriceRange.ABOVE_30: (Decimal("30"), None),
}


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENTS)


def _qty(value) -> Decimal:
    return Decimal(value or 0).quantize(QTY)


def _closed_order_conditions(start_date: date, end_date: date) -> list:
    if start_date > end_date:
        raise ValidationError("Start date cannot be after end date")
    start, end = day_bounds(start_date, end_date)
    # Only closed orders carry revenue
    return [Order.status == OrderStatus.CLOSED, Order.closed_at.between(start, end)]


def _filter_conditions(category: ProductCategory | None, price_range: PriceRange | None) -> list:
    conditions = []
    if category:
        conditions.append(Product.category == category)
    if price_range:
        low, high = _PRICE_BANDS[price_range]
        if low is not None:
            conditions.append(OrderItem.unit_price > low)
        if high is not None:
            conditions.append(OrderItem.unit_price <= high)
    return conditions


def _product_sales_query(db: Session, conditions: list):
    quantity = func.sum(OrderItem.quantity)
    revenue = func.sum(OrderItem.quantity * OrderItem.unit_price)
    q = (
        db.query(
            Product.id.label("product_id"),
            Product.name.label("name"),
            quantity.label("quantity"),
            revenue.label("revenue"),
        )
        .select_from(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(*conditions)
        .group_by(Product.id, Product.name)
    )
    return q, quantity, revenue


def _to_sales(rows) -> list[ProductSales]:
    return [
        ProductSales(product_id=r.product_id, name=r.name, quantity=_qty(r.quantity), revenue=_money(r.revenue))
        for r in rows
    ]


def sales_report(db: Session, filters: ReportFilters) -> SalesReport:
    """Totals and top sellers over closed orders in the date range."""
    conditions = _closed_order_conditions(filters.start_date, filters.end_date)
    conditions += _filter_conditions(filters.category, filters.price_range)

    totals = (
        db.query(
            func.count(func.distinct(Order.id)).label("total_orders"),
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0).label("total_revenue"),
            func.coalesce(func.sum(OrderItem.quantity), 0).label("items_sold"),
        )
        .select_from(Order)
        .outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .filter(*conditions)
        .one()
    )

    q, quantity, revenue = _product_sales_query(db, conditions)
    if filters.sort_by == ReportSort.QUANTITY:
        q = q.order_by(quantity.desc(), Product.name)
    elif filters.sort_by == ReportSort.PRICE:
        q = q.order_by(func.max(OrderItem.unit_price).desc(), Product.name)
    else:
        q = q.order_by(revenue.desc(), Product.name)

    return SalesReport(
        total_orders=totals.total_orders or 0,
        total_revenue=_money(totals.total_revenue),
        items_sold=_qty(totals.items_sold),
        top_products=_to_sales(q.limit(settings.REPORT_TOP_LIMIT).all()),
    )


def product_report(
    db: Session, start_date: date, end_date: date, category: ProductCategory | None = None
) -> ProductReport:
    conditions = _closed_order_conditions(start_date, end_date) + _filter_conditions(category, None)
    q, quantity, _ = _product_sales_query(db, conditions)
    products = _to_sales(q.order_by(quantity.desc(), Product.name).all())
    return ProductReport(
        products=products,
        top_product=products[0] if products else None,
        bottom_product=products[-1] if products else None,
    )


def beverage_report(db: Session, start_date: date, end_date: date) -> ProductReport:
    return product_report(db, start_date, end_date, category=ProductCategory.BEBIDA)


def consolidated_report(db: Session, start_date: date, end_date: date) -> ConsolidatedReport:
    """Order sales and credit sales in one view, merged per product."""
    order_conditions = _closed_order_conditions(start_date, end_date)
    start, end = day_bounds(start_date, end_date)

    order_count, order_revenue = (
        db.query(
            func.count(func.distinct(Order.id)),
            func.coalesce(func.sum(OrderItem.quantity * OrderItem.unit_price), 0),
        )
        .select_from(Order)
        .outerjoin(OrderItem, OrderItem.order_id == Order.id)
        .filter(*order_conditions)
        .one()
    )

    in_range = CustomerTransaction.created_at.between(start, end)
    credit_count, credit_revenue = (
        db.query(func.count(CustomerTransaction.id), func.coalesce(func.sum(CustomerTransaction.amount), 0))
        .filter(CustomerTransaction.type == CustomerTransactionType.CREDIT, in_range)
        .one()
    )
    payments = (
        db.query(func.coalesce(func.sum(CustomerTransaction.amount), 0))
        .filter(CustomerTransaction.type == CustomerTransactionType.PAYMENT, in_range)
        .scalar()
    )

    merged: dict[str, dict] = {}
    q, _, _ = _product_sales_query(db, order_conditions)
    for r in q.all():
        merged[r.product_id] = {"name": r.name, "quantity": _qty(r.quantity), "revenue": _money(r.revenue)}

    credit_rows = (
        db.query(
            Product.id.label("product_id"),
            Product.name.label("name"),
            func.sum(CustomerTransactionItem.quantity).label("quantity"),
            func.sum(CustomerTransactionItem.quantity * CustomerTransactionItem.unit_price).label("revenue"),
        )
        .select_from(CustomerTransactionItem)
        .join(CustomerTransaction, CustomerTransaction.id == CustomerTransactionItem.transaction_id)
        .join(Product, Product.id == CustomerTransactionItem.product_id)
        .filter(CustomerTransaction.type == CustomerTransactionType.CREDIT, in_range)
        .group_by(Product.id, Product.name)
        .all()
    )
    for r in credit_rows:
        entry = merged.setdefault(r.product_id, {"name": r.name, "quantity": _qty(0), "revenue": _money(0)})
        entry["quantity"] += _qty(r.quantity)
        entry["revenue"] += _money(r.revenue)

    products = sorted(
        (ProductSales(product_id=pid, **values) for pid, values in merged.items()),
        key=lambda p: (-p.revenue, p.name),
    )
    order_revenue = _money(order_revenue)
    credit_revenue = _money(credit_revenue)
    return ConsolidatedReport(
        start_date=start_date,
        end_date=end_date,
        order_count=order_count or 0,
        order_revenue=order_revenue,
        credit_count=credit_count or 0,
        credit_revenue=credit_revenue,
        total_revenue=order_revenue + credit_revenue,
        payments_received=_money(payments),
        products=products,
    )


def inventory_movement(db: Session, item_id: str | None = None, limit: int = 50) -> list[InventoryTransaction]:
    q = db.query(InventoryTransaction)
    if item_id:
        q = q.filter(InventoryTransaction.inventory_item_id == item_id)
    return q.order_by(InventoryTransaction.created_at.desc()).limit(limit).all()
