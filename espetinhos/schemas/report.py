from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum

from pydantic import BaseModel

from espetinhos.models.product import ProductCategory


class PriceRange(str, PyEnum):
    UP_TO_15 = "0-15"
    FROM_15_TO_30 = "15-30"
    ABOVE_30 = "30+"


class ReportSort(str, PyEnum):
    QUANTITY = "quantidade"
    REVENUE = "receita"
    PRICE = "preco"


class ReportFilters(BaseModel):
    start_date: date
    end_date: date
    category: ProductCategory | None = None
    price_range: PriceRange | None = None
    sort_by: ReportSort = ReportSort.REVENUE


class ProductSales(BaseModel):
    product_id: str
    name: str
    quantity: Decimal
    revenue: Decimal


class SalesReport(BaseModel):
    total_orders: int
    total_revenue: Decimal
    items_sold: Decimal
    top_products: list[ProductSales]


class ProductReport(BaseModel):
    products: list[ProductSales]
    top_product: ProductSales | None = None
    bottom_product: ProductSales | None = None


class ConsolidatedReport(BaseModel):
    start_date: date
    end_date: date
    order_count: int
    order_revenue: Decimal
    credit_count: int
    credit_revenue: Decimal
    total_revenue: Decimal
    payments_received: Decimal
    products: list[ProductSales]
