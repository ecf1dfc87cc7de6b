import logging
from decimal import Decimal

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from espetinhos.database import atomic
from espetinhos.errors import NotFoundError, ValidationError
from espetinhos.models.cash import CashCategory, CashTransactionType
from espetinhos.models.customer import (
    Customer,
    CustomerTransaction,
    CustomerTransactionItem,
    CustomerTransactionType,
)
from espetinhos.schemas.customer import CustomerCreate, CustomerOut, CustomerTransactionCreate, CustomerUpdate
from espetinhos.schemas.inventory import StockLine
from espetinhos.services import cash_service, inventory_service, notification_service, product_service

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
DEFAULT_PAYMENT_DESCRIPTION = "Pagamento"


def _format_quantity(quantity: Decimal) -> str:
    return format(quantity.normalize(), "f")


# --- Customers CRUD ---

def create_customer(db: Session, data: CustomerCreate) -> Customer:
    name = data.name.strip()
    if not name:
        raise ValidationError("Customer name is required")
    with atomic(db):
        customer = Customer(name=name, contact=data.contact, address=data.address, notes=data.notes)
        db.add(customer)
    db.refresh(customer)
    return customer


def get_customer(db: Session, customer_id: str) -> Customer | None:
    return db.query(Customer).filter(Customer.id == customer_id).first()


def require_customer(db: Session, customer_id: str) -> Customer:
    customer = get_customer(db, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def update_customer(db: Session, customer_id: str, data: CustomerUpdate) -> Customer:
    customer = require_customer(db, customer_id)
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in update_data:
        update_data["name"] = update_data["name"].strip()
        if not update_data["name"]:
            raise ValidationError("Customer name is required")
    with atomic(db):
        for field, val in update_data.items():
            setattr(customer, field, val)
    db.refresh(customer)
    return customer


def delete_customer(db: Session, customer_id: str) -> None:
    """Remove a customer together with its transactions and their items."""
    customer = require_customer(db, customer_id)
    with atomic(db):
        db.delete(customer)
    logger.info("Deleted customer %s", customer_id)


def _balance_expression():
    return func.coalesce(
        func.sum(
            case(
                (CustomerTransaction.type == CustomerTransactionType.CREDIT, CustomerTransaction.amount),
                else_=-CustomerTransaction.amount,
            )
        ),
        0,
    )


def get_balance(db: Session, customer_id: str) -> Decimal:
    """Amount owed: credits minus payments. Never stored."""
    require_customer(db, customer_id)
    total = (
        db.query(_balance_expression())
        .filter(CustomerTransaction.customer_id == customer_id)
        .scalar()
    )
    return Decimal(total).quantize(CENTS)


def list_customers(db: Session, q: str = "") -> list[CustomerOut]:
    balances = dict(
        db.query(CustomerTransaction.customer_id, _balance_expression())
        .group_by(CustomerTransaction.customer_id)
        .all()
    )
    query = db.query(Customer)
    if q:
        query = query.filter(Customer.name.ilike(f"%{q}%") | Customer.contact.ilike(f"%{q}%"))
    return [
        CustomerOut.model_validate(c).model_copy(
            update={"balance": Decimal(balances.get(c.id, 0)).quantize(CENTS)}
        )
        for c in query.order_by(Customer.name).all()
    ]


def customer_out(db: Session, customer: Customer) -> CustomerOut:
    return CustomerOut.model_validate(customer).model_copy(update={"balance": get_balance(db, customer.id)})


def list_transactions(db: Session, customer_id: str | None = None) -> list[CustomerTransaction]:
    query = db.query(CustomerTransaction)
    if customer_id:
        require_customer(db, customer_id)
        query = query.filter(CustomerTransaction.customer_id == customer_id)
    return query.order_by(CustomerTransaction.created_at.desc()).all()


# --- Credit settlement ---

def add_customer_transaction(db: Session, customer_id: str, data: CustomerTransactionCreate) -> CustomerTransaction:
    """Record a payment (no items) or a sale on account (with items).

    A payment lowers the balance and is posted to the cash flow as an inflow.
    A credit sale raises the balance by the current product prices, snapshots
    those prices on its lines and takes the products out of stock with the same
    clamp policy as order settlement; it is not cash yet, so no cash entry is
    written. Either way the whole operation commits or rolls back as a unit.
    """
    customer = require_customer(db, customer_id)
    if data.items:
        txn = _record_credit(db, customer, data)
    else:
        txn = _record_payment(db, customer, data)

    notification_service.publish(
        notification_service.CUSTOMER_TRANSACTION_CREATED,
        {
            "customer_id": customer_id,
            "transaction_id": txn.id,
            "type": txn.type.value,
            "amount": str(txn.amount),
        },
    )
    return txn


def _record_payment(db: Session, customer: Customer, data: CustomerTransactionCreate) -> CustomerTransaction:
    if data.amount is None or data.amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    amount = data.amount.quantize(CENTS)
    description = (data.description or "").strip() or DEFAULT_PAYMENT_DESCRIPTION

    with atomic(db):
        txn = CustomerTransaction(
            customer_id=customer.id,
            amount=amount,
            description=description,
            type=CustomerTransactionType.PAYMENT,
        )
        db.add(txn)
        db.flush()
        cash_service.record_cash(
            db,
            CashTransactionType.INFLOW,
            amount,
            CashCategory.CUSTOMER_PAYMENT,
            f"Pagamento do cliente {customer.name} (transação {txn.id})",
        )
    logger.info("Customer %s paid %s", customer.id, amount)
    db.refresh(txn)
    return txn


def _record_credit(db: Session, customer: Customer, data: CustomerTransactionCreate) -> CustomerTransaction:
    priced = []
    for line in data.items:
        if line.quantity <= 0:
            raise ValidationError("Quantity must be greater than zero")
        product = product_service.require_product(db, line.product_id)
        priced.append((product, line.quantity))

    total = sum(((p.price * qty).quantize(CENTS) for p, qty in priced), Decimal("0.00"))
    description = (data.description or "").strip() or ", ".join(
        f"{p.name} x {_format_quantity(qty)}" for p, qty in priced
    )

    with atomic(db):
        txn = CustomerTransaction(
            customer_id=customer.id,
            amount=total,
            description=description,
            type=CustomerTransactionType.CREDIT,
        )
        db.add(txn)
        db.flush()
        for product, qty in priced:
            db.add(
                CustomerTransactionItem(
                    transaction_id=txn.id, product_id=product.id, quantity=qty, unit_price=product.price
                )
            )
        inventory_service.deduct_stock(
            db,
            [StockLine(product_id=p.id, quantity=qty) for p, qty in priced],
            f"Venda a prazo para {customer.name} (transação {txn.id})",
        )
    logger.info("Customer %s bought %s on credit", customer.id, total)
    db.refresh(txn)
    return txn
