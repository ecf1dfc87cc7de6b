from decimal import ROUND_HALF_UP, Decimal

# Scales of the Numeric(10, 2) money and Numeric(12, 3) quantity columns
CENTS = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")


def round_money(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_quantity(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
