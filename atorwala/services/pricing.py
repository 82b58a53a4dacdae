from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from atorwala.core.config import settings
from atorwala.schemas.order import PriceBreakdown
from atorwala.services.cart import CartStore

Amount = Union[int, float, str, Decimal]


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_totals(subtotal: Amount, discount_percent: Amount = 0) -> PriceBreakdown:
    """
    Price breakdown for a checkout.

    discount_amount = subtotal * discount_percent / 100
    total = subtotal - discount_amount

    Values are exact; rounding is left to format_price().
    """
    subtotal = to_decimal(subtotal)
    discount_percent = to_decimal(discount_percent)
    discount_amount = subtotal * discount_percent / Decimal(100)

    return PriceBreakdown(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        total=subtotal - discount_amount
    )


def price_cart(cart: CartStore, discount_percent: Amount = 0) -> PriceBreakdown:
    return compute_totals(cart.get_total_price(), discount_percent)


def format_price(amount: Amount) -> str:
    quantum = Decimal(1).scaleb(-settings.PRICE_DECIMALS)
    rounded = to_decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    return f"{settings.CURRENCY_SYMBOL}{rounded}"
