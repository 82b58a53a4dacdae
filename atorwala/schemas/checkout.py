from pydantic import BaseModel
from typing import List, Optional

from atorwala.core.notices import Notice
from atorwala.schemas.cart import CartResponse
from atorwala.schemas.order import CheckoutForm, PriceBreakdown
from atorwala.schemas.promo import PromoStateResponse


class TotalsResponse(BaseModel):
    breakdown: PriceBreakdown
    subtotal_display: str
    discount_display: str
    total_display: str


class CheckoutStateResponse(BaseModel):
    is_open: bool
    form: CheckoutForm
    promo: PromoStateResponse
    cart: CartResponse
    totals: TotalsResponse
    notices: List[Notice] = []


class OrderSubmitResponse(BaseModel):
    order_number: Optional[str] = None
    totals: Optional[TotalsResponse] = None
    notices: List[Notice] = []
