from pydantic import BaseModel
from decimal import Decimal
from typing import List, Optional
import enum


class OrderStatus(str, enum.Enum):
    PENDING = "pending"


PAYMENT_METHOD_COD = "cash_on_delivery"


class PriceBreakdown(BaseModel):
    subtotal: Decimal
    discount_percent: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total: Decimal

    class Config:
        frozen = True


class OrderItemSnapshot(BaseModel):
    id: str
    name: str
    image: str
    quantity: int
    price: Decimal

    class Config:
        frozen = True


class OrderRecord(BaseModel):
    """Write-once snapshot of a checkout, as inserted into the backend."""

    order_number: str
    customer_name: str
    customer_phone: str
    customer_address: str
    notes: Optional[str] = None
    items: tuple[OrderItemSnapshot, ...]
    subtotal: Decimal
    promo_code: Optional[str] = None
    discount_percent: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_method: str = PAYMENT_METHOD_COD

    class Config:
        frozen = True
        from_attributes = True


class CheckoutForm(BaseModel):
    name: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""
    promo_code: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [
            field for field in ("name", "phone", "address")
            if not getattr(self, field).strip()
        ]


class CheckoutResult(BaseModel):
    succeeded: bool
    order_number: Optional[str] = None
    totals: Optional[PriceBreakdown] = None
    error: Optional[str] = None
