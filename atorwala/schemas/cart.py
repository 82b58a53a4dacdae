from pydantic import BaseModel, Field
from decimal import Decimal
from typing import List


class CartItem(BaseModel):
    id: str
    name: str
    image: str = ""
    price: Decimal
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class CartItemAdd(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    product_id: str
    quantity: int


class CartItemResponse(BaseModel):
    id: str
    name: str
    image: str
    price: Decimal
    quantity: int
    subtotal: Decimal


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    total_items: int
    total_price: Decimal
    total_display: str
