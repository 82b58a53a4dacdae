from pydantic import BaseModel
from decimal import Decimal
from typing import Optional, List


class Product(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    target_audience: Optional[str] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    products: List[Product]
    total: int
    fallback: bool = False
