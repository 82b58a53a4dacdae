from pydantic import BaseModel
from decimal import Decimal
from typing import Optional


class PromoResult(BaseModel):
    is_valid: bool = False
    discount_percent: Decimal = Decimal("0")
    failed: bool = False

    class Config:
        frozen = True

    @classmethod
    def no_discount(cls) -> "PromoResult":
        return cls()


class PromoCodeUpdate(BaseModel):
    code: str = ""


class PromoStateResponse(BaseModel):
    code: str
    applied_code: Optional[str] = None
    is_valid: bool
    discount_percent: Decimal
