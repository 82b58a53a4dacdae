"""
Tables of the self-hosted storefront backend.
Mirror the hosted backend's products, promo_codes and orders tables.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, JSON, Enum as SQLEnum

from atorwala.db.base import Base
from atorwala.schemas.order import OrderStatus, PAYMENT_METHOD_COD


class Product(Base):
    __tablename__ = "products"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    target_audience = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PromoCode(Base):
    __tablename__ = "promo_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_until = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    customer_address = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    items = Column(JSON, default=list, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    promo_code = Column(String(50), nullable=True)
    discount_percent = Column(Numeric(5, 2), default=0, nullable=False)
    discount_amount = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(SQLEnum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    payment_method = Column(String(50), default=PAYMENT_METHOD_COD, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


__all__ = [
    "Product",
    "PromoCode",
    "Order",
    "OrderStatus",
    "Base"
]
