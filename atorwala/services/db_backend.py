import logging
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from atorwala.core.backend_client import BackendError
from atorwala.db.models import Order, Product, PromoCode
from atorwala.schemas.order import OrderRecord

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"
MAX_ORDER_NUMBER_ATTEMPTS = 5


class DatabaseBackend:
    """Storefront backend served from a SQLAlchemy database instead of the hosted API."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def list_products(self) -> List[Dict[str, Any]]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(Product).order_by(Product.created_at.asc()))
                products = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"List products failed: {str(e)}")
            raise BackendError(f"List products failed: {str(e)}")

        return [
            {
                "id": product.id,
                "name": product.name,
                "description": product.description,
                "price": product.price,
                "image_url": product.image_url,
                "target_audience": product.target_audience
            }
            for product in products
        ]

    async def validate_promo_code(self, code: str) -> List[Dict[str, Any]]:
        """
        Look up an active promo code, case-insensitively.
        Returns one row: is_valid with its discount, or not valid with 0.
        """
        now = datetime.utcnow()
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(PromoCode).where(func.upper(PromoCode.code) == code.strip().upper())
                )
                promo = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Validate promo code failed: {str(e)}")
            raise BackendError(f"Validate promo code failed: {str(e)}")

        if (
            not promo
            or not promo.is_active
            or (promo.valid_from and promo.valid_from > now)
            or (promo.valid_until and promo.valid_until < now)
        ):
            return [{"is_valid": False, "discount_percent": 0}]

        return [{"is_valid": True, "discount_percent": promo.discount_percent}]

    async def generate_order_number(self) -> str:
        try:
            async with self.session_factory() as db:
                for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
                    candidate = _new_order_number()
                    result = await db.execute(
                        select(func.count(Order.id)).where(Order.order_number == candidate)
                    )
                    if not result.scalar():
                        return candidate
        except SQLAlchemyError as e:
            logger.error(f"Generate order number failed: {str(e)}")
            raise BackendError(f"Generate order number failed: {str(e)}")

        raise BackendError("Generate order number failed: no free order number")

    async def insert_order(self, record: OrderRecord) -> None:
        async with self.session_factory() as db:
            try:
                db.add(Order(
                    order_number=record.order_number,
                    customer_name=record.customer_name,
                    customer_phone=record.customer_phone,
                    customer_address=record.customer_address,
                    notes=record.notes,
                    items=[item.model_dump(mode="json") for item in record.items],
                    subtotal=record.subtotal,
                    promo_code=record.promo_code,
                    discount_percent=record.discount_percent,
                    discount_amount=record.discount_amount,
                    total_amount=record.total_amount,
                    status=record.status,
                    payment_method=record.payment_method
                ))
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                logger.error(f"Insert order {record.order_number} rejected: {str(e)}")
                raise BackendError(f"Insert order failed: duplicate order number {record.order_number}")
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Insert order {record.order_number} failed: {str(e)}")
                raise BackendError(f"Insert order failed: {str(e)}")

        logger.info(f"Order saved: order_number={record.order_number}, total={record.total_amount}")


def _new_order_number() -> str:
    return f"{ORDER_NUMBER_PREFIX}-{datetime.utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"


async def seed_products(db: AsyncSession, products: List[Dict[str, Any]]) -> int:
    """Insert catalog rows that are not present yet. Returns the number added."""
    added = 0
    for item in products:
        existing = await db.get(Product, item["id"])
        if existing:
            continue
        db.add(Product(
            id=item["id"],
            name=item["name"],
            description=item.get("description"),
            price=Decimal(str(item["price"])),
            image_url=item.get("image_url"),
            target_audience=item.get("target_audience")
        ))
        added += 1
    await db.commit()
    return added
