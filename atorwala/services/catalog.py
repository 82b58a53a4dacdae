import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import ValidationError

from atorwala.core.backend_client import BackendError, StorefrontBackend
from atorwala.core.config import settings
from atorwala.schemas.product import Product

logger = logging.getLogger(__name__)


FALLBACK_PRODUCTS = [
    {
        "id": "mystic-blossom",
        "name": "Mystic Blossom",
        "description": (
            "A delicate and enchanting fragrance with floral notes that bloom beautifully on the skin. "
            "This exquisite attar is specially crafted with feminine elegance in mind, making it the "
            "perfect choice for girls who appreciate sophisticated and graceful scents."
        ),
        "price": Decimal("250"),
        "target_audience": "girls"
    },
    {
        "id": "sapphire-sand",
        "name": "Sapphire Sand",
        "description": (
            "A bold and mysterious fragrance that captures the essence of desert winds and precious gems. "
            "This masculine scent combines earthy undertones with luxurious depth, making it an excellent "
            "choice for men who want to make a lasting impression."
        ),
        "price": Decimal("250"),
        "target_audience": "men"
    },
    {
        "id": "raw-pulse",
        "name": "Raw Pulse",
        "description": (
            "An intense and dynamic fragrance that embodies raw energy and power. This commanding attar "
            "delivers a strong, masculine presence with bold notes that resonate confidence, perfect for "
            "men who embrace their inner strength."
        ),
        "price": Decimal("250"),
        "target_audience": "men"
    }
]


def resolve_image(product: Product) -> Product:
    if product.image_url:
        return product
    image_url = f"{settings.PRODUCT_IMAGE_BASE_URL.rstrip('/')}/{product.id}.jpg"
    return product.model_copy(update={"image_url": image_url})


def fallback_catalog() -> List[Product]:
    return [resolve_image(Product(**item)) for item in FALLBACK_PRODUCTS]


async def load_catalog(backend: StorefrontBackend) -> Tuple[List[Product], bool]:
    """
    Fetch the catalog from the backend.

    Returns (products, used_fallback). Any backend failure falls back to the
    built-in catalog so the storefront stays usable.
    """
    try:
        rows = await asyncio.wait_for(backend.list_products(), timeout=settings.REMOTE_CALL_TIMEOUT_SECONDS)
        products = [resolve_image(Product.model_validate(row)) for row in rows]
    except (BackendError, asyncio.TimeoutError, ValidationError) as e:
        logger.error(f"Error fetching products, using fallback catalog: {str(e)}")
        return fallback_catalog(), True

    return products, False


def find_product(products: List[Product], product_id: str) -> Optional[Product]:
    return next((product for product in products if product.id == product_id), None)
