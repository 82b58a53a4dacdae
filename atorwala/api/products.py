from fastapi import APIRouter, Depends, HTTPException
import logging

from atorwala.api.dependencies import get_backend
from atorwala.core.backend_client import StorefrontBackend
from atorwala.schemas.product import Product, ProductListResponse
from atorwala.services.catalog import find_product, load_catalog

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
async def list_products(backend: StorefrontBackend = Depends(get_backend)):
    """
    List the catalog in display order.
    Falls back to the built-in catalog when the backend is unavailable.
    """
    products, fallback = await load_catalog(backend)
    return ProductListResponse(products=products, total=len(products), fallback=fallback)


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, backend: StorefrontBackend = Depends(get_backend)):
    """Get single product detail."""
    products, _ = await load_catalog(backend)
    product = find_product(products, product_id)

    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    return product
