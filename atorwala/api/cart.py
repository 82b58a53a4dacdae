from fastapi import APIRouter, Depends, HTTPException
import logging

from atorwala.api.dependencies import get_backend, get_cart
from atorwala.core.backend_client import StorefrontBackend
from atorwala.schemas.cart import CartItemAdd, CartItemUpdate, CartItemResponse, CartResponse
from atorwala.services.cart import CartStore
from atorwala.services.catalog import find_product, load_catalog
from atorwala.services.pricing import format_price

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cart", tags=["cart"])


def cart_response(cart: CartStore) -> CartResponse:
    total_price = cart.get_total_price()
    return CartResponse(
        items=[
            CartItemResponse(
                id=item.id,
                name=item.name,
                image=item.image,
                price=item.price,
                quantity=item.quantity,
                subtotal=item.line_total
            )
            for item in cart.items
        ],
        total_items=cart.get_total_items(),
        total_price=total_price,
        total_display=format_price(total_price)
    )


@router.get("", response_model=CartResponse)
async def get_cart_contents(cart: CartStore = Depends(get_cart)):
    """Get current shopping cart."""
    return cart_response(cart)


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item: CartItemAdd,
    cart: CartStore = Depends(get_cart),
    backend: StorefrontBackend = Depends(get_backend)
):
    """Add a catalog product to the cart, merging with an existing line."""
    products, _ = await load_catalog(backend)
    product = find_product(products, item.product_id)

    if not product:
        raise HTTPException(status_code=404, detail="Product not found or not available")

    cart.add_to_cart(product, item.quantity)
    return cart_response(cart)


@router.put("/update", response_model=CartResponse)
async def update_cart_item(item: CartItemUpdate, cart: CartStore = Depends(get_cart)):
    """Set a line's quantity. Zero or less removes the line; unknown products are ignored."""
    cart.update_quantity(item.product_id, item.quantity)
    return cart_response(cart)


@router.delete("/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(product_id: str, cart: CartStore = Depends(get_cart)):
    """Remove item from cart."""
    cart.remove_from_cart(product_id)
    return cart_response(cart)


@router.post("/clear", response_model=CartResponse)
async def clear_cart(cart: CartStore = Depends(get_cart)):
    """Clear entire cart."""
    cart.clear_cart()
    return cart_response(cart)
