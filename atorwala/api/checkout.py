from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from atorwala.api.cart import cart_response
from atorwala.api.dependencies import get_checkout, save_checkout
from atorwala.schemas.checkout import CheckoutStateResponse, TotalsResponse
from atorwala.schemas.order import CheckoutForm, PriceBreakdown
from atorwala.schemas.promo import PromoCodeUpdate, PromoStateResponse
from atorwala.services.checkout import CheckoutOrchestrator
from atorwala.services.pricing import format_price

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/checkout", tags=["checkout"])


def totals_response(totals: PriceBreakdown) -> TotalsResponse:
    return TotalsResponse(
        breakdown=totals,
        subtotal_display=format_price(totals.subtotal),
        discount_display=format_price(totals.discount_amount),
        total_display=format_price(totals.total)
    )


def checkout_response(checkout: CheckoutOrchestrator) -> CheckoutStateResponse:
    promo = checkout.promo
    return CheckoutStateResponse(
        is_open=checkout.is_open,
        form=checkout.form,
        promo=PromoStateResponse(
            code=promo.code,
            applied_code=promo.applied_code,
            is_valid=promo.result.is_valid,
            discount_percent=promo.discount_percent
        ),
        cart=cart_response(checkout.cart),
        totals=totals_response(checkout.current_totals()),
        notices=checkout.notices.drain()
    )


@router.get("", response_model=CheckoutStateResponse)
async def get_checkout_state(checkout: CheckoutOrchestrator = Depends(get_checkout)):
    """Form draft, promo state and price breakdown for the current session."""
    return checkout_response(checkout)


@router.post("/open", response_model=CheckoutStateResponse)
async def open_checkout(request: Request, checkout: CheckoutOrchestrator = Depends(get_checkout)):
    if not checkout.open_checkout():
        raise HTTPException(status_code=400, detail="Cart is empty")
    save_checkout(request, checkout)
    return checkout_response(checkout)


@router.post("/close", response_model=CheckoutStateResponse)
async def close_checkout(request: Request, checkout: CheckoutOrchestrator = Depends(get_checkout)):
    checkout.close_checkout()
    save_checkout(request, checkout)
    return checkout_response(checkout)


@router.put("/form", response_model=CheckoutStateResponse)
async def update_form(
    request: Request,
    form: CheckoutForm,
    checkout: CheckoutOrchestrator = Depends(get_checkout)
):
    """Save the order form draft. A changed promo code is re-validated."""
    checkout.update_form(form)
    await checkout.promo.settle()
    save_checkout(request, checkout)
    return checkout_response(checkout)


@router.put("/promo", response_model=CheckoutStateResponse)
async def update_promo_code(
    data: PromoCodeUpdate,
    checkout: CheckoutOrchestrator = Depends(get_checkout)
):
    """
    Apply an edited promo code.
    Any previously applied discount is dropped before the new code is checked.
    """
    checkout.promo.set_code(data.code)
    await checkout.promo.settle()
    return checkout_response(checkout)
