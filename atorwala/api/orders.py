from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from typing import Set
import logging

from atorwala.api.checkout import totals_response
from atorwala.api.dependencies import get_checkout, get_session_id, save_checkout
from atorwala.schemas.checkout import OrderSubmitResponse
from atorwala.schemas.order import CheckoutForm
from atorwala.services.checkout import CheckoutOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["orders"])

FAILURE_STATUS = {
    "validation": 400,
    "in_progress": 409,
    "backend": 502,
}

# Sessions with an order submission running in this process
_submissions_in_flight: Set[str] = set()


@router.post("", response_model=OrderSubmitResponse, status_code=201)
async def create_order(
    request: Request,
    form: CheckoutForm,
    checkout: CheckoutOrchestrator = Depends(get_checkout)
):
    """
    Place a cash-on-delivery order from the session cart.
    1. Reject a second submission from a session whose order is still being placed
    2. Validate required fields and cart
    3. Request an order number from the backend
    4. Insert the order record
    5. Clear cart and reset the order form
    """
    session_id = get_session_id(request)
    if session_id in _submissions_in_flight:
        logger.warning(f"Order submission ignored, session {session_id} already has one in flight")
        checkout.notices.error("Order in progress", "Your order is already being placed.")
        response = OrderSubmitResponse(notices=checkout.notices.drain())
        return JSONResponse(
            status_code=FAILURE_STATUS["in_progress"],
            content=response.model_dump(mode="json")
        )

    _submissions_in_flight.add(session_id)
    try:
        result = await checkout.submit_order(form)
    finally:
        _submissions_in_flight.discard(session_id)
    save_checkout(request, checkout)

    response = OrderSubmitResponse(
        order_number=result.order_number,
        totals=totals_response(result.totals) if result.totals else None,
        notices=checkout.notices.drain()
    )

    if not result.succeeded:
        logger.info(f"Order submission failed: {result.error}")
        return JSONResponse(
            status_code=FAILURE_STATUS.get(result.error, 400),
            content=response.model_dump(mode="json")
        )

    return response
