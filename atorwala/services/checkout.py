import asyncio
import enum
import logging
from typing import Optional

from atorwala.core.backend_client import BackendError, StorefrontBackend
from atorwala.core.config import settings
from atorwala.core.notices import NoticeBoard
from atorwala.schemas.order import CheckoutForm, CheckoutResult, OrderItemSnapshot, OrderRecord, PriceBreakdown
from atorwala.services.cart import CartStore
from atorwala.services.pricing import format_price, price_cart
from atorwala.services.promo import PromoCodeField

logger = logging.getLogger(__name__)


class CheckoutState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REQUESTING_ORDER_NUMBER = "requesting_order_number"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CheckoutOrchestrator:
    """
    Turns the cart plus the customer's details into an order on the backend.

    Submission is two sequential remote calls: generate an order number, then
    insert the order record. The cart and the form are only reset after the
    insert succeeds; any failure leaves both untouched so the customer can retry.
    An order number obtained before a failed insert is not reclaimed.
    """

    def __init__(
        self,
        cart: CartStore,
        backend: StorefrontBackend,
        promo: PromoCodeField,
        notices: Optional[NoticeBoard] = None,
        timeout_seconds: float = None,
        form: Optional[CheckoutForm] = None,
        is_open: bool = False
    ):
        self.cart = cart
        self.backend = backend
        self.promo = promo
        self.notices = notices or promo.notices
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.REMOTE_CALL_TIMEOUT_SECONDS
        )
        self.form = form or CheckoutForm()
        self.is_open = is_open
        self.state = CheckoutState.IDLE

    def open_checkout(self) -> bool:
        if self.cart.is_empty:
            self.notices.error("Cart is empty", "Add a product to your cart before checking out.")
            return False
        self.is_open = True
        return True

    def close_checkout(self):
        self.is_open = False

    def update_form(self, form: CheckoutForm):
        self.form = form
        if form.promo_code is not None and form.promo_code != self.promo.code:
            self.promo.set_code(form.promo_code)

    def current_totals(self) -> PriceBreakdown:
        return price_cart(self.cart, self.promo.discount_percent)

    async def submit_order(self, form: CheckoutForm) -> CheckoutResult:
        if self.state != CheckoutState.IDLE:
            logger.warning(f"Order submission ignored, checkout is {self.state.value}")
            self.notices.error("Order in progress", "Your order is already being placed.")
            return CheckoutResult(succeeded=False, error="in_progress")

        try:
            return await self._submit(form)
        finally:
            self.state = CheckoutState.IDLE

    async def _submit(self, form: CheckoutForm) -> CheckoutResult:
        self.state = CheckoutState.VALIDATING
        self.form = form

        missing = form.missing_fields()
        if missing or self.cart.is_empty:
            self.state = CheckoutState.FAILED
            if missing:
                logger.info(f"Order rejected, missing fields: {missing}")
                self.notices.error("Missing Information", "Please fill in all required fields.")
            else:
                logger.info("Order rejected, cart is empty")
                self.notices.error("Cart is empty", "Add a product to your cart before placing an order.")
            return CheckoutResult(succeeded=False, error="validation")

        self.update_form(form)
        await self.promo.settle()
        totals = self.current_totals()

        try:
            self.state = CheckoutState.REQUESTING_ORDER_NUMBER
            order_number = await asyncio.wait_for(
                self.backend.generate_order_number(),
                timeout=self.timeout_seconds
            )

            record = self._build_record(order_number, form, totals)

            self.state = CheckoutState.SUBMITTING
            await asyncio.wait_for(self.backend.insert_order(record), timeout=self.timeout_seconds)

        except (BackendError, asyncio.TimeoutError) as e:
            logger.error(f"Order submission failed during {self.state.value}: {e!r}")
            self.state = CheckoutState.FAILED
            self.notices.error("Order Failed", "There was an error placing your order. Please try again.")
            return CheckoutResult(succeeded=False, totals=totals, error="backend")

        self.state = CheckoutState.SUCCEEDED
        logger.info(f"Order placed: order_number={order_number}, total={totals.total}")
        self.notices.success(
            "Order Placed Successfully!",
            f"Your order #{order_number} ({format_price(totals.total)}) has been received. "
            "We'll contact you shortly to confirm delivery details."
        )

        self.cart.clear_cart()
        self.close_checkout()
        self.form = CheckoutForm()
        self.promo.reset()

        return CheckoutResult(succeeded=True, order_number=order_number, totals=totals)

    def _build_record(self, order_number: str, form: CheckoutForm, totals: PriceBreakdown) -> OrderRecord:
        items = tuple(
            OrderItemSnapshot(
                id=item.id,
                name=item.name,
                image=item.image,
                quantity=item.quantity,
                price=item.price
            )
            for item in self.cart.items
        )

        return OrderRecord(
            order_number=order_number,
            customer_name=form.name.strip(),
            customer_phone=form.phone.strip(),
            customer_address=form.address.strip(),
            notes=form.notes.strip() or None,
            items=items,
            subtotal=totals.subtotal,
            promo_code=self.promo.applied_code,
            discount_percent=totals.discount_percent,
            discount_amount=totals.discount_amount,
            total_amount=totals.total
        )
