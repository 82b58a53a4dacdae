import uuid
from fastapi import Depends, Request

from atorwala.core.backend_client import StorefrontBackend, backend_client
from atorwala.core.config import settings
from atorwala.core.notices import NoticeBoard
from atorwala.schemas.order import CheckoutForm
from atorwala.services.cart import CartStore
from atorwala.services.checkout import CheckoutOrchestrator
from atorwala.services.promo import PromoCodeField, PromoValidator

SESSION_ID_KEY = "session_id"
CART_KEY = "cart"
PROMO_KEY = "promo"
FORM_KEY = "checkout_form"
CHECKOUT_OPEN_KEY = "checkout_open"

_database_backend = None


def get_backend() -> StorefrontBackend:
    """Backend selected by BACKEND_MODE."""
    global _database_backend
    if settings.BACKEND_MODE == "database":
        if _database_backend is None:
            from atorwala.db.session import async_session
            from atorwala.services.db_backend import DatabaseBackend
            _database_backend = DatabaseBackend(async_session)
        return _database_backend
    return backend_client


def get_notices() -> NoticeBoard:
    return NoticeBoard()


def get_session_id(request: Request) -> str:
    """Stable id of the browsing session, created on first use."""
    if SESSION_ID_KEY not in request.session:
        request.session[SESSION_ID_KEY] = uuid.uuid4().hex
    return request.session[SESSION_ID_KEY]


def get_cart(request: Request) -> CartStore:
    """Cart restored from the session; every mutation is written back to it."""
    get_session_id(request)
    cart = CartStore.restore(request.session.get(CART_KEY))

    def save(store: CartStore):
        request.session[CART_KEY] = store.snapshot()

    cart.subscribe(save)
    return cart


def get_promo_field(
    request: Request,
    backend: StorefrontBackend = Depends(get_backend),
    notices: NoticeBoard = Depends(get_notices)
) -> PromoCodeField:
    # The browser debounces typing; a request is already a settled input.
    promo = PromoCodeField.restore(
        request.session.get(PROMO_KEY),
        PromoValidator(backend),
        debounce_seconds=0,
        notices=notices
    )

    def save(field: PromoCodeField):
        request.session[PROMO_KEY] = field.snapshot()

    promo.subscribe(save)
    return promo


def get_checkout(
    request: Request,
    cart: CartStore = Depends(get_cart),
    backend: StorefrontBackend = Depends(get_backend),
    promo: PromoCodeField = Depends(get_promo_field),
    notices: NoticeBoard = Depends(get_notices)
) -> CheckoutOrchestrator:
    form_data = request.session.get(FORM_KEY)
    return CheckoutOrchestrator(
        cart=cart,
        backend=backend,
        promo=promo,
        notices=notices,
        form=CheckoutForm.model_validate(form_data) if form_data else None,
        is_open=bool(request.session.get(CHECKOUT_OPEN_KEY, False))
    )


def save_checkout(request: Request, checkout: CheckoutOrchestrator):
    request.session[FORM_KEY] = checkout.form.model_dump(mode="json")
    request.session[CHECKOUT_OPEN_KEY] = checkout.is_open
