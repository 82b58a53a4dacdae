import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from atorwala.core.backend_client import BackendError, StorefrontBackend
from atorwala.core.config import settings
from atorwala.core.notices import NoticeBoard
from atorwala.schemas.promo import PromoResult

logger = logging.getLogger(__name__)

PromoObserver = Callable[["PromoCodeField"], None]


class PromoValidator:
    """Asks the backend whether a promo code is valid and what it is worth."""

    def __init__(self, backend: StorefrontBackend, timeout: float = None):
        self.backend = backend
        self.timeout = timeout if timeout is not None else settings.REMOTE_CALL_TIMEOUT_SECONDS

    async def validate(self, code: str) -> PromoResult:
        code = (code or "").strip()
        if not code:
            return PromoResult.no_discount()

        try:
            rows = await asyncio.wait_for(self.backend.validate_promo_code(code), timeout=self.timeout)
        except (BackendError, asyncio.TimeoutError) as e:
            logger.warning(f"Promo code lookup failed for {code!r}: {e!r}")
            return PromoResult(failed=True)

        if not rows:
            return PromoResult.no_discount()

        row = rows[0]
        if not row.get("is_valid"):
            return PromoResult.no_discount()

        try:
            percent = Decimal(str(row.get("discount_percent") or 0))
        except InvalidOperation:
            logger.warning(f"Promo code {code!r} returned unusable discount {row.get('discount_percent')!r}")
            return PromoResult(failed=True)

        if percent <= 0:
            return PromoResult.no_discount()

        percent = min(percent, Decimal("100"))
        return PromoResult(is_valid=True, discount_percent=percent)


class PromoCodeField:
    """
    State of the promo-code input during checkout.

    Editing the text drops any applied discount at once and schedules a new
    validation after a debounce delay. Each edit bumps a generation counter;
    a validation result is applied only if no edit happened while it was in
    flight, so a slow response can never overwrite a newer code's state.
    """

    def __init__(
        self,
        validator: PromoValidator,
        debounce_seconds: float = None,
        notices: Optional[NoticeBoard] = None
    ):
        self.validator = validator
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else settings.PROMO_DEBOUNCE_SECONDS
        )
        self.notices = notices or NoticeBoard()
        self.code = ""
        self.result = PromoResult.no_discount()
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._observers: List[PromoObserver] = []

    @property
    def discount_percent(self) -> Decimal:
        return self.result.discount_percent if self.result.is_valid else Decimal("0")

    @property
    def applied_code(self) -> Optional[str]:
        if self.result.is_valid:
            return self.code.strip()
        return None

    @property
    def is_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def subscribe(self, observer: PromoObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        for observer in list(self._observers):
            observer(self)

    def _cancel_pending(self):
        if self.is_pending:
            self._pending.cancel()
        self._pending = None

    def set_code(self, text: str):
        """Record an edit of the promo-code input. Must be called from a running event loop."""
        text = text or ""
        if text == self.code:
            return

        self.code = text
        self._generation += 1
        self.result = PromoResult.no_discount()
        self._cancel_pending()

        if text.strip():
            self._pending = asyncio.get_running_loop().create_task(
                self._validate_later(self._generation, text.strip())
            )
        self._notify()

    async def _validate_later(self, generation: int, code: str):
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)

        result = await self.validator.validate(code)

        if generation != self._generation:
            logger.debug(f"Discarding stale promo result for {code!r}")
            return

        self.result = result
        if result.is_valid:
            self.notices.success(
                "Promo Code Applied!",
                f"You got {result.discount_percent.normalize():f}% discount on your order."
            )
        elif result.failed:
            self.notices.info(
                "Promo Code Unavailable",
                "We could not check your promo code right now. You can still place the order."
            )
        else:
            self.notices.error("Invalid Promo Code", "The promo code you entered is invalid or expired.")
        self._notify()

    async def settle(self):
        """Wait for the pending validation, if any, to finish."""
        while self._pending is not None:
            pending = self._pending
            try:
                await pending
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
            if self._pending is pending:
                return

    def reset(self):
        self._cancel_pending()
        self._generation += 1
        self.code = ""
        self.result = PromoResult.no_discount()
        self._notify()

    def snapshot(self) -> dict:
        return {
            "code": self.code,
            "is_valid": self.result.is_valid,
            "discount_percent": str(self.result.discount_percent)
        }

    @classmethod
    def restore(
        cls,
        data: Optional[dict],
        validator: PromoValidator,
        debounce_seconds: float = None,
        notices: Optional[NoticeBoard] = None
    ) -> "PromoCodeField":
        field = cls(validator, debounce_seconds=debounce_seconds, notices=notices)
        if data:
            field.code = data.get("code") or ""
            if data.get("is_valid") and field.code.strip():
                field.result = PromoResult(
                    is_valid=True,
                    discount_percent=Decimal(str(data.get("discount_percent") or 0))
                )
        return field
