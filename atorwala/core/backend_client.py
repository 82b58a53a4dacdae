import logging
import httpx
from typing import Optional, List, Dict, Any, Protocol

from atorwala.core.config import settings
from atorwala.schemas.order import OrderRecord

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when a call to the storefront backend fails for any reason."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorefrontBackend(Protocol):
    async def list_products(self) -> List[Dict[str, Any]]: ...

    async def validate_promo_code(self, code: str) -> List[Dict[str, Any]]: ...

    async def generate_order_number(self) -> str: ...

    async def insert_order(self, record: OrderRecord) -> None: ...


class BackendClient:
    """HTTP client for the hosted storefront backend (PostgREST-style API)."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        timeout: float = None,
        retries: int = None,
        transport: httpx.AsyncBaseTransport = None
    ):
        self.base_url = (base_url or settings.BACKEND_API_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.BACKEND_API_KEY
        self.timeout = timeout if timeout is not None else settings.BACKEND_TIMEOUT_SECONDS
        self.retries = retries if retries is not None else settings.BACKEND_RETRIES
        self.transport = transport
        self.client = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self.client is None:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["apikey"] = self.api_key
                headers["Authorization"] = f"Bearer {self.api_key}"
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self.transport
            )
        return self.client

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        retry_undelivered_only: bool = False,
        **kwargs
    ) -> httpx.Response:
        """
        Send a request, retrying transport failures up to self.retries times.

        With retry_undelivered_only, only connection failures are retried: the
        request provably never reached the backend, so it cannot be applied twice.
        """
        client = await self._get_client()
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                logger.error(f"{operation} failed with status {e.response.status_code}: {e.response.text}")
                raise BackendError(
                    f"{operation} failed: {e.response.status_code} - {e.response.text}",
                    status_code=e.response.status_code
                )
            except httpx.TransportError as e:
                retryable = isinstance(e, (httpx.ConnectError, httpx.ConnectTimeout)) or not retry_undelivered_only
                if retryable and attempt < attempts:
                    logger.warning(f"{operation} attempt {attempt}/{attempts} failed, retrying: {e!r}")
                    continue
                logger.error(f"{operation} failed: {e!r}")
                raise BackendError(f"{operation} failed: {e!r}")

        raise BackendError(f"{operation} failed")

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{operation} returned invalid JSON: {response.text[:200]}")
            raise BackendError(f"{operation} failed: invalid JSON response") from e

    async def list_products(self) -> List[Dict[str, Any]]:
        """
        Fetch the catalog.

        GET /rest/v1/products?select=*&order=created_at.asc
        Returns: [{"id": "raw-pulse", "name": "...", "price": 250, ...}]
        """
        response = await self._request(
            "GET",
            "/rest/v1/products",
            "List products",
            params={"select": "*", "order": "created_at.asc"}
        )
        data = self._json(response, "List products")
        logger.info(f"Fetched {len(data or [])} products from backend")
        return data or []

    async def validate_promo_code(self, code: str) -> List[Dict[str, Any]]:
        """
        POST /rest/v1/rpc/validate_promo_code {"code": "EID10"}
        Returns zero or one row: [{"is_valid": true, "discount_percent": 10}]
        """
        response = await self._request(
            "POST",
            "/rest/v1/rpc/validate_promo_code",
            "Validate promo code",
            json={"code": code}
        )
        data = self._json(response, "Validate promo code")
        if isinstance(data, dict):
            return [data]
        return data or []

    async def generate_order_number(self) -> str:
        response = await self._request(
            "POST",
            "/rest/v1/rpc/generate_order_number",
            "Generate order number",
            json={}
        )
        order_number = self._json(response, "Generate order number")
        if not order_number:
            raise BackendError("Generate order number failed: empty response")
        logger.info(f"Backend generated order number {order_number}")
        return str(order_number)

    async def insert_order(self, record: OrderRecord) -> None:
        payload = record.model_dump(mode="json")
        logger.info(f"Inserting order {record.order_number} on backend")
        logger.debug(f"Order payload: {payload}")

        await self._request(
            "POST",
            "/rest/v1/orders",
            "Insert order",
            retry_undelivered_only=True,
            json=payload,
            headers={"Prefer": "return=minimal"}
        )
        logger.info(f"Backend order inserted successfully: {record.order_number}")

    async def close(self):
        """Close HTTP client."""
        if self.client:
            await self.client.aclose()
            self.client = None


# Global instance
backend_client = BackendClient()
