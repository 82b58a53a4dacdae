import json
import httpx
import pytest
from decimal import Decimal

from atorwala.core.backend_client import BackendClient, BackendError
from atorwala.schemas.order import OrderItemSnapshot, OrderRecord


def make_client(handler, retries=1):
    return BackendClient(
        base_url="https://backend.test",
        api_key="anon-key",
        timeout=5,
        retries=retries,
        transport=httpx.MockTransport(handler)
    )


def make_record():
    return OrderRecord(
        order_number="ORD-20250101-ABC123",
        customer_name="Rahim Uddin",
        customer_phone="01811000000",
        customer_address="Mirpur 10, Dhaka",
        items=(OrderItemSnapshot(id="raw-pulse", name="Raw Pulse", image="", quantity=2, price=Decimal("250")),),
        subtotal=Decimal("500"),
        total_amount=Decimal("500")
    )


@pytest.mark.asyncio
async def test_list_products_sends_auth_headers_and_ordering():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": "raw-pulse", "name": "Raw Pulse", "price": 250}])

    client = make_client(handler)
    rows = await client.list_products()
    await client.close()

    assert rows[0]["id"] == "raw-pulse"
    request = seen[0]
    assert request.url.path == "/rest/v1/products"
    assert request.url.params["select"] == "*"
    assert request.url.params["order"] == "created_at.asc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


@pytest.mark.asyncio
async def test_validate_promo_code_posts_code():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json=[{"is_valid": True, "discount_percent": 10}])

    client = make_client(handler)
    rows = await client.validate_promo_code("EID10")

    assert seen == [{"code": "EID10"}]
    assert rows == [{"is_valid": True, "discount_percent": 10}]


@pytest.mark.asyncio
async def test_validate_promo_code_accepts_single_object():
    client = make_client(lambda request: httpx.Response(200, json={"is_valid": False, "discount_percent": 0}))

    rows = await client.validate_promo_code("NOPE")

    assert rows == [{"is_valid": False, "discount_percent": 0}]


@pytest.mark.asyncio
async def test_generate_order_number():
    def handler(request):
        assert request.url.path == "/rest/v1/rpc/generate_order_number"
        return httpx.Response(200, json="ORD-20250101-ABC123")

    client = make_client(handler)

    assert await client.generate_order_number() == "ORD-20250101-ABC123"


@pytest.mark.asyncio
async def test_generate_order_number_empty_response():
    client = make_client(lambda request: httpx.Response(200, json=None))

    with pytest.raises(BackendError):
        await client.generate_order_number()


@pytest.mark.asyncio
async def test_insert_order_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201)

    client = make_client(handler)
    await client.insert_order(make_record())

    request = seen[0]
    payload = json.loads(request.content)
    assert request.url.path == "/rest/v1/orders"
    assert request.headers["prefer"] == "return=minimal"
    assert payload["order_number"] == "ORD-20250101-ABC123"
    assert payload["status"] == "pending"
    assert payload["payment_method"] == "cash_on_delivery"
    assert payload["items"][0]["id"] == "raw-pulse"
    assert Decimal(payload["total_amount"]) == Decimal("500")


@pytest.mark.asyncio
async def test_connect_error_is_retried_once():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[])

    client = make_client(handler)

    assert await client.list_products() == []
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_retries_are_bounded():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(BackendError):
        await client.list_products()
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_insert_not_retried_after_read_timeout():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ReadTimeout("no response", request=request)

    client = make_client(handler)

    with pytest.raises(BackendError):
        await client.insert_order(make_record())
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_insert_retried_after_connect_error():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(201)

    client = make_client(handler)
    await client.insert_order(make_record())

    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_http_error_status_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(500, text="internal error")

    client = make_client(handler)

    with pytest.raises(BackendError) as exc_info:
        await client.generate_order_number()
    assert exc_info.value.status_code == 500
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_invalid_json_raises_backend_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(BackendError):
        await client.list_products()
