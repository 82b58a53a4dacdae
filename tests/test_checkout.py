import asyncio
import pytest
from decimal import Decimal

from atorwala.schemas.order import CheckoutForm, OrderStatus
from atorwala.services.checkout import CheckoutOrchestrator, CheckoutState


def valid_form(**overrides):
    data = {
        "name": "Nusrat Jahan",
        "phone": "01711000000",
        "address": "House 12, Road 5, Dhanmondi, Dhaka",
        "notes": "Call before delivery",
    }
    data.update(overrides)
    return CheckoutForm(**data)


@pytest.fixture
def checkout(cart, backend, promo, notices):
    return CheckoutOrchestrator(cart=cart, backend=backend, promo=promo, notices=notices, timeout_seconds=1)


@pytest.mark.asyncio
async def test_successful_checkout_with_promo(checkout, cart, backend, notices, blossom, mini):
    cart.add_to_cart(blossom, 1)
    cart.add_to_cart(mini, 2)
    assert cart.get_total_price() == Decimal("450")
    checkout.open_checkout()

    result = await checkout.submit_order(valid_form(promo_code="SAVE10"))

    assert result.succeeded
    assert result.order_number == "ORD-TEST-0001"
    assert result.totals.discount_amount == Decimal("45")
    assert result.totals.total == Decimal("405")

    record = backend.orders[0]
    assert record.order_number == "ORD-TEST-0001"
    assert record.subtotal == Decimal("450")
    assert record.promo_code == "SAVE10"
    assert record.discount_percent == Decimal("10")
    assert record.discount_amount == Decimal("45")
    assert record.total_amount == Decimal("405")
    assert record.status == OrderStatus.PENDING
    assert record.notes == "Call before delivery"
    assert [(item.id, item.quantity, item.price) for item in record.items] == [
        ("mystic-blossom", 1, Decimal("250")),
        ("attar-mini", 2, Decimal("100")),
    ]

    assert cart.is_empty
    assert checkout.form == CheckoutForm()
    assert not checkout.is_open
    assert checkout.promo.code == ""
    assert checkout.state == CheckoutState.IDLE
    assert notices.notices[-1].title == "Order Placed Successfully!"
    assert "৳405.00" in notices.notices[-1].description


@pytest.mark.asyncio
async def test_order_number_requested_before_insert(checkout, cart, backend, blossom):
    cart.add_to_cart(blossom)

    await checkout.submit_order(valid_form())

    assert backend.calls == ["generate_order_number", "insert_order"]


@pytest.mark.asyncio
async def test_missing_address_rejected_before_remote_calls(checkout, cart, backend, notices, blossom):
    cart.add_to_cart(blossom, 2)
    form = valid_form(address="   ", promo_code="SAVE10")

    result = await checkout.submit_order(form)

    assert not result.succeeded
    assert result.error == "validation"
    assert backend.calls == []
    assert cart.get_total_items() == 2
    assert checkout.form == form
    assert notices.notices[-1].title == "Missing Information"
    assert notices.notices[-1].variant == "destructive"


@pytest.mark.asyncio
async def test_empty_cart_rejected(checkout, backend, notices):
    result = await checkout.submit_order(valid_form())

    assert not result.succeeded
    assert backend.calls == []
    assert notices.notices[-1].title == "Cart is empty"


@pytest.mark.asyncio
async def test_insert_failure_keeps_cart_and_form(checkout, cart, backend, notices, blossom):
    cart.add_to_cart(blossom, 3)
    checkout.open_checkout()
    backend.fail_on.add("insert_order")
    form = valid_form()

    result = await checkout.submit_order(form)

    assert not result.succeeded
    assert result.error == "backend"
    assert backend.calls == ["generate_order_number", "insert_order"]
    assert cart.get_total_items() == 3
    assert checkout.form == form
    assert checkout.is_open
    assert checkout.state == CheckoutState.IDLE
    assert notices.notices[-1].title == "Order Failed"

    backend.fail_on.clear()
    retry = await checkout.submit_order(form)

    assert retry.succeeded
    assert retry.order_number == "ORD-TEST-0002"
    assert cart.is_empty


@pytest.mark.asyncio
async def test_order_number_failure_skips_insert(checkout, cart, backend, blossom):
    cart.add_to_cart(blossom)
    backend.fail_on.add("generate_order_number")

    result = await checkout.submit_order(valid_form())

    assert not result.succeeded
    assert backend.calls == ["generate_order_number"]
    assert not cart.is_empty


@pytest.mark.asyncio
async def test_hanging_backend_times_out(cart, backend, promo, notices, blossom):
    async def hang():
        await asyncio.sleep(10)

    backend.generate_order_number = hang
    checkout = CheckoutOrchestrator(cart=cart, backend=backend, promo=promo, notices=notices, timeout_seconds=0.01)
    cart.add_to_cart(blossom)

    result = await checkout.submit_order(valid_form())

    assert not result.succeeded
    assert not cart.is_empty
    assert checkout.state == CheckoutState.IDLE


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_rejected(cart, backend, promo, notices, blossom):
    release = asyncio.Event()
    original = backend.insert_order

    async def slow_insert(record):
        await release.wait()
        await original(record)

    backend.insert_order = slow_insert
    checkout = CheckoutOrchestrator(cart=cart, backend=backend, promo=promo, notices=notices, timeout_seconds=1)
    cart.add_to_cart(blossom)

    first = asyncio.create_task(checkout.submit_order(valid_form()))
    await asyncio.sleep(0.01)
    assert checkout.state == CheckoutState.SUBMITTING

    second = await checkout.submit_order(valid_form())
    release.set()
    first_result = await first

    assert second.error == "in_progress"
    assert first_result.succeeded
    assert len(backend.orders) == 1


@pytest.mark.asyncio
async def test_record_is_a_frozen_snapshot(checkout, cart, backend, blossom):
    cart.add_to_cart(blossom, 2)
    backend.fail_on.add("insert_order")
    captured = []
    original = backend.insert_order

    async def capture(record):
        captured.append(record)
        await original(record)

    backend.insert_order = capture
    await checkout.submit_order(valid_form())

    cart.update_quantity("mystic-blossom", 9)

    assert captured[0].items[0].quantity == 2
    with pytest.raises(Exception):
        captured[0].total_amount = Decimal("1")


@pytest.mark.asyncio
async def test_invalid_promo_code_places_order_without_discount(checkout, cart, backend, blossom):
    cart.add_to_cart(blossom, 2)

    result = await checkout.submit_order(valid_form(promo_code="NOPE"))

    assert result.succeeded
    assert backend.orders[0].promo_code is None
    assert backend.orders[0].total_amount == Decimal("500")


@pytest.mark.asyncio
async def test_promo_failure_does_not_block_checkout(checkout, cart, backend, blossom):
    cart.add_to_cart(blossom)
    backend.fail_on.add("validate_promo_code")

    result = await checkout.submit_order(valid_form(promo_code="SAVE10"))

    assert result.succeeded
    assert backend.orders[0].discount_amount == 0


@pytest.mark.asyncio
async def test_open_checkout_requires_items(checkout, cart, blossom):
    assert not checkout.open_checkout()
    assert not checkout.is_open

    cart.add_to_cart(blossom)

    assert checkout.open_checkout()
    assert checkout.is_open
