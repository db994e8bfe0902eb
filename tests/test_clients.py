# tests/test_clients.py

import httpx
import pytest

from autoshop.clients.catalog import CatalogClient
from autoshop.clients.payments import PaymentClient
from autoshop.core.exceptions import UpstreamPaymentFailure
from autoshop.schemas.product import PaymentMethodRef

PRODUCT_JSON = {
    "id": 5,
    "title": "Garden hose",
    "description": "20m",
    "price": 1500,
    "trust_score": 99,
    "tags": ["garden"],
    "category_id": 9,
}


def catalog_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/api/products/5":
        return httpx.Response(200, json=PRODUCT_JSON)
    if request.url.path == "/api/products/6":
        return httpx.Response(500, text="catalog exploded")
    return httpx.Response(404, json={"detail": "not found"})


@pytest.mark.asyncio
async def test_catalog_client_parses_product_and_maps_404():
    client = CatalogClient("http://catalog.test/api", transport=httpx.MockTransport(catalog_handler))

    product = await client.get_product_by_id(5)
    assert product.title == "Garden hose"
    assert product.tags == ["garden"]

    assert await client.get_product_by_id(404) is None

    with pytest.raises(httpx.HTTPStatusError):
        await client.get_product_by_id(6)
    await client.aclose()


def payments_client(handler) -> PaymentClient:
    return PaymentClient("http://payments.test/api", "sk_test", transport=httpx.MockTransport(handler))


METHOD = PaymentMethodRef(id="pm_1", user_id=7, brand="visa", last4="4242")


@pytest.mark.asyncio
async def test_payment_client_charges_and_sends_auth_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": "pi_1", "status": "succeeded", "amount": 450, "currency": "gbp"})

    client = payments_client(handler)
    result = await client.charge(450, "gbp", METHOD, description="Auto-purchase", metadata={"recommendation_id": 3})

    assert result.id == "pi_1"
    assert seen["auth"] == "Bearer sk_test"
    assert b'"payment_method":"pm_1"' in seen["body"].replace(b" ", b"")
    await client.aclose()


@pytest.mark.asyncio
async def test_payment_client_surfaces_gateway_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(402, json={"error": {"message": "Your card was declined."}})

    client = payments_client(handler)
    with pytest.raises(UpstreamPaymentFailure) as exc_info:
        await client.charge(450, "gbp", METHOD)
    assert exc_info.value.message == "Your card was declined."
    await client.aclose()


@pytest.mark.asyncio
async def test_payment_client_rejects_unsuccessful_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "pi_2", "status": "requires_action", "amount": 450, "currency": "gbp"})

    client = payments_client(handler)
    with pytest.raises(UpstreamPaymentFailure) as exc_info:
        await client.charge(450, "gbp", METHOD)
    assert "requires_action" in exc_info.value.message
    await client.aclose()


@pytest.mark.asyncio
async def test_payment_client_default_method():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/customers/7/payment-methods/default":
            return httpx.Response(200, json={"id": "pm_1", "user_id": 7, "brand": "visa", "last4": "4242"})
        return httpx.Response(404)

    client = payments_client(handler)
    assert (await client.get_default_payment_method(7)).id == "pm_1"
    assert await client.get_default_payment_method(8) is None
    await client.aclose()
