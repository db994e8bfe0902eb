# autoshop/clients/payments.py

import httpx
import logging
from typing import Any, Dict

from autoshop.core.config import settings
from autoshop.core.exceptions import UpstreamPaymentFailure
from autoshop.schemas.product import PaymentMethodRef, PaymentResult

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = {"succeeded"}


def _error_message(response: httpx.Response) -> str:
    """Достает текст ошибки шлюза из тела ответа, если он там есть."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    if isinstance(error, str):
        return error
    return response.text or f"HTTP {response.status_code}"


class PaymentClient:
    """Асинхронный клиент платежного шлюза (платежные намерения с немедленным подтверждением)."""

    def __init__(self, base_url: str, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        timeouts = httpx.Timeout(10.0, read=30.0)
        self.async_client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeouts,
            transport=transport,
        )

    async def get_default_payment_method(self, user_id: int) -> PaymentMethodRef | None:
        try:
            response = await self.async_client.get(f"/customers/{user_id}/payment-methods/default")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return PaymentMethodRef.model_validate(response.json())
        except httpx.RequestError as e:
            logger.error(f"Network error during GET request to {e.request.url!r}.", exc_info=True)
            raise UpstreamPaymentFailure(f"Payment service unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during GET request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise UpstreamPaymentFailure(_error_message(e.response)) from e

    async def charge(
        self,
        amount: int,
        currency: str,
        payment_method: PaymentMethodRef,
        description: str = "",
        metadata: Dict[str, Any] | None = None,
    ) -> PaymentResult:
        payload = {
            "amount": amount,
            "currency": currency,
            "customer": payment_method.user_id,
            "payment_method": payment_method.id,
            "confirm": True,
            "description": description,
            "metadata": metadata or {},
        }
        try:
            response = await self.async_client.post("/payment-intents", json=payload)
            response.raise_for_status()
        except httpx.RequestError as e:
            logger.error(f"Network error during POST request to {e.request.url!r}.", exc_info=True)
            raise UpstreamPaymentFailure(f"Payment service unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during POST request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise UpstreamPaymentFailure(_error_message(e.response)) from e

        result = PaymentResult.model_validate(response.json())
        if result.status not in SUCCESS_STATUSES:
            logger.warning(f"Payment {result.id} finished with status '{result.status}'")
            raise UpstreamPaymentFailure(f"Payment failed with status: {result.status}", {"payment_id": result.id})
        return result

    async def aclose(self) -> None:
        await self.async_client.aclose()


def build_payment_client() -> PaymentClient:
    return PaymentClient(base_url=settings.PAYMENTS_API_URL, api_key=settings.PAYMENTS_API_KEY)
