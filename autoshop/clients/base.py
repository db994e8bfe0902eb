# autoshop/clients/base.py

from typing import Any, Dict, Protocol

from autoshop.schemas.product import PaymentMethodRef, PaymentResult, ProductInfo


class ProductCatalog(Protocol):
    async def get_product_by_id(self, product_id: int) -> ProductInfo | None: ...


class PaymentGateway(Protocol):
    async def get_default_payment_method(self, user_id: int) -> PaymentMethodRef | None: ...

    async def charge(
        self,
        amount: int,
        currency: str,
        payment_method: PaymentMethodRef,
        description: str = "",
        metadata: Dict[str, Any] | None = None,
    ) -> PaymentResult:
        """Проводит платеж. При любом отказе шлюза поднимает UpstreamPaymentFailure."""
        ...
