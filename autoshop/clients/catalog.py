# autoshop/clients/catalog.py

import httpx
import logging

from autoshop.core.config import settings
from autoshop.schemas.product import ProductInfo

logger = logging.getLogger(__name__)

class CatalogClient:
    """
    Асинхронный клиент каталога товаров.
    Отсутствующий товар (404) - это None, остальные HTTP-ошибки пробрасываются.
    """
    def __init__(self, base_url: str, transport: httpx.AsyncBaseTransport | None = None):
        timeouts = httpx.Timeout(10.0, read=30.0)
        self.async_client = httpx.AsyncClient(base_url=base_url, timeout=timeouts, transport=transport)

    async def get_product_by_id(self, product_id: int) -> ProductInfo | None:
        try:
            response = await self.async_client.get(f"/products/{product_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return ProductInfo.model_validate(response.json())
        except httpx.RequestError as e:
            logger.error(f"Network error during GET request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during GET request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise

    async def aclose(self) -> None:
        await self.async_client.aclose()


def build_catalog_client() -> CatalogClient:
    return CatalogClient(base_url=settings.CATALOG_API_URL)
