import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from daily_dose_pos.client.errors import ApiError
from daily_dose_pos.schemas.menu import MenuRead
from daily_dose_pos.schemas.order import OrderRead

logger = logging.getLogger(__name__)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int = 3,
    backoff: float = 0.5,
    **kwargs,
) -> httpx.Response:
    """
    Запрос с ограниченным числом повторов и экспоненциальной паузой.
    Повторяются только сетевые ошибки и 5xx; 4xx возвращается сразу.
    Если сеть так и не ответила: пробрасывается httpx.TransportError.
    """
    attempt = 0
    while True:
        last = attempt >= retries
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if last:
                raise
            logger.warning("%s %s failed (%s), retry %d/%d", method, url, e.__class__.__name__, attempt + 1, retries)
        else:
            if response.status_code < 500 or last:
                return response
            logger.warning("%s %s returned %d, retry %d/%d", method, url, response.status_code, attempt + 1, retries)
        await asyncio.sleep(backoff * (2 ** attempt))
        attempt += 1


class PosApiClient:
    """HTTP-клиент кассы к API POS."""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        retries: int = 3,
        backoff: float = 0.5,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.retries = retries
        self.backoff = backoff
        self.client = httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    async def request(self, method: str, url: str, **kwargs) -> Any:
        response = await fetch_with_retry(
            self.client, method, url, retries=self.retries, backoff=self.backoff, **kwargs
        )
        if response.is_error:
            raise ApiError.from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_orders(self) -> List[OrderRead]:
        data = await self.request("GET", "/orders")
        return [OrderRead.model_validate(o) for o in data]

    async def create_order(self, payload: Dict[str, Any]) -> OrderRead:
        data = await self.request("POST", "/orders", json=payload)
        return OrderRead.model_validate(data)

    async def update_order_status(self, order_id: str, status: str) -> OrderRead:
        data = await self.request("PATCH", f"/orders/{order_id}/status", json={"status": status})
        return OrderRead.model_validate(data)

    async def mark_paid(
        self,
        order_id: str,
        payment_method: str,
        amount_tendered: Optional[float] = None,
        change_amount: Optional[float] = None,
    ) -> OrderRead:
        data = await self.request(
            "PATCH",
            f"/orders/{order_id}/pay",
            json={
                "paymentMethod": payment_method,
                "amountTendered": amount_tendered,
                "changeAmount": change_amount,
            },
        )
        return OrderRead.model_validate(data)

    async def complete_drink_ticket(self, order_id: str) -> OrderRead:
        data = await self.request("PATCH", f"/orders/{order_id}/drink-ticket")
        return OrderRead.model_validate(data)

    async def get_menu(self) -> MenuRead:
        data = await self.request("GET", "/menu")
        return MenuRead.model_validate(data)

    async def aclose(self) -> None:
        await self.client.aclose()
