from typing import Sequence
from orderflow.clients.base import ServiceClient
from orderflow.errors import JobFailure
from orderflow.schemas import OrderItem

def _items(items: Sequence[OrderItem]) -> list:
    return [{"product_id": it.product_id, "qty": it.quantity} for it in items]

class HttpInventoryClient(ServiceClient):
    """Catalog inventory endpoints (availability check and reservation)."""

    service = "catalog"

    def check_availability(self, order_id: str, items: Sequence[OrderItem]) -> bool:
        resp = self._post("/catalog/v1/inventory/availability", {"order_id": order_id, "items": _items(items)})
        if resp.status_code == 409:
            return False
        if resp.status_code != 200:
            raise JobFailure(f"Inventory check failed ({resp.status_code}): {resp.text}")
        return bool(resp.json().get("available"))

    def reserve(self, order_id: str, items: Sequence[OrderItem]) -> None:
        resp = self._post("/catalog/v1/inventory/reserve", {"order_id": order_id, "items": _items(items)})
        if resp.status_code == 409:
            raise JobFailure(f"Insufficient inventory for order {order_id}")
        if resp.status_code != 200:
            raise JobFailure(f"Inventory reservation failed ({resp.status_code}): {resp.text}")
