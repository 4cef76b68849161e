from orderflow.clients.base import ServiceClient
from orderflow.errors import JobFailure
from orderflow.schemas import Order

class HttpInvoiceClient(ServiceClient):
    service = "invoice"

    def generate(self, order: Order) -> str:
        """Render the invoice remotely and return the artifact URL."""
        resp = self._post("/invoice/v1/invoices", {
            "order_id": order.id,
            "user_id": order.user_id,
            "total_amount": str(order.total_amount),
            "items": [
                {"product_id": it.product_id, "name": it.product_name, "qty": it.quantity,
                 "unit_price": str(it.unit_price), "total_price": str(it.total_price)}
                for it in order.items
            ],
        })
        if resp.status_code not in (200, 201):
            raise JobFailure(f"Invoice generation failed ({resp.status_code}): {resp.text}")
        return resp.json()["url"]
