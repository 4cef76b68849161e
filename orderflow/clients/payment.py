from decimal import Decimal
from orderflow.clients.base import ServiceClient
from orderflow.errors import JobFailure

class HttpPaymentClient(ServiceClient):
    service = "payment"

    def __init__(self, *args, currency: str = "USD", **kwargs):
        super().__init__(*args, **kwargs)
        self._currency = currency

    def initiate(self, order_id: str, amount: Decimal) -> str:
        """Create a payment intent and return its id."""
        resp = self._post("/payment/v1/payments/create-intent", {
            "order_id": order_id,
            "amount_cents": int((amount * 100).to_integral_value()),
            "currency": self._currency,
        })
        if resp.status_code != 200:
            raise JobFailure(f"Payment initiation failed ({resp.status_code}): {resp.text}")
        return resp.json()["payment_id"]
