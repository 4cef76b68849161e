"""Contracts for the collaborators the order core is wired with.

Concrete implementations live in ``orderflow.db``, ``orderflow.cache``,
``orderflow.kafka``, ``orderflow.broker``, ``orderflow.jobs`` and
``orderflow.clients``; tests provide in-memory doubles.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from orderflow.domain.status import OrderStatus
from orderflow.schemas import Order, OrderItem, OrderItemIn, ShippingAddress, StatusStats


class OrderStore(Protocol):
    def create(
        self,
        user_id: str,
        items: Sequence[OrderItemIn],
        shipping_address: ShippingAddress,
        total_amount: Decimal,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Order: ...

    def get(self, order_id: str) -> Optional[Order]: ...

    def find_by_user(self, user_id: str, page: int, limit: int) -> Tuple[List[Order], int]: ...

    def update_status(
        self,
        order_id: str,
        expected_version: int,
        status: OrderStatus,
        cancelled_at: Optional[datetime] = None,
        cancel_reason: Optional[str] = None,
    ) -> Order: ...

    def stats_by_status(self, user_id: Optional[str] = None) -> List[StatusStats]: ...


class Cache(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, *keys: str) -> None: ...


@runtime_checkable
class PrefixScanner(Protocol):
    """Implemented only by cache backends that can enumerate keys."""

    def scan_prefix(self, prefix: str) -> List[str]: ...


class EventBroker(Protocol):
    """Partitioned topic transport (Broker A)."""

    def emit(self, topic: str, key: str, payload: Dict[str, Any]) -> None: ...


class QueueBroker(Protocol):
    """Durable queue transport (Broker B). ``emit`` returns once acknowledged."""

    def emit(self, queue: str, payload: Dict[str, Any]) -> Any: ...


ProgressCallback = Callable[[int], None]


class InventoryClient(Protocol):
    def check_availability(self, order_id: str, items: Sequence[OrderItem]) -> bool: ...

    def reserve(self, order_id: str, items: Sequence[OrderItem]) -> None: ...


class PaymentClient(Protocol):
    def initiate(self, order_id: str, amount: Decimal) -> str: ...


class NotificationClient(Protocol):
    def send_email(self, user_id: str, notification_type: str, order_id: str) -> None: ...

    def send_sms(self, user_id: str, notification_type: str, order_id: str) -> None: ...


class InvoiceClient(Protocol):
    def generate(self, order: Order) -> str: ...
