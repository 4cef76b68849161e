"""Order orchestrator: the single entry point for every lifecycle operation.

Store, cache, event publication and job enqueueing are independent effects
with no shared transaction. Once an order is persisted it stays persisted,
even if a later publish or enqueue fails.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

import pydantic
import structlog

from orderflow.domain.status import OrderStatus, validate_transition
from orderflow.errors import ConcurrentUpdate, InvalidTransition, NotFound, ValidationError
from orderflow.interfaces import Cache, OrderStore, PrefixScanner
from orderflow.jobs.queue import JobQueue
from orderflow.publisher import EventPublisher
from orderflow.schemas import Order, OrderItemIn, OrderPage, ShippingAddress, StatusStats

logger = structlog.get_logger(__name__)

PROCESS_ORDER_JOB = "process-order"


def order_cache_key(order_id: str) -> str:
    return f"order:{order_id}"


def user_orders_prefix(user_id: str) -> str:
    return f"user-orders:{user_id}:"


def user_orders_cache_key(user_id: str, page: int, limit: int) -> str:
    return f"{user_orders_prefix(user_id)}{page}:{limit}"


class OrderOrchestrator:
    def __init__(
        self,
        store: OrderStore,
        cache: Cache,
        publisher: EventPublisher,
        jobs: JobQueue,
        cache_ttl: int = 300,
    ):
        self._store = store
        self._cache = cache
        self._publisher = publisher
        self._jobs = jobs
        self._cache_ttl = cache_ttl

    def create_order(
        self,
        user_id: str,
        items: Sequence[Union[OrderItemIn, Dict[str, Any]]],
        shipping_address: Union[ShippingAddress, Dict[str, Any]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Order:
        if not user_id:
            raise ValidationError("userId is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        try:
            parsed = [OrderItemIn.model_validate(it) for it in items]
            address = ShippingAddress.model_validate(shipping_address)
        except pydantic.ValidationError as exc:
            raise ValidationError(str(exc)) from exc

        total_amount = sum((it.unit_price * it.quantity for it in parsed), Decimal("0"))
        logger.info("Creating order", user_id=user_id, item_count=len(parsed))

        # Nothing below runs unless the order is persisted
        order = self._store.create(user_id, parsed, address, total_amount, metadata)
        logger.info("Order created", order_id=order.id, total_amount=str(order.total_amount))

        self.invalidate_user_orders_cache(order.user_id)
        self._publisher.publish_order_created(order)
        self._jobs.enqueue(
            PROCESS_ORDER_JOB,
            {"orderId": order.id, "userId": order.user_id},
            job_id=f"{PROCESS_ORDER_JOB}:{order.id}",
        )
        return order

    def find_one(self, order_id: str) -> Order:
        key = order_cache_key(order_id)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for order", order_id=order_id)
            return Order.model_validate_json(cached)

        order = self._store.get(order_id)
        if order is None:
            raise NotFound(order_id)
        self._cache.set(key, order.model_dump_json(), self._cache_ttl)
        return order

    def _reload(self, order_id: str) -> Order:
        self._cache.delete(order_cache_key(order_id))
        return self.find_one(order_id)

    def find_by_user(self, user_id: str, page: int = 1, limit: int = 10) -> OrderPage:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        key = user_orders_cache_key(user_id, page, limit)
        cached = self._cache.get(key)
        if cached is not None:
            return OrderPage.model_validate_json(cached)

        orders, total = self._store.find_by_user(user_id, page, limit)
        result = OrderPage(orders=orders, total=total, page=page, limit=limit)
        self._cache.set(key, result.model_dump_json(), self._cache_ttl)
        return result

    def update_status(self, order_id: str, new_status: OrderStatus,
                      cancel_reason: Optional[str] = None) -> Order:
        try:
            new_status = OrderStatus(new_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown order status '{new_status}'") from exc

        order = self.find_one(order_id)
        try:
            validate_transition(order.status, new_status)
        except InvalidTransition:
            # The copy may be a cached one that lags the store
            order = self._reload(order_id)
            validate_transition(order.status, new_status)

        cancelled_at = None
        if new_status == OrderStatus.CANCELLED:
            cancelled_at = datetime.now(timezone.utc)
            cancel_reason = cancel_reason or ""

        try:
            updated = self._store.update_status(
                order_id,
                expected_version=order.version,
                status=new_status,
                cancelled_at=cancelled_at,
                cancel_reason=cancel_reason,
            )
        except ConcurrentUpdate:
            # Another writer won; drop our copy so a retry starts from the stored row
            self._cache.delete(order_cache_key(order_id))
            raise
        logger.info("Order status updated", order_id=order_id,
                    from_status=order.status.value, to_status=new_status.value)

        # Drop stale reads before publishing so a broker error cannot leave them behind
        self._cache.delete(order_cache_key(order_id))
        self.invalidate_user_orders_cache(updated.user_id)

        self._publisher.publish_order_status_changed(updated)
        if new_status == OrderStatus.CANCELLED:
            self._publisher.publish_order_cancelled(updated)
        return updated

    def cancel_order(self, order_id: str, reason: str) -> Order:
        return self.update_status(order_id, OrderStatus.CANCELLED, cancel_reason=reason)

    def get_order_stats(self, user_id: Optional[str] = None) -> List[StatusStats]:
        # Always read through to the store
        return self._store.stats_by_status(user_id)

    def invalidate_user_orders_cache(self, user_id: str) -> None:
        if not isinstance(self._cache, PrefixScanner):
            # Listings for this user stay cached until their TTL runs out
            logger.debug("Cache cannot scan prefixes; skipping listing invalidation", user_id=user_id)
            return
        keys = self._cache.scan_prefix(user_orders_prefix(user_id))
        if keys:
            self._cache.delete(*keys)
