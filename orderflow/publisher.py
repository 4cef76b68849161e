"""Dual delivery of order events to Broker A (topics) and Broker B (queues).

Neither path is atomic across the two transports: if the process dies
between the two emits, only the first one has happened.
"""

import structlog

from orderflow.domain.status import OrderStatus
from orderflow.errors import PublishFailure
from orderflow.events import (
    OrderCancelled,
    OrderCreated,
    OrderStatusChanged,
    StatusNotification,
    encode_event,
)
from orderflow.interfaces import EventBroker, QueueBroker
from orderflow.schemas import Order

logger = structlog.get_logger(__name__)

TOPIC_ORDER_CREATED = "order.created"
TOPIC_ORDER_STATUS_CHANGED = "order.status.changed"
TOPIC_ORDER_CANCELLED = "order.cancelled"

QUEUE_ORDER_CREATED = "order_created"
QUEUE_ORDER_NOTIFICATION = "order_notification"
QUEUE_ORDER_CANCELLED = "order_cancelled"

_NOTIFY_STATUSES = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


class EventPublisher:
    def __init__(self, topics: EventBroker, queues: QueueBroker):
        self._topics = topics
        self._queues = queues

    def _emit_topic(self, topic: str, key: str, payload: dict) -> None:
        try:
            self._topics.emit(topic, key, payload)
        except Exception as exc:
            raise PublishFailure("topic", topic, str(exc)) from exc

    def _emit_queue(self, queue: str, payload: dict) -> None:
        try:
            self._queues.emit(queue, payload)
        except Exception as exc:
            raise PublishFailure("queue", queue, str(exc)) from exc

    def publish_order_created(self, order: Order) -> None:
        payload = encode_event(OrderCreated.from_order(order))
        try:
            self._emit_topic(TOPIC_ORDER_CREATED, order.id, payload)
            logger.info("Published ORDER_CREATED event", order_id=order.id)
            self._emit_queue(QUEUE_ORDER_CREATED, payload)
        except PublishFailure as exc:
            logger.error("Failed to publish order created event", order_id=order.id, error=str(exc))
            raise

    def publish_order_status_changed(self, order: Order) -> None:
        payload = encode_event(OrderStatusChanged.from_order(order))
        try:
            self._emit_topic(TOPIC_ORDER_STATUS_CHANGED, order.id, payload)
            logger.info("Published ORDER_STATUS_CHANGED event", order_id=order.id, status=order.status.value)
            if order.status in _NOTIFY_STATUSES:
                notice = StatusNotification(order_id=order.id, user_id=order.user_id, status=order.status)
                self._emit_queue(QUEUE_ORDER_NOTIFICATION, encode_event(notice))
        except PublishFailure as exc:
            logger.error("Failed to publish status changed event", order_id=order.id, error=str(exc))
            raise

    def publish_order_cancelled(self, order: Order) -> None:
        """Best effort: failures are logged and never reach the caller.

        The other two publish paths propagate; whether cancellation should
        too is pending product review, so the difference is kept as is.
        """
        payload = encode_event(OrderCancelled.from_order(order))
        try:
            self._emit_topic(TOPIC_ORDER_CANCELLED, order.id, payload)
            self._emit_queue(QUEUE_ORDER_CANCELLED, payload)
            logger.info("Published ORDER_CANCELLED event", order_id=order.id)
        except PublishFailure as exc:
            logger.error("Failed to publish order cancelled event", order_id=order.id, error=str(exc))
