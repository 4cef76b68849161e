"""Domain events emitted for order lifecycle changes.

Every event travels as a JSON envelope::

    {"eventType": "...", "timestamp": "<ISO-8601>", "data": {...}}

``encode_event`` and ``decode_event`` are the only places that convert
between these models and wire payloads.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer
from pydantic.alias_generators import to_camel

from orderflow.domain.status import OrderStatus
from orderflow.schemas import Order


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class _OrderData(_Wire):
    order_id: str
    user_id: str
    total_amount: Decimal

    @field_serializer("total_amount", when_used="json")
    def _amount_as_number(self, v: Decimal) -> float:
        return float(v)


class OrderCreatedData(_OrderData):
    status: OrderStatus
    item_count: int


class OrderStatusChangedData(_OrderData):
    new_status: OrderStatus


class OrderCancelledData(_OrderData):
    cancel_reason: Optional[str] = None


class OrderCreated(_Wire):
    event_type: Literal["ORDER_CREATED"] = "ORDER_CREATED"
    timestamp: datetime = Field(default_factory=_utcnow)
    data: OrderCreatedData

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreated":
        return cls(data=OrderCreatedData(
            order_id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            status=order.status,
            item_count=len(order.items),
        ))


class OrderStatusChanged(_Wire):
    event_type: Literal["ORDER_STATUS_CHANGED"] = "ORDER_STATUS_CHANGED"
    timestamp: datetime = Field(default_factory=_utcnow)
    data: OrderStatusChangedData

    @classmethod
    def from_order(cls, order: Order) -> "OrderStatusChanged":
        return cls(data=OrderStatusChangedData(
            order_id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            new_status=order.status,
        ))


class OrderCancelled(_Wire):
    event_type: Literal["ORDER_CANCELLED"] = "ORDER_CANCELLED"
    timestamp: datetime = Field(default_factory=_utcnow)
    data: OrderCancelledData

    @classmethod
    def from_order(cls, order: Order) -> "OrderCancelled":
        return cls(data=OrderCancelledData(
            order_id=order.id,
            user_id=order.user_id,
            total_amount=order.total_amount,
            cancel_reason=order.cancel_reason,
        ))


OrderEvent = Annotated[
    Union[OrderCreated, OrderStatusChanged, OrderCancelled],
    Field(discriminator="event_type"),
]

_event_adapter = TypeAdapter(OrderEvent)


class StatusNotification(_Wire):
    """Customer-facing notice sent on Broker B for shipped/delivered orders."""

    type: Literal["STATUS_UPDATE"] = "STATUS_UPDATE"
    order_id: str
    user_id: str
    status: OrderStatus


def encode_event(event: Union[OrderCreated, OrderStatusChanged, OrderCancelled, StatusNotification]) -> Dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True)


def decode_event(raw: Union[bytes, str, Dict[str, Any]]) -> Union[OrderCreated, OrderStatusChanged, OrderCancelled]:
    if isinstance(raw, (bytes, str)):
        return _event_adapter.validate_json(raw)
    return _event_adapter.validate_python(raw)
