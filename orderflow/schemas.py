from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orderflow.domain.status import OrderStatus

class ShippingAddress(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    model_config = ConfigDict(frozen=True)

class OrderItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    # Money columns hold cents
    unit_price: Decimal = Field(ge=0, decimal_places=2)

class OrderItem(OrderItemIn):
    id: Optional[str] = None
    total_price: Decimal

class Order(BaseModel):
    id: str
    user_id: str
    status: OrderStatus
    total_amount: Decimal
    shipping_address: ShippingAddress
    items: List[OrderItem] = []
    metadata: Dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    version: int = 1


class OrderPage(BaseModel):
    orders: List[Order]
    total: int
    page: int
    limit: int

class StatusStats(BaseModel):
    status: OrderStatus
    count: int
    total_amount: Decimal
