"""SQLAlchemy implementation of the order store.

Every method opens its own session and returns detached pydantic snapshots,
so callers never hold ORM state across calls.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from orderflow.db.models import OrderItemRow, OrderRow
from orderflow.domain.status import OrderStatus
from orderflow.errors import ConcurrentUpdate, NotFound
from orderflow.schemas import Order, OrderItem, OrderItemIn, ShippingAddress, StatusStats

_CENTS = Decimal("0.01")


def to_schema(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        status=row.status,
        total_amount=row.total_amount,
        shipping_address=ShippingAddress(**row.shipping_address),
        items=[
            OrderItem(
                id=it.id,
                product_id=it.product_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                total_price=it.total_price,
            )
            for it in row.items
        ],
        metadata=row.extra or {},
        created_at=row.created_at,
        updated_at=row.updated_at,
        cancelled_at=row.cancelled_at,
        cancel_reason=row.cancel_reason,
        version=row.version,
    )


class SqlOrderStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(
        self,
        user_id: str,
        items: Sequence[OrderItemIn],
        shipping_address: ShippingAddress,
        total_amount: Decimal,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Order:
        db: Session = self._session_factory()
        try:
            order = OrderRow(
                user_id=user_id,
                status=OrderStatus.PENDING,
                total_amount=total_amount,
                shipping_address=shipping_address.model_dump(),
                extra=metadata or {},
                version=1,
            )
            for pos, it in enumerate(items):
                order.items.append(OrderItemRow(
                    position=pos,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    quantity=it.quantity,
                    unit_price=it.unit_price,
                    total_price=it.unit_price * it.quantity,
                ))
            db.add(order); db.commit(); db.refresh(order)
            return to_schema(order)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get(self, order_id: str) -> Optional[Order]:
        db: Session = self._session_factory()
        try:
            row = db.get(OrderRow, order_id)
            return to_schema(row) if row else None
        finally:
            db.close()

    def find_by_user(self, user_id: str, page: int, limit: int) -> Tuple[List[Order], int]:
        db: Session = self._session_factory()
        try:
            total = db.scalar(select(func.count()).select_from(OrderRow).where(OrderRow.user_id == user_id))
            rows = db.scalars(
                select(OrderRow)
                .where(OrderRow.user_id == user_id)
                .order_by(OrderRow.created_at.desc(), OrderRow.id)
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
            return [to_schema(r) for r in rows], int(total or 0)
        finally:
            db.close()

    def update_status(
        self,
        order_id: str,
        expected_version: int,
        status: OrderStatus,
        cancelled_at: Optional[datetime] = None,
        cancel_reason: Optional[str] = None,
    ) -> Order:
        """Write the new status only if nobody else bumped the version first."""
        values = {
            "status": status,
            "version": OrderRow.version + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        if status == OrderStatus.CANCELLED:
            values["cancelled_at"] = cancelled_at
            values["cancel_reason"] = cancel_reason
        db: Session = self._session_factory()
        try:
            result = db.execute(
                update(OrderRow)
                .where(OrderRow.id == order_id, OrderRow.version == expected_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                if db.get(OrderRow, order_id) is None:
                    raise NotFound(order_id)
                raise ConcurrentUpdate(order_id, expected_version)
            db.commit()
            row = db.get(OrderRow, order_id, populate_existing=True)
            return to_schema(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def stats_by_status(self, user_id: Optional[str] = None) -> List[StatusStats]:
        db: Session = self._session_factory()
        try:
            q = select(
                OrderRow.status,
                func.count().label("order_count"),
                func.coalesce(func.sum(OrderRow.total_amount), 0).label("amount"),
            )
            if user_id:
                q = q.where(OrderRow.user_id == user_id)
            rows = db.execute(q.group_by(OrderRow.status).order_by(OrderRow.status)).all()
            return [
                StatusStats(status=r.status, count=r.order_count, total_amount=Decimal(str(r.amount)).quantize(_CENTS))
                for r in rows
            ]
        finally:
            db.close()
