import threading, json
from typing import List, Optional
import structlog
from kafka import KafkaConsumer
from orderflow.domain.status import OrderStatus
from orderflow.errors import ConcurrentUpdate, InvalidTransition, NotFound
from orderflow.orchestrator import OrderOrchestrator

logger = structlog.get_logger(__name__)

_stop_event = threading.Event()
_thread: Optional[threading.Thread] = None

SHIPPING_TRANSITIONS = {
    "shipping.ready": OrderStatus.PROCESSING,
    "shipping.dispatched": OrderStatus.SHIPPED,
    "shipping.delivered": OrderStatus.DELIVERED,
}

def process_event(ev: dict, orders: OrderOrchestrator) -> bool:
    """Apply one shipping event. Returns True if an order status changed."""
    target = SHIPPING_TRANSITIONS.get(ev.get("type"))
    order_id = ev.get("order_id")
    if target is None or not order_id:
        return False
    try:
        orders.update_status(str(order_id), target)
    except (NotFound, InvalidTransition, ConcurrentUpdate) as exc:
        logger.warning("Skipping shipping event", type=ev.get("type"), order_id=order_id, error=str(exc))
        return False
    return True

def run_loop(orders: OrderOrchestrator, topic: str, bootstrap: List[str], group_id: str = "order-service"):
    consumer = KafkaConsumer(
        topic,
        bootstrap_servers=bootstrap,
        group_id=group_id,
        value_deserializer=lambda v: json.loads(v.decode("utf-8")),
        enable_auto_commit=True,
        auto_offset_reset="earliest",
        consumer_timeout_ms=1000,
    )
    try:
        while not _stop_event.is_set():
            for msg in consumer:
                if _stop_event.is_set(): break
                try:
                    process_event(msg.value, orders)
                except Exception:
                    logger.exception("Failed to handle shipping event", offset=msg.offset, partition=msg.partition)
    finally:
        consumer.close()

def start(orders: OrderOrchestrator, topic: str, bootstrap: List[str]):
    global _thread
    if _thread and _thread.is_alive(): return
    _stop_event.clear()
    _thread = threading.Thread(target=run_loop, args=(orders, topic, bootstrap), daemon=True)
    _thread.start()

def stop(timeout: Optional[float] = 10.0):
    _stop_event.set()
    if _thread is not None:
        _thread.join(timeout)
        if _thread.is_alive():
            logger.warning("Shipping consumer did not stop in time", timeout=timeout)
