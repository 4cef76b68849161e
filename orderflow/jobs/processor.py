"""Background fulfillment of orders.

``process-order`` runs validate -> check inventory -> reserve -> pay ->
confirm. Every retry starts again from the first step; nothing is resumed.
"""

from typing import Any, Callable, Dict

import structlog

from orderflow.domain.status import OrderStatus
from orderflow.errors import JobFailure, OrderError
from orderflow.interfaces import (
    InventoryClient,
    InvoiceClient,
    NotificationClient,
    PaymentClient,
    ProgressCallback,
)
from orderflow.jobs.queue import Job, JobQueue
from orderflow.orchestrator import PROCESS_ORDER_JOB, OrderOrchestrator

logger = structlog.get_logger(__name__)

SEND_NOTIFICATION_JOB = "send-notification"
GENERATE_INVOICE_JOB = "generate-invoice"

Handler = Callable[[Job, ProgressCallback], Any]


class FulfillmentProcessor:
    def __init__(
        self,
        orders: OrderOrchestrator,
        inventory: InventoryClient,
        payments: PaymentClient,
        notifications: NotificationClient,
        invoices: InvoiceClient,
        jobs: JobQueue,
    ):
        self._orders = orders
        self._inventory = inventory
        self._payments = payments
        self._notifications = notifications
        self._invoices = invoices
        self._jobs = jobs

    def handlers(self) -> Dict[str, Handler]:
        return {
            PROCESS_ORDER_JOB: self.handle_order_processing,
            SEND_NOTIFICATION_JOB: self.handle_notification,
            GENERATE_INVOICE_JOB: self.handle_invoice_generation,
        }

    def handle_order_processing(self, job: Job, progress: ProgressCallback) -> Dict[str, Any]:
        order_id = job.data["orderId"]
        user_id = job.data.get("userId")
        logger.info("Processing order job", job_id=job.id, order_id=order_id, attempt=job.attempts_made + 1)

        try:
            progress(20)
            self.validate_order(order_id)
            logger.info("Order validated", order_id=order_id)

            progress(40)
            if not self.check_inventory(order_id):
                raise JobFailure("Insufficient inventory")

            progress(60)
            self.reserve_inventory(order_id)
            logger.info("Inventory reserved", order_id=order_id)

            progress(80)
            payment_id = self.initiate_payment(order_id)

            progress(100)
            self._orders.update_status(order_id, OrderStatus.CONFIRMED)
        except Exception as exc:
            logger.error("Failed to process order", order_id=order_id, error=str(exc))
            self._cancel_after_failure(order_id, str(exc) or exc.__class__.__name__)
            raise

        logger.info("Order processed successfully", order_id=order_id)
        self._enqueue_followups(order_id, user_id)
        return {"success": True, "orderId": order_id, "paymentId": payment_id,
                "message": "Order processed successfully"}

    def _cancel_after_failure(self, order_id: str, reason: str) -> None:
        try:
            self._orders.update_status(order_id, OrderStatus.CANCELLED, cancel_reason=reason)
        except OrderError as exc:
            # e.g. already cancelled by an earlier attempt; the job error still propagates
            logger.warning("Could not cancel order after failure", order_id=order_id, error=str(exc))

    def _enqueue_followups(self, order_id: str, user_id: str) -> None:
        try:
            self._jobs.enqueue(
                SEND_NOTIFICATION_JOB,
                {"orderId": order_id, "type": "ORDER_CONFIRMED", "userId": user_id},
                job_id=f"{SEND_NOTIFICATION_JOB}:{order_id}:{OrderStatus.CONFIRMED.value}",
            )
            self._jobs.enqueue(
                GENERATE_INVOICE_JOB,
                {"orderId": order_id},
                job_id=f"{GENERATE_INVOICE_JOB}:{order_id}",
            )
        except Exception as exc:
            logger.error("Failed to enqueue follow-up jobs", order_id=order_id, error=str(exc))

    def handle_notification(self, job: Job, progress: ProgressCallback) -> Dict[str, Any]:
        order_id, notification_type, user_id = job.data["orderId"], job.data["type"], job.data["userId"]
        logger.info("Sending notification", order_id=order_id, type=notification_type)
        self._notifications.send_email(user_id, notification_type, order_id)
        progress(50)
        self._notifications.send_sms(user_id, notification_type, order_id)
        progress(100)
        return {"success": True}

    def handle_invoice_generation(self, job: Job, progress: ProgressCallback) -> Dict[str, Any]:
        order_id = job.data["orderId"]
        logger.info("Generating invoice", order_id=order_id)
        order = self._orders.find_one(order_id)
        url = self._invoices.generate(order)
        progress(100)
        logger.info("Invoice generated", order_id=order_id, url=url)
        return {"success": True, "invoiceUrl": url}

    # Pipeline steps

    def validate_order(self, order_id: str) -> None:
        order = self._orders.find_one(order_id)
        if not order.items:
            raise JobFailure("Order has no items")

    def check_inventory(self, order_id: str) -> bool:
        order = self._orders.find_one(order_id)
        return self._inventory.check_availability(order_id, order.items)

    def reserve_inventory(self, order_id: str) -> None:
        order = self._orders.find_one(order_id)
        self._inventory.reserve(order_id, order.items)

    def initiate_payment(self, order_id: str) -> str:
        order = self._orders.find_one(order_id)
        return self._payments.initiate(order_id, order.total_amount)
