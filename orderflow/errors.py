"""Errors raised by the order lifecycle core.

``NotFound``, ``InvalidTransition`` and ``ValidationError`` surface to the
caller of the orchestrator. ``PublishFailure`` wraps broker errors.
``JobFailure`` marks a failed fulfillment step and is what the job queue
sees when it decides whether to retry.
"""


class OrderError(Exception):
    """Base class for every error the order core raises on purpose."""


class NotFound(OrderError):
    def __init__(self, order_id: str):
        super().__init__(f"Order with ID {order_id} not found")
        self.order_id = order_id


class InvalidTransition(OrderError):
    def __init__(self, current, requested):
        super().__init__(f"Invalid status transition from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class ValidationError(OrderError):
    pass


class ConcurrentUpdate(OrderError):
    def __init__(self, order_id: str, expected_version: int):
        super().__init__(f"Order {order_id} was modified concurrently (expected version {expected_version})")
        self.order_id = order_id
        self.expected_version = expected_version


class PublishFailure(OrderError):
    def __init__(self, transport: str, destination: str, reason: str):
        super().__init__(f"Failed to publish to {transport} '{destination}': {reason}")
        self.transport = transport
        self.destination = destination


class JobFailure(OrderError):
    pass
