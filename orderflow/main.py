import signal
import threading

import structlog

from orderflow.bootstrap import build_container
from orderflow.core.config import settings
from orderflow.core.logging import configure_logging
from orderflow.kafka import consumer as shipping_consumer
from orderflow.version import VERSION

logger = structlog.get_logger(__name__)


def main() -> None:
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info("Starting order service worker", version=VERSION, queue=settings.ORDER_QUEUE)

    container = build_container(settings)
    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    shipping_consumer.start(container.orchestrator, settings.TOPIC_SHIPPING_EVENTS, [settings.KAFKA_BOOTSTRAP])
    container.worker.start()
    try:
        stop.wait()
    finally:
        logger.info("Shutting down")
        shipping_consumer.stop()
        container.worker.stop(join=True, timeout=30)
        container.topics.close()


if __name__ == "__main__":
    main()
