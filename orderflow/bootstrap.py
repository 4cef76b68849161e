"""Explicit wiring of the order service from settings.

Nothing here is discovered or registered implicitly: each collaborator is
built and passed to the constructor that needs it.
"""

from dataclasses import dataclass
from typing import Optional

from redis import Redis

from orderflow.broker.redis_queue import RedisQueueBroker
from orderflow.cache.memory import MemoryCache
from orderflow.cache.redis_cache import RedisCache, get_client
from orderflow.clients.inventory import HttpInventoryClient
from orderflow.clients.invoice import HttpInvoiceClient
from orderflow.clients.notification import HttpNotificationClient
from orderflow.clients.payment import HttpPaymentClient
from orderflow.core.config import Settings
from orderflow.db.session import Base, make_session_factory
from orderflow.db.store import SqlOrderStore
from orderflow.interfaces import Cache
from orderflow.jobs.memory import MemoryJobQueue
from orderflow.jobs.processor import FulfillmentProcessor
from orderflow.jobs.queue import Backoff, JobOptions, JobQueue
from orderflow.jobs.redis_queue import RedisJobQueue
from orderflow.jobs.worker import FulfillmentWorker
from orderflow.kafka.producer import KafkaEventBroker, make_producer
from orderflow.orchestrator import OrderOrchestrator
from orderflow.publisher import EventPublisher


@dataclass
class Container:
    orchestrator: OrderOrchestrator
    processor: FulfillmentProcessor
    worker: FulfillmentWorker
    jobs: JobQueue
    topics: KafkaEventBroker


def default_job_options(settings: Settings) -> JobOptions:
    return JobOptions(
        attempts=settings.JOB_ATTEMPTS,
        backoff=Backoff(type="exponential", delay=settings.JOB_BACKOFF_SECONDS),
        remove_on_complete=True,
        remove_on_fail=False,
    )


def build_cache(settings: Settings, redis: Optional[Redis]) -> Cache:
    if settings.CACHE_BACKEND == "memory":
        return MemoryCache()
    if settings.CACHE_BACKEND == "redis":
        return RedisCache(redis)
    raise ValueError(f"Unknown CACHE_BACKEND '{settings.CACHE_BACKEND}'")


def build_job_queue(settings: Settings, redis: Optional[Redis]) -> JobQueue:
    options = default_job_options(settings)
    if settings.JOB_QUEUE_BACKEND == "memory":
        return MemoryJobQueue(settings.ORDER_QUEUE, options)
    if settings.JOB_QUEUE_BACKEND == "redis":
        return RedisJobQueue(redis, settings.ORDER_QUEUE, options, lease_seconds=settings.JOB_LEASE_SECONDS)
    raise ValueError(f"Unknown JOB_QUEUE_BACKEND '{settings.JOB_QUEUE_BACKEND}'")


def build_container(settings: Settings) -> Container:
    session_factory = make_session_factory(settings.POSTGRES_DSN)
    if settings.AUTO_CREATE_SCHEMA:
        import orderflow.db.models  # noqa
        Base.metadata.create_all(session_factory.kw["bind"])

    redis = get_client(settings.REDIS_URL)
    topics = KafkaEventBroker(make_producer([settings.KAFKA_BOOTSTRAP], settings.KAFKA_CLIENT_ID))
    publisher = EventPublisher(topics, RedisQueueBroker(redis, settings.BROKER_B_PREFIX))
    jobs = build_job_queue(settings, redis)

    orchestrator = OrderOrchestrator(
        store=SqlOrderStore(session_factory),
        cache=build_cache(settings, redis),
        publisher=publisher,
        jobs=jobs,
        cache_ttl=settings.CACHE_TTL_SECONDS,
    )
    key = settings.SVC_INTERNAL_KEY
    processor = FulfillmentProcessor(
        orders=orchestrator,
        inventory=HttpInventoryClient(settings.CATALOG_BASE, settings.INVENTORY_TIMEOUT,
                                      settings.INVENTORY_RETRIES, internal_key=key),
        payments=HttpPaymentClient(settings.PAYMENT_BASE, settings.PAYMENT_TIMEOUT,
                                   settings.PAYMENT_RETRIES, internal_key=key),
        notifications=HttpNotificationClient(settings.NOTIFICATIONS_BASE, settings.NOTIFICATIONS_TIMEOUT,
                                             settings.NOTIFICATIONS_RETRIES, internal_key=key),
        invoices=HttpInvoiceClient(settings.INVOICE_BASE, settings.INVOICE_TIMEOUT,
                                   settings.INVOICE_RETRIES, internal_key=key),
        jobs=jobs,
    )
    worker = FulfillmentWorker(jobs, processor.handlers(),
                               concurrency=settings.WORKER_CONCURRENCY,
                               poll_timeout=settings.WORKER_POLL_SECONDS)
    return Container(orchestrator=orchestrator, processor=processor, worker=worker, jobs=jobs, topics=topics)
