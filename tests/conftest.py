from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool

from orderflow.cache.memory import MemoryCache
from orderflow.db.session import Base, make_session_factory
from orderflow.db.store import SqlOrderStore
from orderflow.jobs.memory import MemoryJobQueue
from orderflow.jobs.queue import Backoff, JobOptions
from orderflow.orchestrator import OrderOrchestrator
from orderflow.publisher import EventPublisher
import orderflow.db.models  # noqa


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


class RecordingBroker:
    """Stands in for either broker; records emits and can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def emit(self, destination, *args):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((destination, *args))
        return len(self.sent)

    def destinations(self):
        return [s[0] for s in self.sent]


class CountingStore:
    """Proxy that counts calls per store method."""

    def __init__(self, inner):
        self._inner = inner
        self.calls = {}
        self.fail_create = None

    def __getattr__(self, name):
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        def wrapper(*args, **kwargs):
            self.calls[name] = self.calls.get(name, 0) + 1
            if name == "create" and self.fail_create is not None:
                raise self.fail_create
            return attr(*args, **kwargs)

        return wrapper


class PlainCache:
    """Cache without prefix scanning."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ttl_seconds):
        self.data[key] = value

    def delete(self, *keys):
        for k in keys:
            self.data.pop(k, None)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def session_factory():
    factory = make_session_factory(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    engine = factory.kw["bind"]
    Base.metadata.create_all(engine)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlOrderStore(session_factory)


@pytest.fixture
def store(sql_store):
    return CountingStore(sql_store)


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def topics():
    return RecordingBroker()


@pytest.fixture
def queues():
    return RecordingBroker()


@pytest.fixture
def publisher(topics, queues):
    return EventPublisher(topics, queues)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def jobs(clock):
    options = JobOptions(attempts=3, backoff=Backoff(type="exponential", delay=2.0))
    return MemoryJobQueue("order-processing", options, clock=clock)


@pytest.fixture
def orchestrator(store, cache, publisher, jobs):
    return OrderOrchestrator(store=store, cache=cache, publisher=publisher, jobs=jobs, cache_ttl=300)


@pytest.fixture
def address():
    return {
        "street": "123 Main St",
        "city": "New York",
        "state": "NY",
        "zip_code": "10001",
        "country": "USA",
    }


@pytest.fixture
def laptop():
    return {"product_id": "prod-1", "product_name": "Laptop", "quantity": 1, "unit_price": 999.99}


@pytest.fixture
def make_order(orchestrator, address, laptop):
    def _make(user_id="user-123", items=None):
        return orchestrator.create_order(user_id, items or [laptop], address)
    return _make


@pytest.fixture
def plain_cache():
    return PlainCache()
