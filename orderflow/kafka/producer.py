import json
from typing import Any, Dict, List
from kafka import KafkaProducer

def make_producer(bootstrap: List[str], client_id: str) -> KafkaProducer:
    return KafkaProducer(
        bootstrap_servers=bootstrap,
        client_id=client_id,
        value_serializer=lambda v: json.dumps(v).encode("utf-8"),
        key_serializer=lambda v: (v.encode("utf-8") if isinstance(v, str) else v),
        linger_ms=5,
        retries=3,
    )

class KafkaEventBroker:
    """Broker A: keyed topic emits. Partitioning follows the record key."""

    def __init__(self, producer: KafkaProducer, flush_timeout: float = 5.0):
        self._producer = producer
        self._flush_timeout = flush_timeout

    def emit(self, topic: str, key: str, payload: Dict[str, Any]) -> None:
        self._producer.send(topic, key=key, value=payload)
        self._producer.flush(self._flush_timeout)

    def close(self) -> None:
        self._producer.close(self._flush_timeout)
