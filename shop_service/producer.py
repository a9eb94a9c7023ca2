"""Kafka producer for publishing order events."""

import json

from confluent_kafka import Producer
from confluent_kafka.admin import AdminClient

from .logger import logger
from .schemas import Order

ORDER_PLACED_TOPIC = "orders.placed"
ORDER_STATUS_TOPIC = "orders.status_changed"


class OrderEventProducer:
    """Kafka producer for order lifecycle events.

    Events are keyed by order id so every event of one order lands on the same
    partition and is consumed in order.

    Attributes:
        _producer: The underlying Kafka producer instance.
    """

    def __init__(self, bootstrap_servers: str):
        """Initialize the Kafka producer with the given bootstrap servers.

        Args:
            bootstrap_servers (str): Comma-separated list of Kafka broker addresses.
        """
        self._bootstrap_servers = bootstrap_servers
        self._producer = Producer(
            {
                "bootstrap.servers": bootstrap_servers,
                "message.timeout.ms": 5000,
                "partitioner": "consistent_random",
            }
        )

    @property
    def producer(self):
        return self._producer

    def _delivery_callback(self, err, msg):
        if err:
            logger.error(f"Message failed delivery to {msg.topic()} (key={msg.key()}): {err}")
        else:
            logger.debug(f"Message delivered to {msg.topic()} [p:{msg.partition()}]")

    def _publish(self, topic: str, key: str, value: str) -> None:
        try:
            self._producer.produce(
                topic=topic,
                key=key.encode("utf-8"),
                value=value,
                on_delivery=self._delivery_callback,
            )
            self._producer.poll(0)  # Trigger delivery callbacks
        except BufferError:
            logger.warning("Producer buffer full, flushing...")
            self._producer.flush()
            raise

    def publish_order_placed(self, order: Order) -> None:
        """Publish a newly placed order.

        Raises:
            BufferError: If the producer's internal buffer is full.
        """
        self._publish(ORDER_PLACED_TOPIC, order.id, order.model_dump_json(by_alias=True))

    def publish_status_changed(self, order: Order) -> None:
        """Publish the new status of an order.

        Raises:
            BufferError: If the producer's internal buffer is full.
        """
        payload = {
            "orderId": order.id,
            "user": order.user,
            "orderStatus": order.order_status.value,
            "deliveredAt": order.delivered_at.isoformat() if order.delivered_at else None,
        }
        self._publish(ORDER_STATUS_TOPIC, order.id, json.dumps(payload))

    def check_connection(self) -> bool:
        """Check whether the Kafka cluster answers a metadata request."""
        try:
            admin = AdminClient({"bootstrap.servers": self._bootstrap_servers})
            return bool(admin.list_topics(timeout=5))
        except Exception as e:
            logger.error(f"Kafka connection failed: {e}")
            return False

    def flush(self, timeout: float = 5.0) -> None:
        self._producer.flush(timeout)
