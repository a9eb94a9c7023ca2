"""Unit tests for the OrderEventProducer class."""

import json
from unittest.mock import MagicMock, patch

import pytest

from shop_service.producer import ORDER_PLACED_TOPIC, ORDER_STATUS_TOPIC, OrderEventProducer
from shop_service.schemas import Order, OrderStatus


@pytest.fixture
def test_order():
    """A placed order with one line item."""
    return Order.model_validate(
        {
            "_id": "65f1c0ffee0000000000abcd",
            "user": "user-1",
            "shippingInfo": {"address": "1 Main St", "city": "Springfield", "country": "US", "pinCode": "1", "phoneNo": "2"},
            "orderItems": [{"product": "p-1", "quantity": 1}],
            "itemsPrice": 10,
            "taxPrice": 1,
            "shippingCharges": 0,
            "totalAmount": 11,
        }
    )


@pytest.fixture
def test_producer():
    """Producer with the Kafka client replaced by a mock."""
    with patch("shop_service.producer.Producer") as mock_producer_class:
        mock_producer_class.return_value = MagicMock()
        yield OrderEventProducer("localhost:9092")


def test_producer_initialization():
    """The Kafka producer is created with keyed, consistent partitioning."""
    mock_producer_instance = MagicMock()
    mock_producer_class = MagicMock(return_value=mock_producer_instance)

    with patch("shop_service.producer.Producer", new=mock_producer_class):
        producer = OrderEventProducer("dump:9092")

        mock_producer_class.assert_called_once_with(
            {"bootstrap.servers": "dump:9092", "message.timeout.ms": 5000, "partitioner": "consistent_random"}
        )
        assert producer.producer == mock_producer_instance


def test_publish_order_placed(test_producer, test_order):
    test_producer.publish_order_placed(test_order)

    test_producer.producer.produce.assert_called_once_with(
        topic=ORDER_PLACED_TOPIC,
        key=b"65f1c0ffee0000000000abcd",
        value=test_order.model_dump_json(by_alias=True),
        on_delivery=test_producer._delivery_callback,
    )
    test_producer.producer.poll.assert_called_once_with(0)


def test_publish_status_changed(test_producer, test_order):
    shipped = test_order.model_copy(update={"order_status": OrderStatus.SHIPPED})

    test_producer.publish_status_changed(shipped)

    kwargs = test_producer.producer.produce.call_args.kwargs
    assert kwargs["topic"] == ORDER_STATUS_TOPIC
    assert json.loads(kwargs["value"]) == {
        "orderId": "65f1c0ffee0000000000abcd",
        "user": "user-1",
        "orderStatus": "Shipped",
        "deliveredAt": None,
    }


def test_publish_buffer_full_flushes_and_raises(test_producer, test_order):
    test_producer.producer.produce.side_effect = BufferError("queue full")

    with pytest.raises(BufferError):
        test_producer.publish_order_placed(test_order)
    test_producer.producer.flush.assert_called_once()


@patch("shop_service.producer.AdminClient")
def test_check_connection(mock_admin_client, test_producer):
    mock_admin_client.return_value.list_topics.return_value = {"topics": ["orders.placed"]}
    assert test_producer.check_connection() is True

    mock_admin_client.return_value.list_topics.side_effect = Exception("broker down")
    assert test_producer.check_connection() is False
