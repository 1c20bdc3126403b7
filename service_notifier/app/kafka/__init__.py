"""
Kafka integration for the notifier service.
"""

from .consumer import EventBusConsumer, KafkaMessage

__all__ = ["EventBusConsumer", "KafkaMessage"]
