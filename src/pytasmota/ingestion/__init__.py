"""Ingestion layer.

Pure decoders that turn inbound ``(topic, payload)`` pairs from the broker
into normalized updates for the state layer.
"""

__all__: list[str] = []
