"""Per-connection subscription bookkeeping for device topics."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pytasmota._constants import command_topic, device_topics

SubscribeFn = Callable[[Iterable[str], Callable[[bool], None]], bool]
PublishFn = Callable[[str, str], bool]


class SubscriptionRegistry:
    """Tracks which device topics are subscribed on the current connection.

    A device topic is either *pending* (batched subscribe sent, no SUBACK
    yet) or *subscribed*. Either state makes :meth:`subscribe` a no-op, so
    repeated calls cause at most one batched subscribe per connection.
    Subscriptions do not survive a reconnect: the client calls
    :meth:`clear` and collaborators re-issue :meth:`subscribe`.
    """

    def __init__(
        self,
        *,
        subscribe: SubscribeFn,
        publish: PublishFn,
        is_connected: Callable[[], bool],
        logger: logging.Logger | None = None,
    ) -> None:
        self._subscribe = subscribe
        self._publish = publish
        self._is_connected = is_connected
        self._logger = logger or logging.getLogger(__name__)
        self._subscribed: set[str] = set()
        self._pending: set[str] = set()
        # Bumped by clear() so acks from an earlier connection are ignored.
        self._generation = 0

    @property
    def subscribed(self) -> frozenset[str]:
        return frozenset(self._subscribed)

    def is_subscribed(self, device_topic: str) -> bool:
        return device_topic in self._subscribed

    def is_pending(self, device_topic: str) -> bool:
        return device_topic in self._pending

    def subscribe(self, device_topic: str) -> bool:
        """Subscribe the fixed suffix set for *device_topic*.

        Returns True only when a batched subscribe was handed to the
        transport by this call.
        """
        if not self._is_connected():
            self._logger.debug("Not subscribing topic=%s: not connected", device_topic)
            return False
        if device_topic in self._subscribed or device_topic in self._pending:
            return False

        generation = self._generation

        def on_ack(granted: bool) -> None:
            self._on_ack(device_topic, generation, granted)

        if not self._subscribe(device_topics(device_topic), on_ack):
            self._logger.debug("Subscribe for topic=%s was not sent", device_topic)
            return False
        self._pending.add(device_topic)
        return True

    def _on_ack(self, device_topic: str, generation: int, granted: bool) -> None:
        if generation != self._generation:
            return
        self._pending.discard(device_topic)
        if not granted:
            self._logger.warning("Broker rejected subscription for device topic=%s", device_topic)
            return
        self._subscribed.add(device_topic)
        self._logger.debug("Subscribed device topic=%s, probing power state", device_topic)
        # An empty POWER command makes the device answer with its relay state.
        self._publish(command_topic(device_topic, "POWER"), "")

    def clear(self) -> None:
        self._subscribed.clear()
        self._pending.clear()
        self._generation += 1
