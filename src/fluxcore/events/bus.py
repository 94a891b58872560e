"""Synchronous event bus with hierarchical names and wildcard subscriptions.

Usage:
    bus = EventBus()

    def on_saved(payload):
        print(f"Saved: {payload['id']}")

    bus.subscribe("document:*", on_saved)
    bus.publish("document:saved", {"id": 7})
"""

from __future__ import annotations

from collections.abc import Callable
import itertools
import logging
from typing import Any

from ..exceptions import InvalidArgumentError
from .patterns import PatternSyntax, SegmentTrie, Subscription, validate_name

LOGGER = logging.getLogger(__name__)


def validate_handler(handler: Any) -> Callable[[Any], Any]:
    if not callable(handler):
        raise InvalidArgumentError(f"Missing handler: {handler!r}")
    return handler


class EventBus:
    """Publish/subscribe primitive keyed by segmented event names.

    Handlers run synchronously in the order they were subscribed, across
    every pattern that matches the published name. Exceptions raised by a
    handler propagate to the publisher unless ``isolate_errors`` is set, in
    which case they are logged and delivery continues.
    """

    def __init__(
        self,
        syntax: PatternSyntax | None = None,
        *,
        isolate_errors: bool = False,
    ) -> None:
        self.syntax = syntax or PatternSyntax()
        self.isolate_errors = isolate_errors
        self._trie = SegmentTrie(self.syntax)
        self._sequence = itertools.count()

    def subscribe(
        self, pattern: str, handler: Callable[[Any], Any], *, once: bool = False
    ) -> Subscription:
        """Subscribe ``handler`` to every event matching ``pattern``.

        Args:
            pattern: Event name, optionally with ``*`` / ``**`` segments
            handler: Callable receiving the published payload
            once: Drop the subscription before its first delivery
        """
        validate_name(pattern)
        validate_handler(handler)
        subscription = Subscription(
            pattern=pattern,
            handler=handler,
            sequence=next(self._sequence),
            once=once,
        )
        self._trie.insert(subscription)
        LOGGER.debug("Subscribed to event pattern: %s", pattern)
        return subscription

    def unsubscribe(self, pattern: str, handler: Callable[[Any], Any]) -> bool:
        """Remove one subscription of ``handler`` on ``pattern``.

        Returns True when a subscription was removed. Unknown pairs are a no-op.
        """
        validate_name(pattern)
        validate_handler(handler)
        removed = self._trie.remove(pattern, handler)
        if removed is not None:
            LOGGER.debug("Unsubscribed from event pattern: %s", pattern)
        return removed is not None

    def publish(self, name: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every matching handler and return how many ran."""
        validate_name(name)
        subscriptions = self._trie.match(name)
        if not subscriptions:
            LOGGER.debug("No subscribers for event: %s", name)
            return 0

        delivered = 0
        for subscription in subscriptions:
            if not subscription.active:
                continue
            if subscription.once:
                self._trie.discard(subscription)
            delivered += 1
            if not self.isolate_errors:
                subscription.handler(payload)
                continue
            try:
                subscription.handler(payload)
            except Exception:
                LOGGER.error(
                    "bus.handler_failed %s",
                    name,
                    exc_info=True,
                    extra={"event": "bus.handler_failed", "event_name": name},
                )
        return delivered

    def listeners(self, name: str) -> list[Callable[[Any], Any]]:
        """Return handlers that would receive ``name``, in delivery order."""
        return [subscription.handler for subscription in self._trie.match(name)]

    def handler_count(self, pattern: str | None = None) -> int:
        """Count subscriptions on exactly ``pattern``, or all of them."""
        if pattern is None:
            return sum(1 for _ in self._trie)
        validate_name(pattern)
        return sum(1 for s in self._trie if s.pattern == pattern)

    def patterns(self) -> list[str]:
        """Return subscribed patterns, oldest subscription first."""
        ordered = sorted(self._trie, key=lambda s: s.sequence)
        return list(dict.fromkeys(s.pattern for s in ordered))

    def clear(self, pattern: str | None = None) -> None:
        """Clear subscribers.

        Args:
            pattern: Specific pattern to clear, or None for all
        """
        if pattern is None:
            self._trie.clear()
        else:
            validate_name(pattern)
            self._trie.remove_pattern(pattern)
