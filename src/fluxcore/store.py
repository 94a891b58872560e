"""Stores hold one domain of application state as observable properties.

They subscribe to Action events through a Dispatcher and announce their own
mutations as local events on the next loop turn:

- ``change``: any property changed. The Store is the payload.
- ``change:<key>``: ``key`` changed. The key's current value is the payload.

Keys never contain the event delimiter, so ``change:*`` sees every key.

Example:
    store = (
        dispatcher.create_store()
        .define("state", "splash")
        .handle("navigate:succeeded", lambda self, scene: self.set("state", scene.result))
    )
    store.on("change:state", render)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Mapping
import json
import logging
import types
from typing import Any

from .events.bus import EventBus, validate_handler
from .exceptions import InvalidArgumentError, PreconditionFailedError
from .protocols import Dispatching
from .scheduling import call_next_turn, resolve_loop

LOGGER = logging.getLogger(__name__)

CHANGE_EVENT = "change"


class Store:
    """Named bag of observable properties.

    Values live in an explicit mapping; ``store[key]`` and ``key in store``
    are shorthands for ``get`` and ``has``. Reading an undefined key returns
    ``None``.
    """

    def __init__(
        self,
        properties: Mapping[str, Any] | None = None,
        dispatcher: Dispatching | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._db: dict[str, Any] = {}
        self._events = EventBus()
        self._handled: list[tuple[str, Callable[..., Any], types.MethodType]] = []
        self.dispatcher = dispatcher
        self.loop = loop

        if properties is not None:
            if not isinstance(properties, Mapping):
                raise InvalidArgumentError(
                    f"Store properties must be a mapping, got {type(properties).__name__}."
                )
            for key, value in properties.items():
                self.define(key, value)

    # -- properties -------------------------------------------------------

    def _validate_key(self, key: Any) -> str:
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError(f"Store keys must be non-empty strings: {key!r}")
        delimiter = self._events.syntax.delimiter
        if delimiter in key:
            # change:<key> must stay a single segment for change:* listeners.
            raise InvalidArgumentError(
                f"Store keys must not contain {delimiter!r}: {key!r}"
            )
        return key

    def define(self, key: str, value: Any = None) -> Store:
        """Register ``key`` with an initial ``value`` without any change event."""
        self._db[self._validate_key(key)] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._db.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._db

    def set(self, key: str, value: Any = None) -> Store:
        """Store ``value`` under ``key`` and notify listeners on the next loop turn."""
        self._validate_key(key)
        loop = resolve_loop(self.loop)
        self._db[key] = value
        call_next_turn(loop, self._notify, key)
        return self

    def update(self, key: str, mutator: Callable[[Any], Any]) -> Store:
        """Let ``mutator`` change the current value in place, then notify like ``set``.

        Whatever the mutator returns is ignored, so ``list.pop`` and friends
        are safe to use. Use ``replace`` for immutable values.
        """
        if not callable(mutator):
            raise InvalidArgumentError(f"Invalid mutator: {mutator!r}")
        self._validate_key(key)
        loop = resolve_loop(self.loop)
        current = self._db.get(key)
        mutator(current)
        self._db[key] = current
        call_next_turn(loop, self._notify, key)
        return self

    def replace(self, key: str, fn: Callable[[Any], Any]) -> Store:
        """Set ``key`` to ``fn(current_value)``."""
        if not callable(fn):
            raise InvalidArgumentError(f"Invalid replacement function: {fn!r}")
        self._validate_key(key)
        resolve_loop(self.loop)
        return self.set(key, fn(self._db.get(key)))

    def keys(self) -> list[str]:
        return list(self._db)

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._db

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._db))

    def __len__(self) -> int:
        return len(self._db)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._db!r})"

    # -- dispatcher handlers ----------------------------------------------

    def handle(self, event_name: str, fn: Callable[..., Any]) -> Store:
        """Register ``fn(store, payload)`` on the bound Dispatcher for ``event_name``."""
        if self.dispatcher is None:
            raise PreconditionFailedError("No Dispatcher is bound to this Store.")
        validate_handler(fn)
        bound = types.MethodType(fn, self)
        self.dispatcher.register(event_name, bound)
        self._handled.append((event_name, fn, bound))
        return self

    def unhandle(self, event_name: str, fn: Callable[..., Any]) -> Store:
        """Remove a handler previously installed with ``handle``."""
        if self.dispatcher is None:
            raise PreconditionFailedError("No Dispatcher is bound to this Store.")
        for index in range(len(self._handled) - 1, -1, -1):
            name, original, bound = self._handled[index]
            if name == event_name and original is fn:
                del self._handled[index]
                self.dispatcher.unregister(event_name, bound)
                break
        return self

    # -- local change events ----------------------------------------------

    def on(self, event_name: str, handler: Callable[[Any], Any]) -> Store:
        self._events.subscribe(event_name, handler)
        return self

    def once(self, event_name: str, handler: Callable[[Any], Any]) -> Store:
        self._events.subscribe(event_name, handler, once=True)
        return self

    def off(self, event_name: str, handler: Callable[[Any], Any]) -> Store:
        self._events.unsubscribe(event_name, handler)
        return self

    def _notify(self, key: str) -> None:
        self._events.publish(CHANGE_EVENT, self)
        self._events.publish(self._events.syntax.join(CHANGE_EVENT, key), self._db.get(key))

    # -- snapshots --------------------------------------------------------

    def to_object(self) -> dict[str, Any]:
        """Return a shallow copy of every defined key and its value."""
        return dict(self._db)

    def to_json(self) -> dict[str, Any]:
        return self.to_object()

    def export_json(self) -> str:
        return json.dumps(self.to_json(), ensure_ascii=False, separators=(",", ":"))

    def from_object(self, obj: Mapping[str, Any] | None) -> Store:
        """Restore keys from a snapshot. Each key is written through ``set``."""
        if obj is None:
            return self
        if not isinstance(obj, Mapping):
            raise InvalidArgumentError(
                f"from_object expects a mapping, got {type(obj).__name__}."
            )
        LOGGER.debug(
            "store.restore",
            extra={"event": "store.restore", "keys": len(obj)},
        )
        for key, value in obj.items():
            self.set(key, value)
        return self


def create_store(
    properties: Mapping[str, Any] | None = None,
    dispatcher: Dispatching | None = None,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Store:
    """Return a new Store, optionally bound to ``dispatcher``."""
    return Store(properties, dispatcher, loop=loop)
