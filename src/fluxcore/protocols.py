"""Capability interfaces shared by the dispatcher, actions and stores."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any, Protocol, runtime_checkable

Handler = Callable[[Any], Any]


@runtime_checkable
class Dispatching(Protocol):
    """Anything that can register handlers and dispatch events to them.

    Actions and Stores depend on this capability set only, so a test double
    with these three methods stands in for a real Dispatcher.
    """

    def register(self, name: str, handler: Handler) -> Any: ...

    def unregister(self, name: str, handler: Handler) -> Any: ...

    def dispatch(self, name: str, payload: Any = None) -> Any: ...


@runtime_checkable
class DispatchRecorder(Protocol):
    """Logging hook invoked once per dispatch, before any handler runs."""

    def record(self, name: str, payload: Any) -> None: ...


class NullRecorder:
    """Recorder that discards every dispatch."""

    def record(self, name: str, payload: Any) -> None:
        return None


class LoggingRecorder:
    """Recorder that writes each dispatch to a stdlib logger."""

    def __init__(
        self, logger: logging.Logger | None = None, level: int = logging.DEBUG
    ) -> None:
        self.logger = logger or logging.getLogger("fluxcore.dispatcher")
        self.level = level

    def record(self, name: str, payload: Any) -> None:
        self.logger.log(
            self.level,
            "dispatcher.dispatch %s",
            name,
            extra={
                "event": "dispatcher.dispatch",
                "event_name": name,
                "payload_type": type(payload).__name__,
            },
        )
