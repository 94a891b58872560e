"""Central broker routing Action lifecycle events to Store handlers.

When an Action should result in changes to application state, it dispatches
events through the Dispatcher. Stores register handlers for those events and
perform the state updates themselves. Action and Store factories live on the
Dispatcher for convenience.

One Dispatcher per application is the common setup, but nothing prevents
several domain-specific Dispatchers from coexisting.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
import inspect
import logging
from typing import Any

from pydantic import ValidationError

from .action import Action, make_action
from .config import ActionConfig, BusConfig, Config, DispatcherConfig
from .events.bus import EventBus, validate_handler
from .events.patterns import PatternSyntax, validate_name
from .exceptions import ConfigValidationError, InvalidArgumentError
from .protocols import DispatchRecorder, Handler, LoggingRecorder, NullRecorder
from .store import Store

LOGGER = logging.getLogger(__name__)


def accepts_single_argument(handler: Callable[..., Any]) -> bool:
    """Return True when ``handler`` can be called with one positional argument."""
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        # Some builtins expose no signature; give them the benefit of the doubt.
        return True
    try:
        signature.bind(None)
    except TypeError:
        return False
    return True


class Dispatcher:
    """Synchronous publish/subscribe broker for named events."""

    def __init__(
        self,
        recorder: DispatchRecorder | None = None,
        *,
        config: DispatcherConfig | None = None,
        action_config: ActionConfig | None = None,
        bus_config: BusConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.config = config or DispatcherConfig()
        self.action_config = action_config or ActionConfig()
        self.bus_config = bus_config or BusConfig()
        self.recorder: DispatchRecorder = recorder or NullRecorder()
        self.loop = loop
        self._bus = EventBus(
            PatternSyntax(
                delimiter=self.bus_config.delimiter,
                wildcard=self.bus_config.wildcard,
                globstar=self.bus_config.globstar,
            ),
            isolate_errors=self.config.isolate_handler_errors,
        )

    @property
    def bus(self) -> EventBus:
        return self._bus

    def _validate(self, name: Any, handler: Any) -> None:
        validate_name(name)
        validate_handler(handler)
        if self.config.strict_handler_signatures and not accepts_single_argument(
            handler
        ):
            raise InvalidArgumentError(
                f"Handler {handler!r} must accept exactly one payload argument."
            )

    def register(self, name: str, handler: Handler) -> Dispatcher:
        """Call ``handler`` for every event matching ``name``. Returns self."""
        self._validate(name, handler)
        self._bus.subscribe(name, handler)
        return self

    def unregister(self, name: str, handler: Handler) -> Dispatcher:
        """Stop calling a previously registered ``handler``. Returns self."""
        self._validate(name, handler)
        self._bus.unsubscribe(name, handler)
        return self

    def dispatch(self, name: str, payload: Any = None) -> Dispatcher:
        """Deliver ``payload`` to every handler matching ``name``. Returns self.

        Handlers run to completion in registration order before this returns.
        A handler exception propagates here and skips the remaining handlers,
        unless ``isolate_handler_errors`` is configured.
        """
        validate_name(name)
        self.recorder.record(name, payload)
        self._bus.publish(name, payload)
        return self

    def listeners(self, name: str) -> list[Handler]:
        return self._bus.listeners(name)

    def on(self, name: str) -> Callable[[Handler], Handler]:
        """Decorator form of ``register``.

        Example:
            @dispatcher.on("session:*")
            def log_session(scene):
                ...
        """

        def decorator(handler: Handler) -> Handler:
            self.register(name, handler)
            return handler

        return decorator

    def create_action(self, name: str, fn: Callable[..., Any]) -> Action:
        """Return a new Action bound to this Dispatcher."""
        return make_action(self, name, fn, config=self.action_config, loop=self.loop)

    def action(self, name: str) -> Callable[[Callable[..., Any]], Action]:
        """Decorator form of ``create_action``."""

        def decorator(fn: Callable[..., Any]) -> Action:
            return self.create_action(name, fn)

        return decorator

    def create_store(self, properties: Mapping[str, Any] | None = None) -> Store:
        """Return a new Store bound to this Dispatcher."""
        return Store(properties, self, loop=self.loop)


def create_dispatcher(
    config: Mapping[str, Any] | None = None,
    recorder: DispatchRecorder | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Dispatcher:
    """Build a Dispatcher from config data as returned by ``load_config``."""
    try:
        settings = Config.model_validate(dict(config or {}))
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid dispatcher configuration: {exc}") from exc
    if recorder is None and settings.dispatcher.log_dispatches:
        recorder = LoggingRecorder()
    LOGGER.debug(
        "dispatcher.created",
        extra={
            "event": "dispatcher.created",
            "delimiter": settings.bus.delimiter,
            "isolate_handler_errors": settings.dispatcher.isolate_handler_errors,
        },
    )
    return Dispatcher(
        recorder,
        config=settings.dispatcher,
        action_config=settings.action,
        bus_config=settings.bus,
        loop=loop,
    )
