"""Actions perform the "work" behind a user interaction.

Any asynchronous logic (server calls, disk access) belongs inside an Action,
and the Action announces its progress as events on a Dispatcher so Stores can
update state. An Action wraps a plain function ``fn(params)`` and dispatches:

- ``<name>:pending`` synchronously, before ``fn`` runs.
- ``<name>:succeeded`` once ``fn`` returns or its awaitable resolves.
- ``<name>:failed`` once ``fn`` raises or its awaitable raises.

Every event carries the same ``Scene``. The suffixes come from
``ActionConfig``; an empty succeeded suffix announces completion under the
bare action name.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import copy
from dataclasses import dataclass
from enum import Enum
import functools
import inspect
import logging
from typing import Any

from .config import ActionConfig
from .events.patterns import validate_name
from .exceptions import InvalidArgumentError
from .protocols import Dispatching
from .scheduling import resolve_loop

LOGGER = logging.getLogger(__name__)

_UNBOUND = object()


class ActionStatus(str, Enum):
    """Lifecycle of a single Action invocation."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Scene:
    """Transient description of one Action invocation."""

    name: str
    params: Any = None
    result: Any = None
    error: BaseException | None = None
    status: ActionStatus = ActionStatus.PENDING

    @property
    def message(self) -> str | None:
        """Text of ``error``, or None when the invocation has not failed."""
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__

    @property
    def settled(self) -> bool:
        return self.status is not ActionStatus.PENDING

    @property
    def succeeded(self) -> bool:
        return self.status is ActionStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status is ActionStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "params": self.params,
            "result": self.result,
            "error": self.message,
            "status": self.status.value,
        }


class Action:
    """Callable wrapper announcing the lifecycle of ``fn`` on a Dispatcher.

    Calling the Action returns an ``asyncio.Future`` with the same outcome as
    ``fn``. Exceptions from ``fn`` never reach the caller directly; they fail
    the future and are dispatched as ``<name>:failed``.

    Used as a class attribute, an Action binds like a method and calls
    ``fn(instance, params)``.
    """

    def __init__(
        self,
        dispatcher: Dispatching,
        name: str,
        fn: Callable[..., Any],
        *,
        config: ActionConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if dispatcher is None or not callable(getattr(dispatcher, "dispatch", None)):
            raise InvalidArgumentError(f"Invalid Dispatcher: {dispatcher!r}")
        validate_name(name)
        if not callable(fn):
            raise InvalidArgumentError(f"Invalid Action: {fn!r}")

        functools.update_wrapper(self, fn)
        self.dispatcher = dispatcher
        self.name = name
        self.fn = fn
        self.config = config or ActionConfig()
        self.loop = loop
        self._receiver: Any = _UNBOUND

    @property
    def pending_event(self) -> str:
        return f"{self.name}:{self.config.pending_suffix}"

    @property
    def succeeded_event(self) -> str:
        if not self.config.succeeded_suffix:
            return self.name
        return f"{self.name}:{self.config.succeeded_suffix}"

    @property
    def failed_event(self) -> str:
        return f"{self.name}:{self.config.failed_suffix}"

    def __get__(self, instance: Any, owner: type | None = None) -> Action:
        if instance is None:
            return self
        bound = copy.copy(self)
        bound._receiver = instance
        return bound

    def __repr__(self) -> str:
        return f"<Action {self.name!r} wrapping {self.fn!r}>"

    def __call__(self, params: Any = None) -> asyncio.Future[Any]:
        loop = resolve_loop(self.loop)
        scene = Scene(name=self.name, params=params)

        self.dispatcher.dispatch(self.pending_event, scene)

        future = self._start(loop, params)
        future.add_done_callback(functools.partial(self._settle, scene))
        return future

    def _start(self, loop: asyncio.AbstractEventLoop, params: Any) -> asyncio.Future[Any]:
        try:
            if self._receiver is _UNBOUND:
                outcome = self.fn(params)
            else:
                outcome = self.fn(self._receiver, params)
        except Exception as exc:
            failed: asyncio.Future[Any] = loop.create_future()
            if isinstance(exc, StopIteration):
                # Futures refuse StopIteration.
                wrapped = RuntimeError(f"Action {self.name!r} raised StopIteration")
                wrapped.__cause__ = exc
                exc = wrapped
            failed.set_exception(exc)
            return failed

        if inspect.isawaitable(outcome):
            return asyncio.ensure_future(outcome, loop=loop)

        done: asyncio.Future[Any] = loop.create_future()
        done.set_result(outcome)
        return done

    def _settle(self, scene: Scene, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            scene.error = asyncio.CancelledError()
        else:
            scene.error = future.exception()

        if scene.error is None:
            scene.result = future.result()
            scene.status = ActionStatus.SUCCEEDED
            event_name = self.succeeded_event
        else:
            scene.status = ActionStatus.FAILED
            event_name = self.failed_event
            LOGGER.info(
                "action.failed %s: %s",
                self.name,
                scene.message,
                extra={"event": "action.failed", "action": self.name},
            )

        try:
            self.dispatcher.dispatch(event_name, scene)
        except Exception:
            # The caller already holds the future; nothing else can receive this.
            LOGGER.error(
                "action.dispatch_failed %s",
                event_name,
                exc_info=True,
                extra={"event": "action.dispatch_failed", "event_name": event_name},
            )


def make_action(
    dispatcher: Dispatching,
    name: str,
    fn: Callable[..., Any],
    *,
    config: ActionConfig | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Action:
    """Decorate ``fn`` with lifecycle events dispatched on ``dispatcher``.

    ``fn`` receives exactly one argument, the params given to the Action. To
    do asynchronous work it returns a coroutine or other awaitable.
    """
    return Action(dispatcher, name, fn, config=config, loop=loop)
