"""Top-level package for fluxcore: Actions, Stores and the Dispatcher between them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .action import Action, ActionStatus, Scene, make_action
    from .config import load_config
    from .dispatcher import Dispatcher, create_dispatcher
    from .events import EventBus
    from .exceptions import (
        ConfigValidationError,
        FluxError,
        InvalidArgumentError,
        PreconditionFailedError,
    )
    from .store import Store, create_store

__all__ = [
    "Action",
    "ActionStatus",
    "ConfigValidationError",
    "Dispatcher",
    "EventBus",
    "FluxError",
    "InvalidArgumentError",
    "PreconditionFailedError",
    "Scene",
    "Store",
    "create_action",
    "create_dispatcher",
    "create_store",
    "load_config",
    "make_action",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols so config/pydantic load only when needed."""
    if name in {"Action", "ActionStatus", "Scene", "make_action", "create_action"}:
        from .action import Action, ActionStatus, Scene, make_action

        return {
            "Action": Action,
            "ActionStatus": ActionStatus,
            "Scene": Scene,
            "make_action": make_action,
            "create_action": make_action,
        }[name]
    if name in {"Dispatcher", "create_dispatcher"}:
        from .dispatcher import Dispatcher, create_dispatcher

        return {"Dispatcher": Dispatcher, "create_dispatcher": create_dispatcher}[name]
    if name in {"Store", "create_store"}:
        from .store import Store, create_store

        return {"Store": Store, "create_store": create_store}[name]
    if name == "EventBus":
        from .events import EventBus

        return EventBus
    if name in {
        "ConfigValidationError",
        "FluxError",
        "InvalidArgumentError",
        "PreconditionFailedError",
    }:
        from .exceptions import (
            ConfigValidationError,
            FluxError,
            InvalidArgumentError,
            PreconditionFailedError,
        )

        return {
            "ConfigValidationError": ConfigValidationError,
            "FluxError": FluxError,
            "InvalidArgumentError": InvalidArgumentError,
            "PreconditionFailedError": PreconditionFailedError,
        }[name]
    if name == "load_config":
        from .config import load_config

        return load_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
