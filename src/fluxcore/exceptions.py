"""Domain exception hierarchy for the dispatcher, actions and stores."""

from __future__ import annotations


class FluxError(RuntimeError):
    """Base class for all fluxcore errors."""


class InvalidArgumentError(FluxError, ValueError):
    """Raised when an event name, handler or payload shape is malformed."""


class PreconditionFailedError(FluxError, ReferenceError):
    """Raised when an operation needs a collaborator that is not bound."""


class ConfigValidationError(FluxError):
    """Raised when configuration cannot be validated safely."""
