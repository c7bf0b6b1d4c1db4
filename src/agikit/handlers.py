"""Resolve user AGI handlers from ``module:function`` import paths."""

import importlib
import inspect

from agikit.server import Handler


class HandlerError(Exception):
    """The handler import path cannot be resolved to a coroutine function."""

    def __init__(self, code: str, message: str) -> None:
        """Initialize with a machine-readable code and a human-readable message.

        Args:
            code: Machine-readable error code (e.g. "handler_not_found").
            message: Human-readable error description.

        """
        super().__init__(message)
        self.code = code


def load_handler(path: str) -> Handler:
    """Import ``package.module:function`` and return the coroutine function it names.

    Raises:
        HandlerError: Malformed path (code: ``invalid_handler``), missing module or
            attribute (code: ``handler_not_found``), or not an async callable
            (code: ``handler_not_async``).

    """
    module_name, sep, attr_path = path.partition(":")
    if not sep or not module_name or not attr_path:
        raise HandlerError("invalid_handler", f"Handler must look like 'module:function', got '{path}'.")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as e:
        raise HandlerError("handler_not_found", f"Cannot import module '{module_name}': {e}") from e
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise HandlerError("handler_not_found", f"'{module_name}' has no attribute '{attr_path}'.") from None
    if not inspect.iscoroutinefunction(target):
        raise HandlerError("handler_not_async", f"Handler '{path}' must be an async function.")
    handler: Handler = target  # type: ignore[assignment]
    return handler
