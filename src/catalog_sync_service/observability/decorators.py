"""OpenTelemetry tracing decorators.

Most sync-path operations report failure through their return value rather
than by raising (``SyncResult.success``, ``False`` from a store write), so the
span outcome is read from the result as well as from exceptions.
"""

import asyncio
import functools
from collections.abc import Callable, Sized
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

F = TypeVar("F", bound=Callable[..., Any])


def _record_outcome(span: Span, result: Any) -> None:
    if isinstance(result, bool):
        success = result
    elif isinstance(getattr(result, "success", None), bool):
        success = result.success
        if getattr(result, "skipped", False):
            span.set_attribute("sync.skipped", True)
        if not success:
            span.set_attribute("error.message", str(getattr(result, "message", "")))
    else:
        success = True
        if isinstance(result, Sized) and not isinstance(result, str | bytes | dict):
            span.set_attribute("result.count", len(result))

    span.set_attribute("success", success)
    if not success:
        span.set_status(Status(StatusCode.ERROR))


def _record_exception(span: Span, error: Exception) -> None:
    span.set_attribute("success", False)
    span.set_attribute("error.type", type(error).__name__)
    span.set_attribute("error.message", str(error))
    span.record_exception(error)
    span.set_status(Status(StatusCode.ERROR, str(error)))


def traced(span_name: str | None = None, service_name: str = "catalog-sync") -> Callable[[F], F]:
    """Wrap a function in an OpenTelemetry span.

    Works for coroutine functions and plain functions. Exceptions are recorded
    and re-raised. A ``bool`` result or a result with a ``success`` flag sets
    the span outcome; a sized result adds ``result.count``.

    Args:
        span_name: Name for the span (defaults to the function name)
        service_name: Tracer name and ``service.name`` span attribute

    Returns:
        Decorated function with tracing

    Example:
        @traced("catalog.perform_sync")
        async def perform_sync(self) -> SyncResult:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)
        attributes = {"service.name": service_name, "code.function": func.__qualname__}

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(
                name, attributes=attributes, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record_exception(span, e)
                    raise
                _record_outcome(span, result)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(
                name, attributes=attributes, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    _record_exception(span, e)
                    raise
                _record_outcome(span, result)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
