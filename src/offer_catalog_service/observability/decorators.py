"""OpenTelemetry tracing decorators."""

import functools
import inspect
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

F = TypeVar("F", bound=Callable[..., Any])


def _category_of(args: tuple[Any, ...]) -> str | None:
    """Return the catalog category of a bound method's instance, if any."""
    if not args:
        return None
    category = getattr(args[0], "category", None)
    return getattr(category, "value", None) if category is not None else None


@contextmanager
def _traced_span(
    tracer: trace.Tracer, name: str, func: Callable[..., Any], span_name: str | None, args: tuple[Any, ...]
) -> Iterator[Span]:
    with tracer.start_as_current_span(name) as span:
        if span_name:
            span.set_attribute("function.name", func.__name__)

        category = _category_of(args)
        if category:
            span.set_attribute("catalog.category", category)

        try:
            yield span
            span.set_attribute("success", True)
        except Exception as e:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def traced(span_name: str | None = None, service_name: str = "offer-catalog-svc") -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    Creates a span per call. When the decorated function is a method of an
    object exposing ``category`` (catalog services, order sequencers), the
    category is attached as the ``catalog.category`` span attribute. Async
    functions are supported.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Instrumentation scope name for the tracer

    Returns:
        Decorated function with tracing

    Example:
        @traced("offer.reorder")
        def reorder(self, offer_id: str, new_order: int) -> Offer:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        tracer = trace.get_tracer(service_name)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _traced_span(tracer, name, func, span_name, args):
                return await func(*args, **kwargs)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _traced_span(tracer, name, func, span_name, args):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        else:
            return sync_wrapper  # type: ignore

    return decorator
