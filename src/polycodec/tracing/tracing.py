from collections.abc import Mapping, Sequence
from contextlib import contextmanager, nullcontext
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer

from ..conf import settings

# OpenTelemetry accepts only these scalars (or homogeneous sequences of them)
_ALLOWED = (bool, str, bytes, int, float)


def get_tracer(name: str | None = None) -> Tracer:
    """Return an OpenTelemetry tracer for this package."""
    return trace.get_tracer(name or settings["TRACER_NAME"])


def _apply_attributes(span: Span, attrs: Mapping[str, Any] | None) -> None:
    if not attrs:
        return
    for k, v in attrs.items():
        if v is None:
            continue
        if isinstance(v, _ALLOWED):
            span.set_attribute(k, v)
        elif isinstance(v, Sequence) and not isinstance(v, (str, bytes)):
            cleaned = [x for x in v if isinstance(x, _ALLOWED)]
            if cleaned:
                span.set_attribute(k, cleaned)


def _record_exception(span: Span, err: BaseException) -> None:
    span.record_exception(err)
    span.set_status(Status(StatusCode.ERROR, description=str(err)))
    span.set_attribute("exception.type", type(err).__name__)
    span.set_attribute("exception.msg", str(err)[:500])


@contextmanager
def codec_span(name: str, *, attributes: Mapping[str, Any] | None = None) -> Iterator[Span | None]:
    """Span around a codec operation.

    Yields ``None`` when ``TRACING_ENABLED`` is off. Exceptions are recorded on
    the span and re-raised unchanged.

    Usage:
        with codec_span("polycodec.decode", attributes={"polycodec.codec": "json"}):
            ...
    """
    if not settings["TRACING_ENABLED"]:
        with nullcontext() as nothing:
            yield nothing
        return

    tracer = get_tracer()
    with tracer.start_as_current_span(
        name, kind=SpanKind.INTERNAL, record_exception=False, set_status_on_exception=False
    ) as span:
        _apply_attributes(span, attributes)
        try:
            yield span
            span.set_attribute("ok", True)
        except Exception as e:
            span.set_attribute("ok", False)
            _record_exception(span, e)
            raise


__all__ = ["codec_span", "get_tracer"]
