# polycodec/tracing/__init__.py
from .tracing import codec_span, get_tracer

__all__ = ["codec_span", "get_tracer"]
