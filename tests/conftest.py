import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from polycodec.conf import settings
from polycodec.registry import default_registry, reset_registries

_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(_exporter))
trace.set_tracer_provider(_provider)


@pytest.fixture(autouse=True)
def clean_state():
    """Every test starts with an empty, unfrozen default registry and default settings."""
    default_registry.unfreeze()
    reset_registries()
    settings.reset()
    _exporter.clear()
    yield
    default_registry.unfreeze()
    reset_registries()
    settings.reset()


@pytest.fixture
def spans():
    """Finished spans recorded during the test."""
    return _exporter
