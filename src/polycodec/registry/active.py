# polycodec/registry/active.py
"""Process-wide default registry and context-scoped overrides."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator, Hashable, TypeVar

from .base import Factory, FactoryRegistry
from .keys import RegistryKey

I = TypeVar("I")

default_registry = FactoryRegistry(name="default")

_active_registry: ContextVar[FactoryRegistry | None] = ContextVar("polycodec_registry", default=None)


def get_registry(registry: FactoryRegistry | None = None) -> FactoryRegistry:
    """Return *registry* if given, else the active override, else the default."""
    if registry is not None:
        return registry
    return _active_registry.get() or default_registry


@contextmanager
def use_registry(registry: FactoryRegistry) -> Generator[FactoryRegistry, None, None]:
    """Make *registry* the active one for the current context."""
    token = _active_registry.set(registry)
    try:
        yield registry
    finally:
        _active_registry.reset(token)


def reset_registries() -> None:
    """Clear the default registry (and the active override, when one is set)."""
    default_registry.reset()
    active = _active_registry.get()
    if active is not None and active is not default_registry:
        active.reset()


def register(interface: type[I], value: Hashable, factory: Factory[I], **kwargs: Any) -> RegistryKey:
    """Register *factory* on the active registry. See `FactoryRegistry.register`."""
    return get_registry().register(interface, value, factory, **kwargs)


def lookup(interface: type[I], value: Hashable, **kwargs: Any) -> Factory[I]:
    """Look up a factory on the active registry. See `FactoryRegistry.lookup`."""
    return get_registry().lookup(interface, value, **kwargs)


__all__ = [
    "default_registry",
    "get_registry",
    "use_registry",
    "reset_registries",
    "register",
    "lookup",
]
