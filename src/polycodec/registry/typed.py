# polycodec/registry/typed.py
"""
Typed registration: register a concrete class instead of a hand-written factory.

    register_type(Dog, Animal, AnimalKind(type="dog"))

    @registers(Animal, AnimalKind(type="cat"))
    class Cat(Animal): ...

The class must be concrete (a real, non-abstract, non-protocol class that can
be built without arguments) and a zero-valued instance of it must satisfy the
interface. The factory stored in the registry builds a new zero-valued
instance on every call.
"""
from __future__ import annotations

import inspect
from functools import partial
from typing import Any, Callable, Hashable, TypeVar, get_origin

from pydantic import BaseModel

from ..exceptions import ConcreteTypeRequiredError, InterfaceNotImplementedError
from .active import get_registry
from .base import FactoryRegistry, satisfies
from .keys import RegistryKey, type_label

I = TypeVar("I")
T = TypeVar("T", bound=type)

__all__ = ["register_type", "registers", "zero_instance"]


def zero_instance(cls: type[I]) -> I:
    """Build a fresh zero-valued instance of *cls*.

    Pydantic models are built with ``model_construct()`` so that required
    fields do not need values yet; the second decode pass fills them in.
    """
    if issubclass(cls, BaseModel):
        return cls.model_construct()
    return cls()


def _ensure_concrete(concrete: Any) -> None:
    if get_origin(concrete) is not None or not isinstance(concrete, type):
        # instances, typing aliases (type[Dog], Optional[Dog]), partials...
        raise ConcreteTypeRequiredError(
            f"factory type {type_label(concrete)} must be a concrete class, "
            f"not a reference to one"
        )
    if getattr(concrete, "_is_protocol", False):
        raise ConcreteTypeRequiredError(f"factory type {type_label(concrete)} must not be a protocol")
    if inspect.isabstract(concrete):
        raise ConcreteTypeRequiredError(f"factory type {type_label(concrete)} must not be abstract")


def register_type(
        concrete: type,
        interface: type[I],
        value: Hashable,
        *,
        selector: type | None = None,
        discriminator_type: type | None = None,
        registry: FactoryRegistry | None = None,
) -> RegistryKey:
    """
    Register *concrete* for *interface* under discriminator *value*.

    :raises ConcreteTypeRequiredError: *concrete* is not a concrete class or
        cannot be constructed without arguments.
    :raises InterfaceNotImplementedError: A zero-valued *concrete* is not an
        instance of *interface*.
    :raises RegistryDuplicateError: The key is already registered.
    """
    _ensure_concrete(concrete)
    try:
        probe = zero_instance(concrete)
    except TypeError as err:
        raise ConcreteTypeRequiredError(
            f"factory type {type_label(concrete)} cannot be constructed without arguments"
        ) from err

    if not satisfies(probe, interface):
        raise InterfaceNotImplementedError(
            f"factory type {type_label(concrete)} does not implement I type {type_label(interface)}",
            concrete=concrete,
            interface=interface,
        )

    return get_registry(registry).register(
        interface,
        value,
        partial(zero_instance, concrete),
        discriminator_type=discriminator_type,
        selector=selector,
    )


def registers(
        interface: type[I],
        value: Hashable,
        *,
        selector: type | None = None,
        discriminator_type: type | None = None,
        registry: FactoryRegistry | None = None,
) -> Callable[[T], T]:
    """Class decorator form of :func:`register_type`; returns the class unchanged."""

    def _apply(cls: T) -> T:
        register_type(
            cls,
            interface,
            value,
            selector=selector,
            discriminator_type=discriminator_type,
            registry=registry,
        )
        return cls

    return _apply
