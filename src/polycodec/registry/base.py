# polycodec/registry/base.py


import dataclasses
import logging
from enum import Enum
from typing import Any, Callable, Hashable, TypeVar

from asgiref.sync import sync_to_async
from pydantic import BaseModel

from ..exceptions import (
    FactoryProductError,
    InterfaceNotImplementedError,
    NoFactoryFoundError,
    RegistryDuplicateError,
    RegistryFrozenError,
    UnhashableDiscriminatorError,
)
from .keys import RegistryKey, type_label
from .locks import ReadWriteLock

logger = logging.getLogger(__name__)

I = TypeVar("I")

Factory = Callable[[], I]

_IMMUTABLE_TYPES = (
    type(None), bool, int, float, complex, str, bytes, tuple, frozenset, range, Enum,
)


def is_mutable_instance(obj: Any) -> bool:
    """True when *obj* can be populated in place by a second decode pass."""
    if isinstance(obj, _IMMUTABLE_TYPES) or isinstance(obj, type):
        return False
    if isinstance(obj, BaseModel):
        return not obj.model_config.get("frozen", False)
    if dataclasses.is_dataclass(obj):
        return not type(obj).__dataclass_params__.frozen
    return True


def satisfies(obj: Any, interface: type) -> bool:
    """``isinstance`` check; protocols must be ``@runtime_checkable``."""
    try:
        return isinstance(obj, interface)
    except TypeError as err:
        raise InterfaceNotImplementedError(
            f"interface {type_label(interface)} cannot be checked at runtime: {err}",
            concrete=type(obj),
            interface=interface,
        ) from err


class FactoryRegistry:
    """Thread-safe store of discriminator value -> factory mappings.

    Keys are :class:`RegistryKey` tuples of (interface, discriminator type,
    selector, value). Factories are zero-argument callables returning a fresh
    mutable instance of the interface; the registry validates this once at
    registration time by calling the factory.

    The access pattern is many writes at start-up and many concurrent reads
    afterwards, so the store is guarded by a reader/writer lock. A registry can
    be frozen once populated.
    """

    def __init__(self, *, name: str = "default") -> None:
        self.name = name
        self._lock = ReadWriteLock()
        self._store: dict[RegistryKey, Factory[Any]] = {}
        self._frozen = False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} entries={len(self._store)}{' frozen' if self._frozen else ''}>"

    # --- keys ---

    @staticmethod
    def make_key(
            interface: type,
            value: Hashable,
            *,
            discriminator_type: type | None = None,
            selector: type | None = None,
    ) -> RegistryKey:
        return RegistryKey(
            interface=interface,
            discriminator_type=discriminator_type or type(value),
            selector=selector,
            value=value,
        )

    # --- registration ---

    def register(
            self,
            interface: type[I],
            value: Hashable,
            factory: Factory[I],
            *,
            discriminator_type: type | None = None,
            selector: type | None = None,
    ) -> RegistryKey:
        """
        Register *factory* as the producer of *interface* instances for *value*.

        The factory is invoked once (outside the lock) to check that it produces
        a mutable instance of *interface*.

        :param interface: The interface (base class or runtime-checkable protocol).
        :param value: The discriminator value; must be hashable.
        :param factory: Zero-argument callable returning a fresh instance.
        :param discriminator_type: Discriminator type of the key. Defaults to ``type(value)``.
        :param selector: Field selector class for field-based dispatch.
        :return: The key the factory was stored under.
        :raises FactoryProductError: Factory not callable or producing an immutable value.
        :raises InterfaceNotImplementedError: Product is not an instance of *interface*.
        :raises UnhashableDiscriminatorError: *value* cannot be hashed.
        :raises RegistryDuplicateError: The key is already registered.
        :raises RegistryFrozenError: The registry is frozen.
        """
        key = self.make_key(interface, value, discriminator_type=discriminator_type, selector=selector)
        try:
            hash(key)
        except TypeError as err:
            raise UnhashableDiscriminatorError(
                f"discriminator value {value!r} for {key.label} is not hashable"
            ) from err

        self._check_factory(factory, interface)

        with self._lock.write():
            if self._frozen:
                raise RegistryFrozenError(f"Registry {self.name!r} is frozen")
            if key in self._store:
                raise RegistryDuplicateError(
                    f"value {value!r} already registered for {key.label}", key=key
                )
            self._store[key] = factory

        logger.debug("registry.register %s (registry=%s)", key, self.name)
        return key

    @staticmethod
    def _check_factory(factory: Any, interface: type) -> None:
        if not callable(factory):
            raise FactoryProductError(f"factory must be callable, got {type(factory).__name__}")
        product = factory()
        if not is_mutable_instance(product):
            raise FactoryProductError(
                f"factory must return a mutable instance, got {type_label(type(product))}"
            )
        if not satisfies(product, interface):
            raise InterfaceNotImplementedError(
                f"factory product {type_label(type(product))} does not implement "
                f"I type {type_label(interface)}",
                concrete=type(product),
                interface=interface,
            )

    async def aregister(self, interface: type[I], value: Hashable, factory: Factory[I], **kwargs: Any) -> RegistryKey:
        """Async wrapper around `register`."""
        return await sync_to_async(self.register)(interface, value, factory, **kwargs)

    # --- retrieval ---

    def lookup(
            self,
            interface: type[I],
            value: Hashable,
            *,
            discriminator_type: type | None = None,
            selector: type | None = None,
    ) -> Factory[I]:
        """
        Return the entry stored for the key built from the arguments.

        The entry is returned as stored; callers that need a guaranteed
        factory go through a decider, which checks the entry's shape.

        :raises NoFactoryFoundError: Nothing is registered for the key. An
            unhashable *value* can never have been registered and lands here too.
        """
        key = self.make_key(interface, value, discriminator_type=discriminator_type, selector=selector)
        try:
            hash(value)
        except TypeError:
            raise NoFactoryFoundError(
                f"no factory found in {key.label} and unhashable X value {value!r}", key=key
            ) from None
        with self._lock.read():
            try:
                return self._store[key]
            except KeyError as err:
                raise NoFactoryFoundError(
                    f"no factory found in {key.label} and X value {value!r}", key=key
                ) from err

    async def alookup(self, interface: type[I], value: Hashable, **kwargs: Any) -> Factory[I]:
        """Async wrapper around `lookup`."""
        return await sync_to_async(self.lookup)(interface, value, **kwargs)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._store

    # --- counting / enumeration ---

    def count(self) -> int:
        """Number of registered factories."""
        with self._lock.read():
            return len(self._store)

    __len__ = count

    async def acount(self) -> int:
        return await sync_to_async(self.count)()

    def keys(self, *, interface: type | None = None) -> tuple[RegistryKey, ...]:
        """Registered keys, optionally restricted to one interface."""
        with self._lock.read():
            keys = tuple(self._store)
        if interface is None:
            return keys
        return tuple(k for k in keys if k.interface is interface)

    # --- mutation / control ---

    @property
    def frozen(self) -> bool:
        return self._frozen

    def reset(self) -> None:
        """
        Remove every entry. Intended for test isolation and re-initialisation,
        not for hot reloading in production.
        """
        with self._lock.write():
            if self._frozen:
                raise RegistryFrozenError(f"Registry {self.name!r} is frozen")
            count = len(self._store)
            self._store.clear()
        logger.debug("registry.reset %s count=%d", self.name, count)

    async def areset(self) -> None:
        return await sync_to_async(self.reset)()

    def freeze(self) -> None:
        """Mark the registry as frozen (no further registrations or resets)."""
        with self._lock.write():
            self._frozen = True
        logger.debug("registry.freeze %s", self.name)

    def unfreeze(self) -> None:
        with self._lock.write():
            self._frozen = False
