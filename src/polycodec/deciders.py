# polycodec/deciders.py
"""
Deciders: pick the concrete instance to decode a payload into.

A decider is configured with the interface type it produces and the shape it
reads from the payload in the first decode pass (``discriminator_shape``).
Given that shallow-decoded discriminator, ``decide()`` returns a fresh
instance of the interface, ``None`` for "no value", or raises.

- :class:`RegistryDecider` looks the discriminator value up in a registry.
- :class:`FieldDecider` reads the discriminator out of a generic map using a
  field selector, then looks it up keyed additionally by that selector.
- :class:`SelfDecider` asks the decoded shape itself (``shape.decide()``).

Custom strategies subclass :class:`Decider`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Hashable, Mapping, Protocol, TypeVar, runtime_checkable

from .codecs import BaseCodec
from .exceptions import DiscriminatorFieldMissingError, RegistryCorruptionError
from .registry import FactoryRegistry, get_registry, type_label

I = TypeVar("I")
X = TypeVar("X")
I_co = TypeVar("I_co", covariant=True)

__all__ = [
    "Decider",
    "RegistryDecider",
    "FieldDecider",
    "FieldSelector",
    "SelfDecider",
    "SelfDeciding",
]


@runtime_checkable
class SelfDeciding(Protocol[I_co]):
    """A payload shape that knows which concrete type it describes."""

    def decide(self) -> I_co | None: ...


class FieldSelector(Protocol):
    """Stateless class naming the map field that holds the discriminator.

        class ByType:
            field_name = "type"
    """

    field_name: ClassVar[str]


class Decider(ABC, Generic[I, X]):
    """Strategy mapping a discriminator to a fresh instance of ``interface``."""

    kind: ClassVar[str] = "custom"

    def __init__(self, interface: type[I], discriminator_shape: Any) -> None:
        self.interface = interface
        self.discriminator_shape = discriminator_shape

    def read_discriminator(self, data: bytes, codec: BaseCodec) -> X:
        """First decode pass: shallow-decode *data* into the discriminator shape."""
        return self.discriminator_from(codec.loads(data), codec)

    def discriminator_from(self, obj: Any, codec: BaseCodec) -> X:
        """First decode pass over a payload *codec* has already parsed."""
        return codec.validate(obj, self.discriminator_shape)

    @abstractmethod
    def decide(self, discriminator: X) -> I | None:
        """Return a fresh instance for *discriminator* (``None`` for no value)."""

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self), self.interface, self.discriminator_shape))

    def __get_pydantic_core_schema__(self, source: Any, handler: Any) -> Any:
        # Annotated[Decodable[I, X], decider] as a model or dataclass field
        from .decodable import container_schema

        return container_schema(self)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(I={type_label(self.interface)}, "
            f"X={type_label(self.discriminator_shape)})"
        )


class _RegistryBacked(Decider[I, X]):
    def __init__(self, interface: type[I], discriminator_shape: Any, registry: FactoryRegistry | None) -> None:
        super().__init__(interface, discriminator_shape)
        self._registry = registry

    @property
    def registry(self) -> FactoryRegistry:
        """The explicit registry, or the active one at call time."""
        return get_registry(self._registry)

    def _create(self, value: Hashable, *, discriminator_type: type, selector: type | None = None) -> I:
        registry = self.registry
        factory = registry.lookup(
            self.interface, value, discriminator_type=discriminator_type, selector=selector
        )
        if not callable(factory):
            key = registry.make_key(
                self.interface, value, discriminator_type=discriminator_type, selector=selector
            )
            raise RegistryCorruptionError(
                f"{key.label} entry should be a factory but is: "
                f"{type_label(type(factory))} for X value {value!r}",
                key=key,
                entry=factory,
            )
        return factory()


class RegistryDecider(_RegistryBacked[I, X]):
    """Look the decoded discriminator value up in the registry."""

    kind = "registry"

    def __init__(self, interface: type[I], discriminator: type[X], *, registry: FactoryRegistry | None = None) -> None:
        if isinstance(discriminator, type) and discriminator.__hash__ is None:
            raise TypeError(
                f"discriminator {type_label(discriminator)} is unhashable and cannot key a registry; "
                "make it frozen"
            )
        super().__init__(interface, discriminator, registry)

    def decide(self, discriminator: X) -> I:
        return self._create(discriminator, discriminator_type=self.discriminator_shape)


class FieldDecider(_RegistryBacked[I, X]):
    """Read the discriminator from a field of the payload decoded as a map.

    The registry key includes the selector, so values registered through one
    selector are invisible to another.
    """

    kind = "field"

    def __init__(
            self,
            interface: type[I],
            selector: type[FieldSelector],
            value_type: type[X] = str,
            *,
            registry: FactoryRegistry | None = None,
    ) -> None:
        field_name = getattr(selector, "field_name", None)
        if not isinstance(field_name, str) or not field_name:
            raise TypeError(f"selector {type_label(selector)} must define a non-empty 'field_name'")
        super().__init__(interface, dict[str, value_type], registry)
        self.selector = selector
        self.value_type = value_type

    @property
    def field_name(self) -> str:
        return self.selector.field_name

    def discriminator_from(self, obj: Any, codec: BaseCodec) -> dict[str, X]:
        return codec.validate_map(obj, self.value_type)

    def decide(self, discriminator: Mapping[str, X]) -> I:
        try:
            value = discriminator[self.field_name]
        except KeyError:
            raise DiscriminatorFieldMissingError(
                f"discriminator field {self.field_name} not found in map {dict(discriminator)!r}",
                field=self.field_name,
                mapping=dict(discriminator),
            ) from None
        return self._create(value, discriminator_type=self.value_type, selector=self.selector)

    def __repr__(self) -> str:
        return (
            f"FieldDecider(I={type_label(self.interface)}, F={type_label(self.selector)}, "
            f"X={type_label(self.value_type)})"
        )


class SelfDecider(Decider[I, X]):
    """Delegate to the decoded shape's own ``decide()``; no registry involved.

    Whatever ``decide()`` raises propagates unchanged.
    """

    kind = "self"

    def __init__(self, interface: type[I], shape: type[X]) -> None:
        if not callable(getattr(shape, "decide", None)):
            raise TypeError(f"shape {type_label(shape)} does not implement decide()")
        super().__init__(interface, shape)

    def decide(self, discriminator: SelfDeciding[I]) -> I | None:
        return discriminator.decide()
