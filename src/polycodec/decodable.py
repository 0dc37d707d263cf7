# polycodec/decodable.py
"""
Decodable: a holder for one polymorphic value.

Encoding writes the held value's concrete type directly (or the codec's null
when empty). Decoding runs three passes over the same bytes:

1. discriminate: shallow-decode the payload into the decider's discriminator
   shape (a generic map for field-based dispatch);
2. resolve: hand that discriminator to the decider, which returns a fresh
   instance of the interface (or ``None`` for no value);
3. populate: decode the whole payload again into that instance, in place.

Errors from any pass propagate unchanged. A failure in pass 1 or 2 leaves the
container empty; a failure in pass 3 leaves it holding the pass-2 instance in
whatever state the codec left it. Callers must discard the container on any
decode error.

Usage:
    animal = Decodable.by_registry(Animal, AnimalKind)
    animal.from_json(b'{"name": "Fido", "type": "dog"}')
    animal.value  # -> Dog(name="Fido", type="dog")

As a field of an enclosing pydantic model or dataclass:
    class Zoo(BaseModel):
        pet: Decodable[Animal, AnimalKind]  # registry-based
        mascot: Annotated[Decodable[Animal, Any], FieldDecider(Animal, ByType)]
"""
from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar, get_args

from pydantic_core import core_schema

from .codecs import CODEC_CONTEXT_KEY, BaseCodec, get_codec
from .deciders import Decider, FieldDecider, FieldSelector, RegistryDecider, SelfDecider
from .registry import FactoryRegistry, type_label
from .tracing import codec_span

logger = logging.getLogger(__name__)

I = TypeVar("I")
X = TypeVar("X")

__all__ = ["Decodable", "container_schema"]


class Decodable(Generic[I, X]):
    """Polymorphic container parameterized by a :class:`Decider`."""

    __slots__ = ("decider", "value")

    def __init__(self, decider: Decider[I, X], value: I | None = None) -> None:
        self.decider = decider
        self.value = value

    # ---------------- constructors ----------------
    @classmethod
    def by_registry(
            cls,
            interface: type[I],
            discriminator: type[X],
            *,
            registry: FactoryRegistry | None = None,
            value: I | None = None,
    ) -> "Decodable[I, X]":
        """Container dispatching through the registry on a decoded *discriminator*."""
        return cls(RegistryDecider(interface, discriminator, registry=registry), value)

    @classmethod
    def by_field(
            cls,
            interface: type[I],
            selector: type[FieldSelector],
            value_type: type = str,
            *,
            registry: FactoryRegistry | None = None,
            value: I | None = None,
    ) -> "Decodable[I, dict[str, Any]]":
        """Container dispatching on one field of the payload read as a map."""
        return cls(FieldDecider(interface, selector, value_type, registry=registry), value)

    @classmethod
    def self_deciding(cls, interface: type[I], shape: type[X], *, value: I | None = None) -> "Decodable[I, X]":
        """Container whose payload shape decides its own concrete type."""
        return cls(SelfDecider(interface, shape), value)

    # ---------------- state ----------------
    @property
    def interface(self) -> type[I]:
        return self.decider.interface

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def clear(self) -> None:
        self.value = None

    def _span_attrs(self, codec: BaseCodec) -> dict[str, Any]:
        return {
            "polycodec.codec": codec.name,
            "polycodec.interface": type_label(self.interface),
            "polycodec.decider": self.decider.kind,
        }

    # ---------------- encode ----------------
    def encode(self, codec: BaseCodec | str | None = None) -> bytes:
        """Encode the held value with its concrete type; null when empty."""
        codec = get_codec(codec)
        with codec_span("polycodec.encode", attributes=self._span_attrs(codec)):
            return codec.encode(self.value)

    # ---------------- decode ----------------
    def decode(self, data: bytes, codec: BaseCodec | str | None = None) -> I | None:
        """Decode *data* into this container and return the new value."""
        codec = get_codec(codec)
        return self._run_passes(
            codec,
            lambda: self.decider.read_discriminator(data, codec),
            lambda instance: codec.decode_into(data, instance),
        )

    def decode_loaded(self, obj: Any, codec: BaseCodec | str | None = None) -> I | None:
        """Same passes over a payload *codec* has already parsed.

        This is how a container nested in an enclosing model decodes its
        sub-document.
        """
        codec = get_codec(codec)
        return self._run_passes(
            codec,
            lambda: self.decider.discriminator_from(obj, codec),
            lambda instance: codec.apply(obj, instance),
        )

    def _run_passes(self, codec: BaseCodec, discriminate, populate) -> I | None:
        self.value = None
        with codec_span("polycodec.decode", attributes=self._span_attrs(codec)) as span:
            discriminator = discriminate()
            instance = self.decider.decide(discriminator)
            if instance is None:
                logger.debug("decode: %r resolved no value", self.decider)
                return None

            self.value = instance
            if span is not None:
                span.set_attribute("polycodec.concrete", type_label(type(instance)))
            populate(instance)
            return instance

    @classmethod
    def decoded(cls, decider: Decider[I, X], data: bytes, codec: BaseCodec | str | None = None) -> "Decodable[I, X]":
        """Build a container with *decider* and decode *data* into it."""
        container = cls(decider)
        container.decode(data, codec)
        return container

    # ---------------- format shortcuts ----------------
    def to_json(self) -> bytes:
        return self.encode("json")

    def from_json(self, data: bytes | str) -> I | None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self.decode(data, "json")

    def to_msgpack(self) -> bytes:
        return self.encode("msgpack")

    def from_msgpack(self, data: bytes) -> I | None:
        return self.decode(data, "msgpack")

    # ---------------- pydantic ----------------
    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> core_schema.CoreSchema:
        # bare Decodable[I, X] dispatches through the registry; other
        # strategies are attached with Annotated[Decodable[I, X], decider]
        args = get_args(source)
        if len(args) != 2:
            raise TypeError(
                "a Decodable field needs its types, Decodable[I, X], "
                "or a decider, Annotated[Decodable, decider]"
            )
        return container_schema(RegistryDecider(*args))

    # ---------------- dunder ----------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Decodable):
            return NotImplemented
        return self.interface is other.interface and self.value == other.value

    __hash__ = None  # mutable container

    def __repr__(self) -> str:
        return f"Decodable[{type_label(self.interface)}]({self.value!r})"


def container_schema(decider: Decider) -> core_schema.CoreSchema:
    """Pydantic schema for a :class:`Decodable` field decided by *decider*.

    Validation runs the decode passes over the field's sub-document, using
    the codec that parsed the enclosing payload (the default codec when the
    model is validated directly). Serialization writes the held value.
    """

    def validate(value: Any, info: core_schema.ValidationInfo) -> Decodable:
        if isinstance(value, Decodable):
            return value
        codec = (info.context or {}).get(CODEC_CONTEXT_KEY)
        container = Decodable(decider)
        container.decode_loaded(value, codec)
        return container

    return core_schema.with_info_plain_validator_function(
        validate,
        serialization=core_schema.plain_serializer_function_ser_schema(
            _held_value, info_arg=False, return_schema=core_schema.any_schema()
        ),
    )


def _held_value(container: Decodable) -> Any:
    return container.value
