"""Base codec contract and the value helpers shared by the concrete codecs.

Responsibilities:
  - Turn a Python value (pydantic model, dataclass, plain object, scalar) into
    bytes, without consulting any registry.
  - Build a fresh instance of a target type from bytes (``decode``).
  - Apply bytes onto an existing instance in place (``decode_into``), keeping
    attributes the payload does not mention.
  - Decode bytes into a generic ``dict[str, X]`` (``decode_map``).

Each bytes-level operation has a counterpart taking an already parsed payload
(``validate``, ``apply``, ``validate_map``). Nested containers use those to
run their decode passes over a sub-document of the enclosing payload.

NOT responsible for:
  - Choosing which concrete type to build; that is the decider's job.
  - Wrapping errors: parse failures and pydantic ``ValidationError`` propagate
    unchanged.
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, TypeAdapter

from ..exceptions import PayloadShapeError
from ..registry.keys import type_label

T = TypeVar("T")
X = TypeVar("X")

# validation context entry naming the codec that parsed the payload
CODEC_CONTEXT_KEY = "polycodec.codec"

__all__ = [
    "BaseCodec",
    "CODEC_CONTEXT_KEY",
    "dump_value",
    "field_key",
    "public_attributes",
    "populate",
    "zero_value",
]


@lru_cache(maxsize=256)
def _adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def public_attributes(obj: Any) -> dict[str, Any]:
    """Public instance attributes of a plain object."""
    try:
        attrs = vars(obj)
    except TypeError:
        raise PayloadShapeError(f"cannot serialize object of type {type_label(type(obj))}") from None
    return {k: v for k, v in attrs.items() if not k.startswith("_")}


def dump_value(value: Any, *, mode: str = "python") -> Any:
    """Convert *value* into builtins using its own concrete type's rules.

    ``mode="python"`` keeps ``bytes`` and other natively packable values;
    ``mode="json"`` yields only JSON-compatible builtins. A nested container
    dumps the value it holds.
    """
    from ..decodable import Decodable

    if isinstance(value, Decodable):
        return dump_value(value.value, mode=mode)
    if isinstance(value, BaseModel):
        return value.model_dump(mode=mode, by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _adapter(type(value)).dump_python(value, mode=mode, by_alias=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: dump_value(v, mode=mode) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [dump_value(v, mode=mode) for v in value]
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return {k: dump_value(v, mode=mode) for k, v in public_attributes(value).items()}
    return value


def zero_value(tp: type[T]) -> T:
    """Zero value of a discriminator shape: what a null payload decodes to."""
    if isinstance(tp, type) and (issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)):
        return _adapter(tp).validate_python({})
    return tp()


def field_key(name: str, info: Any) -> str:
    """Key a pydantic field is read from in a payload."""
    alias = info.validation_alias
    if isinstance(alias, str):
        return alias
    return info.alias or name


def populate(target: Any, payload: Any, *, context: dict[str, Any] | None = None) -> None:
    """Apply a decoded *payload* mapping onto *target* in place.

    Fields absent from the payload keep their current values. Pydantic models
    and dataclasses are validated as a whole before any attribute is written,
    so a validation failure leaves *target* untouched. Plain objects receive
    every payload key as an attribute.
    """
    if payload is None:
        return
    if not isinstance(payload, Mapping):
        raise PayloadShapeError(
            f"cannot decode {type(payload).__name__} into {type_label(type(target))}"
        )

    cls = type(target)
    if isinstance(target, BaseModel):
        current = {
            field_key(name, info): target.__dict__[name]
            for name, info in cls.model_fields.items()
            if name in target.__dict__
        }
        extra = getattr(target, "__pydantic_extra__", None) or {}
        validated = cls.model_validate({**extra, **current, **payload}, context=context)
        target.__dict__.update(validated.__dict__)
        target.__pydantic_fields_set__.update(validated.model_fields_set)
        if validated.__pydantic_extra__ is not None:
            object.__setattr__(target, "__pydantic_extra__", validated.__pydantic_extra__)
        if validated.__pydantic_private__ is not None:
            private = {**(target.__pydantic_private__ or {}), **validated.__pydantic_private__}
            object.__setattr__(target, "__pydantic_private__", private)
    elif dataclasses.is_dataclass(target):
        fields = [f for f in dataclasses.fields(target) if f.init]
        current = {f.name: getattr(target, f.name) for f in fields if hasattr(target, f.name)}
        validated = _adapter(cls).validate_python({**current, **payload}, context=context)
        for f in fields:
            setattr(target, f.name, getattr(validated, f.name))
    else:
        for key, value in payload.items():
            setattr(target, key, value)


class BaseCodec(ABC):
    """A structured encoding: bytes in, bytes out.

    Subclasses implement ``dumps``/``loads`` over plain builtins and declare
    the format's canonical ``null`` representation; the base class supplies
    the typed operations on top of them. Formats that cannot carry some
    Python values natively override ``restore`` to turn the parsed stand-ins
    back before validation.
    """

    name: ClassVar[str]
    null: ClassVar[bytes]

    @abstractmethod
    def dumps(self, value: Any) -> bytes:
        """Serialize *value* (possibly a model/dataclass/plain object)."""

    @abstractmethod
    def loads(self, data: bytes) -> Any:
        """Parse *data* into builtins."""

    def restore(self, obj: Any, target_type: Any) -> Any:
        """Adjust a parsed payload to what validating *target_type* expects."""
        return obj

    @property
    def context(self) -> dict[str, Any]:
        return {CODEC_CONTEXT_KEY: self}

    def encode(self, value: Any) -> bytes:
        if value is None:
            return self.null
        return self.dumps(value)

    # ---------------- parsed payloads ----------------
    def validate(self, obj: Any, target_type: type[T]) -> T:
        """Build a new *target_type* instance from a parsed payload."""
        if obj is None:
            return zero_value(target_type)
        return _adapter(target_type).validate_python(self.restore(obj, target_type), context=self.context)

    def apply(self, obj: Any, target: Any) -> None:
        """Apply a parsed payload onto the existing *target* instance."""
        populate(target, self.restore(obj, type(target)), context=self.context)

    def validate_map(self, obj: Any, value_type: type[X] = Any) -> dict[str, X]:
        """Read a parsed payload as a generic string-keyed map of *value_type*."""
        if obj is None:
            return {}
        map_type = dict[str, value_type]
        return _adapter(map_type).validate_python(self.restore(obj, map_type), context=self.context)

    # ---------------- bytes ----------------
    def decode(self, data: bytes, target_type: type[T]) -> T:
        """Build a new *target_type* instance from *data*."""
        return self.validate(self.loads(data), target_type)

    def decode_into(self, data: bytes, target: Any) -> None:
        """Decode *data* onto the existing *target* instance."""
        self.apply(self.loads(data), target)

    def decode_map(self, data: bytes, value_type: type[X] = Any) -> dict[str, X]:
        """Decode *data* into a generic string-keyed map of *value_type* scalars."""
        return self.validate_map(self.loads(data), value_type)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
