"""JSON codec backed by pydantic-core.

JSON has no binary type: ``bytes`` are written as base64 strings and turned
back into ``bytes`` before validation, guided by the target type's field
annotations.
"""

from __future__ import annotations

import base64
import dataclasses
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence, Set
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin

from pydantic import BaseModel
from pydantic_core import from_json, to_json

from .base import BaseCodec, dump_value, field_key, public_attributes

_BINARY = (bytes, bytearray)
_SEQUENCES = (list, set, frozenset, tuple, Sequence, MutableSequence, Set)


def _unbase64(text: str) -> bytes:
    # accepts both the standard and the URL-safe alphabet, padded or not
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _field_types(tp: type) -> dict[str, tuple[str, Any]]:
    if issubclass(tp, BaseModel):
        return {name: (field_key(name, info), info.annotation) for name, info in tp.model_fields.items()}
    try:
        hints = typing.get_type_hints(tp)
    except NameError:
        # unresolvable forward references: leave the payload as parsed
        hints = {}
    return {f.name: (f.name, hints.get(f.name, Any)) for f in dataclasses.fields(tp)}


def restore_bytes(obj: Any, tp: Any) -> Any:
    """Decode the base64 strings standing in for ``bytes`` inside *obj*."""
    if obj is None or tp is Any:
        return obj
    if tp in _BINARY:
        return _unbase64(obj) if isinstance(obj, str) else obj

    origin = get_origin(tp)
    args = get_args(tp)
    if origin is Annotated:
        return restore_bytes(obj, args[0])
    if origin is Union or origin is types.UnionType:
        if isinstance(obj, str):
            if str in args or not any(arg in _BINARY for arg in args):
                return obj
            return _unbase64(obj)
        structured = [arg for arg in args if arg is not type(None)]
        return restore_bytes(obj, structured[0]) if len(structured) == 1 else obj
    if origin in (dict, Mapping, MutableMapping) and isinstance(obj, Mapping):
        value_type = args[1] if len(args) == 2 else Any
        return {k: restore_bytes(v, value_type) for k, v in obj.items()}
    if origin in _SEQUENCES and isinstance(obj, list):
        if origin is tuple and args and args[-1] is not Ellipsis:
            return [restore_bytes(v, t) for v, t in zip(obj, args)] + obj[len(args):]
        item_type = args[0] if args else Any
        return [restore_bytes(v, item_type) for v in obj]

    if isinstance(tp, type) and isinstance(obj, Mapping) and (
            issubclass(tp, BaseModel) or dataclasses.is_dataclass(tp)
    ):
        restored = dict(obj)
        for name, (key, annotation) in _field_types(tp).items():
            for candidate in {key, name}:
                if candidate in restored:
                    restored[candidate] = restore_bytes(restored[candidate], annotation)
        return restored
    return obj


class JsonCodec(BaseCodec):
    """Textual codec. The canonical "no value" representation is ``null``."""

    name: ClassVar[str] = "json"
    null: ClassVar[bytes] = b"null"

    def __init__(self, *, indent: int | None = None) -> None:
        self.indent = indent

    @classmethod
    def from_settings(cls, settings) -> "JsonCodec":
        return cls(indent=settings["JSON_INDENT"])

    def dumps(self, value: Any) -> bytes:
        return to_json(
            dump_value(value),
            indent=self.indent,
            by_alias=True,
            bytes_mode="base64",
            fallback=public_attributes,
        )

    def loads(self, data: bytes) -> Any:
        return from_json(data)

    def restore(self, obj: Any, target_type: Any) -> Any:
        return restore_bytes(obj, target_type)
