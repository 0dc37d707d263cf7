"""MessagePack codec backed by ``msgpack``."""

from __future__ import annotations

from typing import Any, ClassVar

import msgpack
from pydantic_core import to_jsonable_python

from .base import BaseCodec, dump_value, public_attributes


def _default(obj: Any) -> Any:
    # plain objects nested where msgpack cannot see them keep their binary fields
    dumped = dump_value(obj)
    if dumped is not obj:
        return dumped
    # datetimes, UUIDs, decimals... anything msgpack cannot pack natively
    return to_jsonable_python(obj, fallback=public_attributes)


class MsgpackCodec(BaseCodec):
    """Binary map-oriented codec. "No value" is the single nil byte ``0xc0``."""

    name: ClassVar[str] = "msgpack"
    null: ClassVar[bytes] = b"\xc0"

    def __init__(self, *, use_bin_type: bool = True) -> None:
        self.use_bin_type = use_bin_type

    @classmethod
    def from_settings(cls, settings) -> "MsgpackCodec":
        return cls(use_bin_type=settings["MSGPACK_USE_BIN_TYPE"])

    def dumps(self, value: Any) -> bytes:
        return msgpack.packb(dump_value(value), use_bin_type=self.use_bin_type, default=_default)

    def loads(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False)
