"""Codecs: JSON (textual) and MessagePack (binary, map-oriented).

``get_codec()`` resolves a codec by name, falling back to the configured
``DEFAULT_CODEC``. Built-in codecs are built from the current settings on
every call; codecs added with ``register_codec()`` are used as given.
"""

from __future__ import annotations

import logging
from threading import RLock

from ..conf import settings
from ..exceptions import CodecNotFoundError
from .base import CODEC_CONTEXT_KEY, BaseCodec, dump_value, populate, public_attributes, zero_value
from .json_codec import JsonCodec
from .msgpack_codec import MsgpackCodec

logger = logging.getLogger(__name__)

_BUILTIN: dict[str, type[BaseCodec]] = {
    JsonCodec.name: JsonCodec,
    MsgpackCodec.name: MsgpackCodec,
}
_custom: dict[str, BaseCodec] = {}
_lock = RLock()


def register_codec(codec: BaseCodec, *, replace: bool = False) -> None:
    """Make *codec* resolvable by its ``name``."""
    with _lock:
        if not replace and (codec.name in _custom or codec.name in _BUILTIN):
            raise ValueError(f"codec {codec.name!r} is already registered")
        _custom[codec.name] = codec
    logger.debug("codec.register %s", codec.name)


def unregister_codec(name: str) -> None:
    with _lock:
        _custom.pop(name, None)


def get_codec(codec: BaseCodec | str | None = None) -> BaseCodec:
    """Resolve *codec* (instance, name, or ``None`` for the default)."""
    if isinstance(codec, BaseCodec):
        return codec
    name = (codec or settings["DEFAULT_CODEC"]).strip().lower()
    with _lock:
        custom = _custom.get(name)
    if custom is not None:
        return custom
    try:
        return _BUILTIN[name].from_settings(settings)
    except KeyError:
        known = ", ".join(sorted({*_BUILTIN, *_custom}))
        raise CodecNotFoundError(f"unknown codec {name!r} (known: {known})") from None


__all__ = [
    "BaseCodec",
    "CODEC_CONTEXT_KEY",
    "JsonCodec",
    "MsgpackCodec",
    "get_codec",
    "register_codec",
    "unregister_codec",
    "dump_value",
    "populate",
    "public_attributes",
    "zero_value",
]
