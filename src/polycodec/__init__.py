"""
polycodec: discriminator-based polymorphic decoding for JSON and MessagePack.

A value declared only by its interface type is decoded into the right concrete
class by reading a discriminator from the payload itself:

- `polycodec.registry` maps (interface, discriminator) values to factories;
- `polycodec.deciders` holds the strategies that turn a discriminator into an
  instance (registry lookup, field lookup, self-deciding shapes);
- `polycodec.decodable` holds the container implementing the decode passes;
- `polycodec.codecs` adapts pydantic-core (JSON) and msgpack (MessagePack).

Import Guidelines:
------------------
- Register concrete types at start-up with `register_type` / `registers`.
- Decode through `Decodable.by_registry`, `Decodable.by_field` or
  `Decodable.self_deciding`.
- Catch `polycodec.exceptions.PolycodecError` for registry/dispatch failures;
  codec failures surface as the codec library's own exceptions.
"""

from importlib.metadata import PackageNotFoundError, version

from .codecs import BaseCodec, JsonCodec, MsgpackCodec, get_codec, register_codec
from .decodable import Decodable
from .deciders import Decider, FieldDecider, FieldSelector, RegistryDecider, SelfDecider, SelfDeciding
from .registry import (
    FactoryRegistry,
    RegistryKey,
    get_registry,
    register,
    register_type,
    registers,
    reset_registries,
    use_registry,
)

try:
    __version__ = version("polycodec")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BaseCodec",
    "JsonCodec",
    "MsgpackCodec",
    "get_codec",
    "register_codec",
    "Decodable",
    "Decider",
    "RegistryDecider",
    "FieldDecider",
    "FieldSelector",
    "SelfDecider",
    "SelfDeciding",
    "FactoryRegistry",
    "RegistryKey",
    "get_registry",
    "use_registry",
    "register",
    "register_type",
    "registers",
    "reset_registries",
]
