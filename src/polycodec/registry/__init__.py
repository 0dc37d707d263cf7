"""Factory registry keyed by (interface, discriminator type, selector, value)."""

from .active import (
    default_registry,
    get_registry,
    lookup,
    register,
    reset_registries,
    use_registry,
)
from .base import Factory, FactoryRegistry, is_mutable_instance
from .keys import RegistryKey, type_label
from .typed import register_type, registers, zero_instance

__all__ = [
    "Factory",
    "FactoryRegistry",
    "RegistryKey",
    "default_registry",
    "get_registry",
    "use_registry",
    "reset_registries",
    "register",
    "lookup",
    "register_type",
    "registers",
    "zero_instance",
    "is_mutable_instance",
    "type_label",
]
