# polycodec/exceptions.py
"""Exception hierarchy for polycodec.

Registration errors surface while the registry is being populated; decode
errors surface from deciders. Codec failures and errors raised by
self-deciding shapes are never wrapped: they propagate as the underlying
library (or shape) raised them.
"""
from __future__ import annotations

from typing import Any

__all__ = [
    "PolycodecError",
    "RegistryError",
    "RegistrationError",
    "RegistryDuplicateError",
    "RegistryFrozenError",
    "RegistryLookupError",
    "NoFactoryFoundError",
    "RegistryCorruptionError",
    "ConcreteTypeRequiredError",
    "InterfaceNotImplementedError",
    "FactoryProductError",
    "UnhashableDiscriminatorError",
    "DecodeError",
    "DiscriminatorFieldMissingError",
    "CodecError",
    "CodecNotFoundError",
    "PayloadShapeError",
]


class PolycodecError(Exception):
    """Base for all polycodec exceptions."""


# ----------------------------------------------------------------------------
# Registry errors
# ----------------------------------------------------------------------------
class RegistryError(PolycodecError): ...


class RegistrationError(RegistryError):
    """A registration was rejected; the registry is left unchanged."""


class RegistryDuplicateError(RegistrationError):
    """The exact registry key is already taken."""

    def __init__(self, message: str, *, key: Any = None):
        super().__init__(message)
        self.key = key


class RegistryFrozenError(RuntimeError, RegistryError): ...


class ConcreteTypeRequiredError(RegistrationError, TypeError):
    """Typed registration was given something other than a concrete class."""


class InterfaceNotImplementedError(RegistrationError, TypeError):
    """The concrete type (or factory product) does not satisfy the interface."""

    def __init__(self, message: str, *, concrete: Any = None, interface: Any = None):
        super().__init__(message)
        self.concrete = concrete
        self.interface = interface


class FactoryProductError(RegistrationError, TypeError):
    """The factory is not callable or produces an immutable value."""


class UnhashableDiscriminatorError(RegistrationError, TypeError):
    """Discriminator values must be hashable to act as registry keys."""


# ----------------------------------------------------------------------------
# Decode errors
# ----------------------------------------------------------------------------
class DecodeError(PolycodecError): ...


class RegistryLookupError(RegistryError, DecodeError, LookupError): ...


class NoFactoryFoundError(RegistryLookupError):
    """No factory is registered for the resolved key."""

    def __init__(self, message: str, *, key: Any = None):
        super().__init__(message)
        self.key = key


class RegistryCorruptionError(RegistryError, DecodeError):
    """A stored entry is not a zero-argument factory."""

    def __init__(self, message: str, *, key: Any = None, entry: Any = None):
        super().__init__(message)
        self.key = key
        self.entry = entry


class DiscriminatorFieldMissingError(DecodeError, LookupError):
    """The field named by a selector is absent from the decoded map."""

    def __init__(self, message: str, *, field: str, mapping: Any = None):
        super().__init__(message)
        self.field = field
        self.mapping = mapping


# ----------------------------------------------------------------------------
# Codec errors
# ----------------------------------------------------------------------------
class CodecError(PolycodecError):
    """Base error for codec lookup and payload handling."""


class CodecNotFoundError(CodecError, LookupError):
    """Requested codec is not known."""


class PayloadShapeError(CodecError, TypeError):
    """The payload cannot be applied onto the target (e.g. not a map)."""
