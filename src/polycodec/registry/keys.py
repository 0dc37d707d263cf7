# polycodec/registry/keys.py
"""Registry keys and the labels used to describe them in error messages."""
from __future__ import annotations

from typing import Any, Hashable, NamedTuple, get_origin

__all__ = ["RegistryKey", "type_label"]


def type_label(tp: Any) -> str:
    """Stable, human-readable name for a type (``module.Qualname``).

    Builtins are shown bare (``str``); anything that is not a class (typing
    aliases and the like) falls back to its ``repr``.
    """
    if isinstance(tp, type) and get_origin(tp) is None:
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    return repr(tp).replace("typing.", "")


class RegistryKey(NamedTuple):
    """Registry slot: (interface, discriminator type, selector, value).

    ``selector`` is ``None`` for plain registry dispatch; field-based dispatch
    stores the selector class so that selectors partition the value space.
    """

    interface: type
    discriminator_type: type
    selector: type | None
    value: Hashable

    @property
    def label(self) -> str:
        """``registry[I: ..., F: ..., X: ...]``; the value is not included."""
        parts = [f"I: {type_label(self.interface)}"]
        if self.selector is not None:
            parts.append(f"F: {type_label(self.selector)}")
        parts.append(f"X: {type_label(self.discriminator_type)}")
        return f"registry[{', '.join(parts)}]"

    def __str__(self) -> str:
        return f"{self.label}={self.value!r}"
