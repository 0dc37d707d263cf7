"""Process-wide polycodec settings.

Lookups fall through three layers:

1. overrides assigned at runtime (``settings["DEFAULT_CODEC"] = "msgpack"``);
2. the configuration module named by ``POLYCODEC_CONFIG_MODULE``;
3. :data:`DEFAULTS`.

A configuration module is usually a project's general settings file, so only
its ``POLYCODEC_``-prefixed names are read, with the prefix stripped::

    # myproject/settings.py
    POLYCODEC_DEFAULT_CODEC = "msgpack"
    POLYCODEC_TRACING_ENABLED = False
"""

import importlib
import logging
import os
from collections import ChainMap
from types import ModuleType
from typing import Any, Iterator, Mapping, MutableMapping

from .defaults import DEFAULTS

logger = logging.getLogger(__name__)

CONFIG_MODULE_ENVVAR = "POLYCODEC_CONFIG_MODULE"
PREFIX = "POLYCODEC_"


class Settings(MutableMapping[str, Any]):
    """Overrides over a loaded configuration module over the defaults."""

    def __init__(self, module: str | ModuleType | None = None) -> None:
        self._overrides: dict[str, Any] = {}
        self._loaded: dict[str, Any] = {}
        self._storage = ChainMap(self._overrides, self._loaded, dict(DEFAULTS))
        if module is not None:
            self.load_module(module)

    # Mapping protocol -------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        return self._storage[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._overrides[key] = value

    def __delitem__(self, key: str) -> None:
        del self._overrides[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._storage)

    def __len__(self) -> int:
        return len(self._storage)

    # Loading ----------------------------------------------------------
    def load_module(self, module: str | ModuleType) -> None:
        """Replace the configuration layer with *module*'s prefixed names."""
        if isinstance(module, str):
            module = importlib.import_module(module)
        self._loaded.clear()
        self._loaded.update(_prefixed(vars(module)))
        logger.debug("settings loaded from %s: %s", module.__name__, sorted(self._loaded))

    def load_from_envvar(self, envvar: str = CONFIG_MODULE_ENVVAR) -> bool:
        """Load the module named by *envvar*; ``False`` when it is unset."""
        module_name = os.environ.get(envvar)
        if not module_name:
            return False
        self.load_module(module_name)
        return True

    def reset(self) -> None:
        """Drop every runtime override, keeping the loaded module and defaults."""
        self._overrides.clear()


def _prefixed(namespace: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key[len(PREFIX):]: value
        for key, value in namespace.items()
        if key.startswith(PREFIX) and key.isupper()
    }
