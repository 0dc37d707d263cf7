"""Configuration for polycodec.

``settings`` is the process-wide instance read by codecs and tracing at call
time. It is seeded from the module named by ``POLYCODEC_CONFIG_MODULE`` when
that environment variable is set.
"""

from .defaults import DEFAULTS
from .settings import CONFIG_MODULE_ENVVAR, Settings

settings = Settings()
settings.load_from_envvar()

__all__ = ["CONFIG_MODULE_ENVVAR", "DEFAULTS", "Settings", "settings"]
