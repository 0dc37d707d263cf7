"""Default configuration values for polycodec."""

DEFAULTS: dict[str, object] = {
    # Codec used when a call site does not name one ("json" or "msgpack")
    "DEFAULT_CODEC": "json",
    # JSON codec options
    "JSON_INDENT": None,
    # MessagePack codec options
    "MSGPACK_USE_BIN_TYPE": True,
    # Tracing
    "TRACING_ENABLED": True,
    "TRACER_NAME": "polycodec",
}
