"""
Tunables and protocol constants for the IRC client

Values read through ``_env`` can be overridden with an environment variable of
the same name; an unparsable override is reported and the default kept.
"""

import os
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")


def _env(name: str, default: T, parse: Callable[[str], T]) -> T:
    """Read ``name`` from the environment and convert it with ``parse``.

    Args:
        name: Environment variable name, identical to the constant's name.
        default: Value used when the variable is unset or invalid.
        parse: Conversion applied to the raw string (``int``, ``float``).
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError:
        print(f"Warning: {name}='{raw}' is not a valid {parse.__name__}, using {default}")
        return default


# Protocol
IRC_DEFAULT_PORT = 6667
IRC_DEFAULT_REAL_NAME = "GoKyle IRC client"
IRC_DEFAULT_HOST = "*"
IRC_LINE_TERMINATOR = "\r\n"
IRC_IDENTIFY_SERVICE = "NickServ"
IRC_JOIN_GREETING = "hello"

# Reads: one chunk per call, or IRC_READ_ALL to read until the peer closes
IRC_READ_CHUNK = _env("IRC_READ_CHUNK", 4096, int)
IRC_READ_ALL = 0
IRC_READ_TIMEOUT_SECONDS = _env("IRC_READ_TIMEOUT_SECONDS", 3.0, float)

# Reconnect policy, used only when the config sets "reconnect"
RECONNECT_MAX_ATTEMPTS = _env("RECONNECT_MAX_ATTEMPTS", 5, int)  # first attempt included
INITIAL_BACKOFF_SECONDS = _env("INITIAL_BACKOFF_SECONDS", 1.0, float)
MAX_BACKOFF_SECONDS = _env("MAX_BACKOFF_SECONDS", 30.0, float)

# Grace period for in-flight PONG tasks once the receive loop ends
PROBE_TASK_SHUTDOWN_TIMEOUT_SECONDS = _env(
    "PROBE_TASK_SHUTDOWN_TIMEOUT_SECONDS", 2.0, float
)
