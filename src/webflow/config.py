from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any
import os

# Default host of Webflow's API.
DEFAULT_HOST = "https://api.webflow.com"
# Default value of the Accept-Version header.
DEFAULT_VERSION = "1.0.0"
# Seconds allowed for a whole request.
DEFAULT_TIMEOUT = 5.0

# Connection pool defaults.
KEEP_ALIVE = 10.0
MAX_IDLE_CONNS = 5
MAX_IDLE_CONNS_PER_HOST = 5

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Client configuration with environment overlay.

    Every client copies these values at construction time; changing the
    global defaults afterwards does not affect clients that already exist.
    """

    access_token: str | None = None
    host: str = DEFAULT_HOST
    version: str = DEFAULT_VERSION
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float | None = None
    debug: bool = False

    # transport pool
    pool_connections: int = MAX_IDLE_CONNS
    pool_maxsize: int = MAX_IDLE_CONNS_PER_HOST
    keep_alive: float = KEEP_ALIVE


_global_settings = Settings()
_stack: list[Settings] = []


def _from_env(s: Settings) -> Settings:
    timeout = s.timeout
    raw_timeout = os.getenv("WEBFLOW_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            raise ValueError(f"WEBFLOW_TIMEOUT must be a number, got {raw_timeout!r}") from exc
    debug = s.debug
    raw_debug = os.getenv("WEBFLOW_DEBUG")
    if raw_debug is not None:
        debug = raw_debug.strip().lower() in _TRUTHY
    return replace(
        s,
        access_token=os.getenv("WEBFLOW_TOKEN", s.access_token),
        host=os.getenv("WEBFLOW_HOST", s.host),
        version=os.getenv("WEBFLOW_API_VERSION", s.version),
        timeout=timeout,
        debug=debug,
    )


def configure(**kwargs: Any) -> None:
    """Configure defaults for clients created afterwards.

    Example:
        configure(debug=True, connect_timeout=2.0, version="1.0.0")
    """
    global _global_settings
    for k, v in kwargs.items():
        if not hasattr(_global_settings, k):
            raise AttributeError(f"Unknown setting: {k}")
        setattr(_global_settings, k, v)


@contextmanager
def config(**kwargs: Any):
    """Apply settings to clients built inside the block, e.g. a staging host:

        with config(host="https://staging.example", debug=True):
            client = Webflow(token)
    """
    global _global_settings
    _stack.append(replace(_global_settings))
    try:
        configure(**kwargs)
        yield
    finally:
        prev = _stack.pop()
        _global_settings = prev


def settings() -> Settings:
    """Current defaults with WEBFLOW_* environment variables applied on top."""
    return _from_env(_global_settings)
