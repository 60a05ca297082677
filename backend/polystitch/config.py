"""
Runtime configuration for the polystitch backend.

Settings are read once from environment variables when this module is
imported.  Every value has a default so the service runs without any
configuration; the variables exist so deployments and tests can tune
the quantisation scale, the session registry capacity and logging
without code changes.

Variables:
    POLYSTITCH_SCALE: Default quantisation scale for new assemblers.
        Keys are ``round(coordinate * scale)`` so the default of 500
        corresponds to a precision of 1/500 model units.
    POLYSTITCH_MAX_SESSIONS: Maximum number of live sessions kept by
        the in-memory registry before the least recently used one is
        evicted.
    POLYSTITCH_DEBUG: When truthy the assembler logs every ingested
        segment and the decision taken for it.
    POLYSTITCH_HOST / POLYSTITCH_PORT: Bind address used by ``run.py``.
    POLYSTITCH_LOG_LEVEL: Root log level used by ``run.py``.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if not value > 0.0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_SCALE: float = _env_float("POLYSTITCH_SCALE", 500.0)

MAX_SESSIONS: int = _env_int("POLYSTITCH_MAX_SESSIONS", 64)

ASSEMBLY_DEBUG: bool = _env_flag("POLYSTITCH_DEBUG")

HOST: str = os.getenv("POLYSTITCH_HOST", "0.0.0.0")
PORT: int = _env_int("POLYSTITCH_PORT", 8000)
LOG_LEVEL: str = (os.getenv("POLYSTITCH_LOG_LEVEL") or "INFO").strip().upper()
