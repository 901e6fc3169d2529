"""Shared configuration for the RCM workflow rules engine.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Action dispatch
# Unset means handlers may run as long as they like
ACTION_TIMEOUT_SECONDS = _optional_float("ACTION_TIMEOUT_SECONDS")
# Upper bound for a single action's delay_ms (5 minutes)
MAX_ACTION_DELAY_MS = int(os.getenv("MAX_ACTION_DELAY_MS", "300000"))

# Rule authoring defaults
DEFAULT_RULE_PRIORITY = int(os.getenv("DEFAULT_RULE_PRIORITY", "100"))

# HTTP API
DRY_RUN_RATE_LIMIT = os.getenv("DRY_RUN_RATE_LIMIT", "30/minute")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if origin.strip()
]
