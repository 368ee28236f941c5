"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 4000
DB_TIMEOUT_SECONDS: Final = 3.0

# Rate limiter defaults (token bucket)
LIMITER_RPS: Final = 2.0
LIMITER_BURST: Final = 4
LIMITER_IDLE_SECONDS: Final = 180.0
LIMITER_SWEEP_INTERVAL: Final = 60.0
