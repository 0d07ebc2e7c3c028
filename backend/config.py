"""Runtime configuration for the site scanner, read from the environment."""

import os

VERSION = "1.2.0"
USER_AGENT = f"site-scanner@{VERSION}"

# "strict" grades every recognised header as mandatory, "lenient" skips absent ones.
RULE_MODE = os.environ.get("SCANNER_RULE_MODE", "strict").lower()

EVENT_LOG_BACKEND = os.environ.get("EVENT_LOG_BACKEND", "file").lower()
EVENT_LOG_PATH = os.environ.get(
    "EVENT_LOG_PATH",
    os.path.join(os.path.dirname(__file__), "data", "events.jsonl"),
)

RATE_LIMIT_COOLDOWN_SECONDS = int(os.environ.get("RATE_LIMIT_COOLDOWN_SECONDS", "10"))
STATS_REFRESH_SECONDS = 10

# Unset means no client-side timeout on the outbound probe.
_probe_timeout = os.environ.get("PROBE_TIMEOUT_SECONDS", "")
PROBE_TIMEOUT_SECONDS = float(_probe_timeout) if _probe_timeout else None

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("LOG_JSON", "true").lower() in ("1", "true", "yes")
