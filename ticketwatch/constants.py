from __future__ import annotations

import logging
import os

# Remote ticket simulation service (what the UI talks to)
API_URL: str = os.getenv("TICKETWATCH_API_URL", "http://127.0.0.1:8080").rstrip("/")
API_PREFIX = "/api/tickets"
HTTP_TIMEOUT_S: float = float(os.getenv("TICKETWATCH_HTTP_TIMEOUT", "5.0"))

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("TICKETWATCH_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("TICKETWATCH_SERVER_PORT", "8081"))

# Polling cadence
STATUS_POLL_INTERVAL_S: float = float(
    os.getenv("TICKETWATCH_STATUS_INTERVAL_S", "0.5")
)
LOG_POLL_INTERVAL_S: float = float(os.getenv("TICKETWATCH_LOG_INTERVAL_S", "0.5"))

# Chart window
HISTORY_LENGTH = 10
CHART_Y_MAX = 50
CHART_Y_STEP = 5


def _resolve_log_level() -> int:
    s = os.getenv("TICKETWATCH_LOG_LEVEL")
    if s:
        name = s.strip().upper()
        mapping = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return mapping.get(name, logging.WARNING)
    else:
        return logging.WARNING


LOG_LEVEL: int = _resolve_log_level()
