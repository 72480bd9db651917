"""Constants for the background task dispatcher."""

__all__ = [
    "DEFAULT_DISPATCH_BURST",
    "DEFAULT_DISPATCH_RATE_PER_MINUTE",
    "DISPATCHER_SHUTDOWN_TIMEOUT_SEC",
    "SECONDS_PER_MINUTE",
]

DEFAULT_DISPATCH_RATE_PER_MINUTE = 60
DEFAULT_DISPATCH_BURST = 1
SECONDS_PER_MINUTE = 60.0

# How long shutdown waits for queued tasks before discarding them
DISPATCHER_SHUTDOWN_TIMEOUT_SEC = 10.0
