"""Logging setup: custom TRACE level and per-package verbosity."""

import logging

# Custom TRACE level
TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, "TRACE")


def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


# Add trace method to standard Logger class for all instances
logging.Logger.trace = trace_method


def configure_logging(log_level_str: str) -> None:
    """Configure the root logger once; VERBOSE and TRACE open up HTTP and connector details."""
    log_level_str = log_level_str.upper()
    log_level = TRACE if log_level_str == "TRACE" else getattr(logging, log_level_str, logging.INFO)
    if logging.getLogger().hasHandlers():
        return

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )
    root = logging.getLogger()

    if log_level_str == "VERBOSE":
        root_level = logging.DEBUG
        http_level = logging.DEBUG
        connectors_level = TRACE
        sync_level = logging.DEBUG
        root.info("VERBOSE mode enabled: HTTP details and connector traces active for debugging.")
    elif log_level_str == "TRACE":
        root_level = TRACE
        http_level = TRACE
        connectors_level = TRACE
        sync_level = TRACE
    else:
        root_level = log_level
        http_level = logging.WARNING
        connectors_level = logging.DEBUG if log_level <= logging.DEBUG else log_level
        sync_level = root_level

    root.setLevel(root_level)
    logging.getLogger("httpcore").setLevel(http_level)
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("apscheduler").setLevel(logging.WARNING if root_level > logging.DEBUG else root_level)
    logging.getLogger("sheetsync.connectors").setLevel(connectors_level)
    logging.getLogger("sheetsync.services").setLevel(sync_level)
    logging.getLogger("sheetsync.scheduler").setLevel(sync_level)

    if log_level_str == "TRACE":
        root.trace("Trace logging enabled at startup (verbose details).")
    else:
        root.debug("Debug logging enabled at startup.")
