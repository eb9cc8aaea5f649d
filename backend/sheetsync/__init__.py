"""Google Sheets to business system sync engine."""

from sheetsync import logging_config  # noqa: F401  registers the TRACE level

__version__ = "0.3.0"
