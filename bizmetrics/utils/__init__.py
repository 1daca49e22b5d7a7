"""Utility modules for logging and common helpers."""

from bizmetrics.utils.logging import analysis_context, configure_logging, get_logger, log_event

__all__ = ["analysis_context", "configure_logging", "get_logger", "log_event"]
