"""Utility modules for logging and common helpers."""

from twinscore.utils.logging import bind_analysis_context, configure_logging, get_logger

__all__ = ["bind_analysis_context", "configure_logging", "get_logger"]
