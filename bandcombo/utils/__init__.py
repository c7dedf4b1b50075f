"""Utility modules for bandcombo."""

from bandcombo.utils.log_levels import configure_logging, log_level_name, parse_log_level

__all__ = ["configure_logging", "log_level_name", "parse_log_level"]
