"""
Utilities Module
================

Common utilities shared across the package:
- logger: Context-aware console logging
- config: Environment-driven configuration
"""

from chatpilot.utils.logger import Logger, logger, set_log_level
from chatpilot.utils.config import Config, get_config, load_config

__all__ = ["Logger", "logger", "set_log_level", "Config", "get_config", "load_config"]
