"""
Utilities package initialization.
Contains shared utility functions and classes.
"""

from .config import Config, ConfigurationError, ConnectionConfig
from .logger import ESLLogger, LoggerConfig, log_function_call
