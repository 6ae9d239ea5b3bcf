"""
Logging Configuration and Setup Utilities

This module turns an explicit :class:`LoggingConfig` object into a
``logging.config.dictConfig`` setup for the ``observer`` logger namespace.
The configuration is handed to the observer at construction; there is no
module-level log level to toggle.
"""

import logging
import logging.config
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .structured_logging import StructuredJSONFormatter, StructuredLogger

ROOT_LOGGER_NAME = "observer"


class LogFormat(Enum):
    """Available log formats."""
    JSON = "json"
    PLAIN = "plain"
    COLORED = "colored"


class LogOutput(Enum):
    """Available log outputs."""
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


@dataclass
class LoggingConfig:
    """Configuration for logging setup."""
    level: str = "INFO"
    format_type: LogFormat = LogFormat.PLAIN
    output: LogOutput = LogOutput.CONSOLE
    log_file: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    include_traceback: bool = True
    include_extra: bool = True
    console_colors: bool = True
    logger_name: str = ROOT_LOGGER_NAME
    propagate: bool = False

    def __post_init__(self):
        self.level = str(self.level).upper()
        if isinstance(self.format_type, str):
            self.format_type = LogFormat(self.format_type.lower())
        if isinstance(self.output, str):
            self.output = LogOutput(self.output.lower())


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        formatted = super().format(record)
        return formatted.replace(
            record.levelname,
            f"{color}{record.levelname}{reset}",
            1
        )


class StructuredLoggingSetup:
    """Builds the dictConfig for a :class:`LoggingConfig`."""

    PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

    def __init__(self, config: LoggingConfig):
        self.config = config

    def build(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {},
            'handlers': {},
            'loggers': {},
        }
        self._setup_formatters(config)
        handlers = self._setup_handlers(config)
        config['loggers'][self.config.logger_name] = {
            'level': self.config.level,
            'handlers': handlers,
            'propagate': self.config.propagate,
        }
        return config

    def setup_logging(self) -> Dict[str, Any]:
        """Build and apply the logging configuration."""
        config = self.build()
        logging.config.dictConfig(config)
        return config

    def _setup_formatters(self, config: Dict[str, Any]):
        config['formatters']['json'] = {
            '()': StructuredJSONFormatter,
            'include_extra': self.config.include_extra,
            'include_traceback': self.config.include_traceback,
            'sort_keys': True
        }
        config['formatters']['colored'] = {
            '()': ColoredFormatter,
            'format': self.PLAIN_FORMAT,
            'datefmt': self.DATE_FORMAT
        }
        config['formatters']['plain'] = {
            'format': self.PLAIN_FORMAT,
            'datefmt': self.DATE_FORMAT
        }

    def _setup_handlers(self, config: Dict[str, Any]) -> list:
        handlers = []

        if self.config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
            config['handlers']['console'] = {
                'class': 'logging.StreamHandler',
                'level': self.config.level,
                'formatter': self._get_console_formatter(),
                'stream': 'ext://sys.stdout'
            }
            handlers.append('console')

        if self.config.output in (LogOutput.FILE, LogOutput.BOTH):
            if not self.config.log_file:
                self.config.log_file = str(Path("logs") / "observer.log")
            Path(self.config.log_file).parent.mkdir(parents=True, exist_ok=True)

            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.config.level,
                'formatter': 'json' if self.config.format_type == LogFormat.JSON else 'plain',
                'filename': self.config.log_file,
                'maxBytes': self.config.max_file_size,
                'backupCount': self.config.backup_count,
                'encoding': 'utf-8'
            }
            handlers.append('file')

        return handlers

    def _get_console_formatter(self) -> str:
        if self.config.format_type == LogFormat.JSON:
            return 'json'
        elif self.config.format_type == LogFormat.COLORED and self.config.console_colors:
            return 'colored'
        return 'plain'


class LoggingManager:
    """Applies a logging configuration and hands out component loggers."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config
        self._is_configured = False

    def configure(self, config: Optional[LoggingConfig] = None) -> LoggingConfig:
        """Configure logging with provided or stored configuration."""
        config = config or self.config or LoggingConfig()
        self.config = config
        StructuredLoggingSetup(config).setup_logging()
        self._is_configured = True

        logging.getLogger(__name__).debug(
            "Logging configured",
            extra={
                'extra_data': {
                    'format': config.format_type.value,
                    'output': config.output.value,
                    'level': config.level,
                }
            }
        )
        return config

    def get_logger(self, component: str) -> logging.Logger:
        """Get the logger of a pipeline component below the configured namespace."""
        base = self.config.logger_name if self.config else ROOT_LOGGER_NAME
        return logging.getLogger(f"{base}.{component}")

    def get_structured_logger(self, component: str) -> StructuredLogger:
        base = self.config.logger_name if self.config else ROOT_LOGGER_NAME
        return StructuredLogger(f"{base}.{component}", component)

    def is_configured(self) -> bool:
        return self._is_configured


def setup_logging(
    level: str = "INFO",
    format_type: Union[str, LogFormat] = LogFormat.PLAIN,
    output: Union[str, LogOutput] = LogOutput.CONSOLE,
    log_file: Optional[str] = None,
    **kwargs
) -> LoggingManager:
    """Convenience function to configure logging and return its manager."""
    config = LoggingConfig(
        level=level,
        format_type=format_type,
        output=output,
        log_file=log_file,
        **kwargs
    )
    manager = LoggingManager(config)
    manager.configure()
    return manager
