"""
Logging and Error Tracking

This module provides centralized logging configuration for fetchoraw and an
error tracker that records resolution failures (URL, policy applied, error)
so build tools can summarize what was passed through instead of resolved.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from typing import Optional, Dict, Any, List
from pathlib import Path


APP_NAME = "fetchoraw"


class FetchorawLogger:
    """
    Logging setup for the fetchoraw package.

    Always logs to the console; when a log directory is given it also keeps
    a rotating debug log and a separate rotating error log there.
    """

    def __init__(self, log_dir: Optional[str] = None, app_name: str = APP_NAME):
        """
        Initialize the logging system.

        Args:
            log_dir: Directory to store log files (None = console only)
            app_name: Root logger name; package modules log beneath it
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.app_name = app_name
        self.loggers: Dict[str, logging.Logger] = {}

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Set up the package logger with console and optional file handlers.

        Args:
            level: Console logging level (default: INFO)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(logging.DEBUG)

        # Prevent duplicate handlers
        if logger.handlers:
            for handler in logger.handlers:
                if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                    handler.setLevel(level)
            self.loggers['main'] = logger
            return logger

        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

        if self.log_dir is not None:
            file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}.log",
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)

            error_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{self.app_name}_errors.log",
                maxBytes=5*1024*1024,  # 5MB
                backupCount=3,
                encoding='utf-8'
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(detailed_formatter)

            logger.addHandler(file_handler)
            logger.addHandler(error_handler)

        self.loggers['main'] = logger
        return logger

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            name: Component name, or a dotted module name already under the package

        Returns:
            Logger instance
        """
        full_name = name if name.startswith(f"{self.app_name}.") else f"{self.app_name}.{name}"

        if full_name not in self.loggers:
            self.loggers[full_name] = logging.getLogger(full_name)

        return self.loggers[full_name]


class ErrorTracker:
    """
    Records failures that a resolver's on_error policy turned into fallbacks.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.errors: List[Dict[str, Any]] = []
        self.warnings: List[Dict[str, Any]] = []

    def log_error(self,
                  error: Exception,
                  url: Optional[str] = None,
                  policy: Optional[str] = None) -> str:
        """
        Record a resolution failure.

        Args:
            error: The exception that occurred
            url: URL being resolved
            policy: on_error policy that handled it

        Returns:
            Error ID for tracking
        """
        error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.errors):03d}"

        self.errors.append({
            'id': error_id,
            'timestamp': datetime.now(),
            'type': type(error).__name__,
            'message': str(error),
            'url': url,
            'policy': policy,
        })

        log_message = f"[{error_id}] {type(error).__name__}: {error}"
        if url:
            log_message += f" (URL: {url})"
        if policy:
            log_message += f" (on_error: {policy})"
        self.logger.warning(log_message)

        return error_id

    def log_warning(self, message: str, url: Optional[str] = None) -> str:
        warning_id = f"WARN_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{len(self.warnings):03d}"

        self.warnings.append({
            'id': warning_id,
            'timestamp': datetime.now(),
            'message': message,
            'url': url,
        })

        log_message = f"[{warning_id}] {message}"
        if url:
            log_message += f" (URL: {url})"
        self.logger.warning(log_message)

        return warning_id

    def get_error_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all recorded errors and warnings.

        Returns:
            Dictionary with counts, counts per error type and failed URLs
        """
        type_counts: Dict[str, int] = {}
        for error in self.errors:
            type_counts[error['type']] = type_counts.get(error['type'], 0) + 1
        return {
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings),
            'error_types': type_counts,
            'failed_urls': [e['url'] for e in self.errors if e['url']],
        }

    def save_error_report(self, output_path: str):
        """
        Save a plain-text error report.

        Args:
            output_path: Path where the report should be saved
        """
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("FETCHORAW ERROR REPORT\n")
            f.write("=" * 50 + "\n\n")
            f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"Total Errors: {len(self.errors)}\n")
            f.write(f"Total Warnings: {len(self.warnings)}\n\n")

            for error in self.errors:
                f.write(f"[{error['id']}] {error['timestamp']}\n")
                f.write(f"Type: {error['type']}\n")
                f.write(f"Message: {error['message']}\n")
                if error['url']:
                    f.write(f"URL: {error['url']}\n")
                if error['policy']:
                    f.write(f"Policy: {error['policy']}\n")
                f.write("-" * 50 + "\n")

            for warning in self.warnings:
                f.write(f"[{warning['id']}] {warning['timestamp']}\n")
                f.write(f"Message: {warning['message']}\n")
                if warning['url']:
                    f.write(f"URL: {warning['url']}\n")
                f.write("-" * 30 + "\n")

        self.logger.info(f"Error report saved to: {output_path}")


# Global logger instance
_logger_instance: Optional[FetchorawLogger] = None


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Name of the component (optional)

    Returns:
        Logger instance
    """
    global _logger_instance

    if _logger_instance is None:
        _logger_instance = FetchorawLogger()

    if name:
        return _logger_instance.get_logger(name)
    return logging.getLogger(_logger_instance.app_name)


def initialize_logging(log_dir: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Initialize the global logging system.

    Args:
        log_dir: Directory for log files (None = console only)
        level: Console logging level
    """
    global _logger_instance
    _logger_instance = FetchorawLogger(log_dir)
    return _logger_instance.setup_logger(level)


def create_error_tracker(logger_name: Optional[str] = None) -> ErrorTracker:
    """
    Create an error tracker instance.

    Args:
        logger_name: Name of the logger to use

    Returns:
        ErrorTracker instance
    """
    return ErrorTracker(get_logger(logger_name))
