#!/usr/bin/env python3
"""
PeerChat Logging Configuration

Centralized logging setup for consistent formatting across the project.
Console logs go to stderr so they never interleave with the chat display on
stdout. File logging is enabled by pointing PEERCHAT_LOG_DIR at a directory.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.error("Decode failed", extra={"peer_name": "alice", "msg_type": "Text"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Dict, Any
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        # Add color to level name
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"

        return super().format(record)


class GenericFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        # Add session context if available
        chat_context = []

        # Extract common session fields from extra data
        if hasattr(record, 'peer_name'):
            chat_context.append(f"peer={record.peer_name}")
        if hasattr(record, 'msg_type'):
            chat_context.append(f"msg={record.msg_type}")
        if hasattr(record, 'addr'):
            chat_context.append(f"addr={record.addr}")

        # Add context to message if present
        if chat_context:
            context_str = f"[{' '.join(chat_context)}] "
            record.msg = f"{context_str}{record.msg}"

        return super().format(record)


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Session ready")

        # With context
        logger.debug("Frame received", extra={
            "peer_name": "alice",
            "msg_type": "PeerNameAssign",
            "addr": "127.0.0.1:8080",
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def set_log_level(level: str) -> None:
    """Change the level of every logger handed out by get_logger."""
    log_level = _get_log_level(level)
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(log_level)


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    # Determine log level
    log_level = _get_log_level(level)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    # Environment detection
    is_development = _is_development()
    if is_development:
        _add_console_handler(logger, colored=True)
    else:
        # Production: Clean console logging
        _add_console_handler(logger, colored=False)

    log_dir = os.getenv('PEERCHAT_LOG_DIR')
    if log_dir:
        _add_file_handler(logger, Path(log_dir))

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    level = level or os.getenv('PEERCHAT_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.WARNING)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.WARNING


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development']


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt='[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)

    if colored and _supports_color():
        formatter = ColoredFormatter(
            fmt=fmt,
            datefmt='%H:%M:%S'
        )
    else:
        formatter = GenericFormatter(
            fmt=fmt,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger, log_dir: Path) -> None:
    """Add file handler for persistent logging"""

    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "peerchat.log"
    handler = logging.FileHandler(log_file)

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stderr must be a terminal
    if not (hasattr(sys.stderr, "isatty") and sys.stderr.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    # Windows-specific check
    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return os.getenv("ANSICON") is not None or os.getenv("WT_SESSION") is not None or os.getenv("TERM_PROGRAM") == "vscode" or "WindowsTerminal" in os.getenv("TERM", "")

    return True
# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "WARNING") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)
    set_log_level(level)


def log_chat_message(logger: logging.Logger, level: str, message: str,
                     frame: Optional[Dict[str, Any]] = None,
                     **context: Any) -> None:
    """
    Log a protocol message with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message
        frame: Message.to_dict() output for automatic context extraction
        **context: Additional context fields

    Example:
        log_chat_message(logger, "debug", "Sending frame",
                         frame=msg.to_dict(), addr="127.0.0.1:8080")
    """

    extra_context = {}

    # Extract context from the frame
    if frame:
        msg_type = frame.get('msg_type')
        if isinstance(msg_type, dict):
            msg_type = next(iter(msg_type), None)
        extra_context.update({
            'msg_type': msg_type,
            'peer_name': frame.get('src_name'),
        })

    # Add additional context
    extra_context.update(context)

    # Log with context
    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
