"""
Runtime settings for sqlpushdown.

Settings are module globals read at call time: the package logger, the
pushdown switch, the identifier quote character and the failure
telemetry buffer. ``reset()`` restores the defaults.
"""

import logging
from typing import Optional

LOGGER_NAME = "sqlpushdown"

# e.g. "D sqlpushdown [Pushdown] Filter -> FilterQuery SUBQUERY_1"
_LOG_FORMAT = "%(levelname).1s %(name)s %(message)s"

_logger: Optional[logging.Logger] = None
_log_level: int = logging.WARNING


def get_logger() -> logging.Logger:
    """Package logger, given one stderr handler the first time it is requested."""
    global _logger

    if _logger is None:
        logger = logging.getLogger(LOGGER_NAME)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            logger.addHandler(handler)
        logger.setLevel(_log_level)
        _logger = logger

    return _logger


def set_log_level(level: int) -> None:
    """
    Change how much the compiler logs.

    Example:
        >>> import logging
        >>> from sqlpushdown import config
        >>> config.set_log_level(logging.DEBUG)  # every plan node and its query
    """
    global _log_level
    _log_level = level
    get_logger().setLevel(level)


def get_log_level() -> int:
    return _log_level


def enable_debug(enabled: bool = True) -> None:
    """Log at DEBUG, or back at WARNING when ``enabled`` is False."""
    set_log_level(logging.DEBUG if enabled else logging.WARNING)


# =============================================================================
# PUSHDOWN CONFIGURATION
# =============================================================================

_pushdown_enabled: bool = True
_quote_char: str = '"'


def is_pushdown_enabled() -> bool:
    """Check if plans should be offered to the pushdown compiler at all."""
    return _pushdown_enabled


def enable_pushdown() -> None:
    """
    Enable SQL pushdown.

    Example:
        >>> from sqlpushdown import config
        >>> config.enable_pushdown()
    """
    global _pushdown_enabled
    _pushdown_enabled = True


def disable_pushdown() -> None:
    """
    Disable SQL pushdown.

    When disabled, PushdownStrategy.apply() always returns no plans and the
    caller executes every plan locally.
    """
    global _pushdown_enabled
    _pushdown_enabled = False


def get_quote_char() -> str:
    """Get the identifier quote character used when rendering statements."""
    return _quote_char


def set_quote_char(quote_char: str) -> None:
    """
    Set the identifier quote character.

    Args:
        quote_char: Single character such as '"' or '`'
    """
    global _quote_char
    if not isinstance(quote_char, str) or len(quote_char) != 1:
        raise ValueError(f"Quote character must be a single character, got {quote_char!r}")
    _quote_char = quote_char


# =============================================================================
# TELEMETRY CONFIGURATION
# =============================================================================

_telemetry_enabled: bool = True
_telemetry_buffer_size: int = 100


def is_telemetry_enabled() -> bool:
    """Check if push-down failure messages are recorded."""
    return _telemetry_enabled


def enable_telemetry() -> None:
    """Record push-down failure messages (default)."""
    global _telemetry_enabled
    _telemetry_enabled = True


def disable_telemetry() -> None:
    """Stop recording push-down failure messages."""
    global _telemetry_enabled
    _telemetry_enabled = False


def get_telemetry_buffer_size() -> int:
    """Get the maximum number of buffered telemetry messages."""
    return _telemetry_buffer_size


def set_telemetry_buffer_size(size: int) -> None:
    """
    Set the maximum number of buffered telemetry messages.

    Older messages are dropped once the buffer is full.

    Args:
        size: Positive buffer capacity
    """
    global _telemetry_buffer_size
    if size <= 0:
        raise ValueError("Telemetry buffer size must be positive")
    _telemetry_buffer_size = size


def reset() -> None:
    """Restore every setting to its default."""
    global _pushdown_enabled, _quote_char, _telemetry_enabled, _telemetry_buffer_size
    _pushdown_enabled = True
    _quote_char = '"'
    _telemetry_enabled = True
    _telemetry_buffer_size = 100
    set_log_level(logging.WARNING)


class PushdownConfig:
    """
    Configuration object for sqlpushdown.

    Exposes the module-level settings as properties.

    Example:
        >>> from sqlpushdown import config
        >>> import logging
        >>>
        >>> config.config.log_level = logging.DEBUG
        >>> config.config.pushdown_enabled = False
    """

    @property
    def log_level(self) -> int:
        """Get current log level."""
        return _log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        set_log_level(level)

    def enable_debug(self, enabled: bool = True) -> None:
        enable_debug(enabled)

    # ========== Pushdown ==========

    @property
    def pushdown_enabled(self) -> bool:
        return is_pushdown_enabled()

    @pushdown_enabled.setter
    def pushdown_enabled(self, enabled: bool) -> None:
        if enabled:
            enable_pushdown()
        else:
            disable_pushdown()

    @property
    def quote_char(self) -> str:
        return get_quote_char()

    @quote_char.setter
    def quote_char(self, quote_char: str) -> None:
        set_quote_char(quote_char)

    # ========== Telemetry ==========

    @property
    def telemetry_enabled(self) -> bool:
        return is_telemetry_enabled()

    @telemetry_enabled.setter
    def telemetry_enabled(self, enabled: bool) -> None:
        if enabled:
            enable_telemetry()
        else:
            disable_telemetry()

    @property
    def telemetry_buffer_size(self) -> int:
        return get_telemetry_buffer_size()

    @telemetry_buffer_size.setter
    def telemetry_buffer_size(self, size: int) -> None:
        set_telemetry_buffer_size(size)


# Global config instance
config = PushdownConfig()
