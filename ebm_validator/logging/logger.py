import logging
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class _ContextFormatter(logging.Formatter):
    """Appends keyword context passed to Log.* calls as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} {pairs}"


class Log:
    """Centralized logging with structured format."""

    _logger: logging.Logger = logging.getLogger("ebm_validator")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        level = log_level.upper()
        cls._logger.setLevel(TRACE if level == "TRACE" else level)
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                _ContextFormatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log an info message."""
        cls._logger.info(message, extra={"context": kwargs})

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log an error message."""
        cls._logger.error(message, extra={"context": kwargs})

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        cls._logger.warning(message, extra={"context": kwargs})

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        cls._logger.debug(message, extra={"context": kwargs})

    @classmethod
    def trace(cls, message: str, **kwargs: object) -> None:
        """Log a trace message (per page/scale decode noise)."""
        cls._logger.log(TRACE, message, extra={"context": kwargs})
