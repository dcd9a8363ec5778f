"""Custom exceptions for sndchk."""

from sndchk.core import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class that automatically logs messages."""

    def __init__(self, message: str) -> None:
        """Initialize a new instance of the LoggedException class.

        Args:
            message: The message to display.
        """
        logger.error(message)
        super().__init__(message)


class ConfigError(LoggedException):
    """The monitoring configuration is invalid."""

    pass


class DeviceNotFoundError(LoggedException):
    """The requested pcm unit is not present in the device enumeration."""

    pass


class SndchkError(Exception):
    """Base class for recoverable conditions.

    These degrade a single feature or a single poll and are never fatal.
    """

    pass


class ResolutionGapError(SndchkError, LookupError):
    """A device resolution step found no match."""

    pass


class ParseError(SndchkError, ValueError):
    """An expected token or field was absent from utility output."""

    pass


class DeviceUnavailableError(SndchkError):
    """The USB statistics query returned nothing, the device cannot be measured."""

    pass
