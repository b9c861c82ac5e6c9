"""Custom exceptions for telereport."""

from telereport.core import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class that automatically logs messages."""

    def __init__(self, message: str) -> None:
        """Initialize a new instance of the LoggedException class.

        Args:
            message: The message to display.
        """
        logger.exception(message)
        super().__init__(message)


class ArchiveWriteError(LoggedException):
    """The report archive could not be written or compressed."""

    pass


class InvalidSampleBufferError(LoggedException):
    """A sample buffer does not consist of whole (value, timestamp) records."""

    pass


class DashboardNotFoundError(LoggedException):
    """The user has no dashboard with the requested id."""

    pass


class InvalidTaskFileError(LoggedException):
    """A report task file could not be parsed."""

    pass


class DuplicateEntryError(Exception):
    """An archive entry with the same name was already written.

    Not logged on construction: the archive turns it into a warning.
    """

    pass
