"""Delivery of the report download link."""

import logging
from typing import Optional, Protocol, Sequence

from telereport.core import config


class Notifier(Protocol):
    """Delivery channel that tells recipients a report is ready."""

    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        download_url: str,
        dynamic_content: str,
    ) -> None:
        """Send the report link to the recipients."""
        ...


class LoggingNotifier:
    """Notifier that only logs the notification.

    Used when no mail transport is configured, e.g. from the command line.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        """Initializes the notifier.

        Args:
            logger: Logger the notifications are written to. Defaults to the
                telereport logger.
        """
        self._logger = logger or config.get_logger()

    def send(
        self,
        recipients: Sequence[str],
        subject: str,
        download_url: str,
        dynamic_content: str,
    ) -> None:
        """Log the notification instead of sending it."""
        self._logger.info(
            "%s for %s: %s", subject, ", ".join(recipients), download_url
        )
        self._logger.debug("Notification content: %s", dynamic_content)
