"""Module containing the report archive writer."""

import codecs
import contextlib
import datetime
import logging
import pathlib
import zipfile
import zlib
from types import TracebackType
from typing import IO, Iterator, Optional, Type, Union

from telereport.core import config, exceptions

REPORT_ENCODING = "utf-16"


def user_report_dir(
    reports_dir: Union[pathlib.Path, str],
    email: str,
    app_name: str,
    report_id: int,
    date: datetime.date,
) -> pathlib.Path:
    """Folder of one report run, '<reports_dir>/<email>_<app>/<report id>/<date>'.

    The parent directories are created; the folder itself is not, as it is
    used as the stem of the archive path.
    """
    folder = (
        pathlib.Path(reports_dir) / f"{email}_{app_name}" / str(report_id) / str(date)
    )
    folder.parent.mkdir(parents=True, exist_ok=True)
    return folder


def archive_path(folder: pathlib.Path, extension: str) -> pathlib.Path:
    """Archive path '<folder>.<extension>'."""
    return folder.with_name(f"{folder.name}.{extension}")


class ReportArchive:
    """Zip archive of report CSV files, entries encoded in REPORT_ENCODING.

    Use as a context manager: the file and the zip container are opened
    together on enter and both closed on exit, also when an error occurs.
    Entry names are unique; a second entry with a known name is dropped with
    a warning.

    Attributes:
        output: Path of the archive file.
    """

    def __init__(
        self,
        output: pathlib.Path,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initializes the archive, without opening it.

        Args:
            output: Path of the archive file. Its directory must exist.
            logger: Logger for duplicate entry warnings. Defaults to the
                telereport logger.
        """
        self.output = output
        self._logger = logger or config.get_logger()
        self._zip: Optional[zipfile.ZipFile] = None
        self._entry: Optional[IO[bytes]] = None
        self._encoder: Optional[codecs.IncrementalEncoder] = None
        self._names: set[str] = set()

    def __enter__(self) -> "ReportArchive":
        """Open the archive file."""
        with self._guard():
            self._zip = zipfile.ZipFile(
                self.output, "w", compression=zipfile.ZIP_DEFLATED
            )
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        """Close any open entry, then the archive."""
        self.close()

    @property
    def entry_names(self) -> frozenset[str]:
        """Names of the entries written so far."""
        return frozenset(self._names)

    @contextlib.contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except (OSError, zlib.error) as exc_info:
            raise exceptions.ArchiveWriteError(
                f"Error compressing report file {self.output}: {exc_info}"
            ) from exc_info

    def _container(self) -> zipfile.ZipFile:
        if self._zip is None:
            raise RuntimeError("Report archive is not open.")
        return self._zip

    def _claim(self, name: str) -> None:
        if name in self._names:
            raise exceptions.DuplicateEntryError(f"Duplicate zip entry {name}.")
        self._names.add(name)

    def _try_claim(self, name: str) -> bool:
        try:
            self._claim(name)
        except exceptions.DuplicateEntryError:
            self._logger.warning(
                "Duplicate zip entry %s. Wrong report configuration.", name
            )
            return False
        return True

    def begin_entry(self, name: str) -> bool:
        """Start a streamed entry.

        Args:
            name: Entry name.

        Returns:
            False if an entry with this name already exists. Nothing may be
            written for it then.

        Raises:
            RuntimeError: If another entry is still open.
            ArchiveWriteError: If the entry cannot be created.
        """
        container = self._container()
        if self._entry is not None:
            raise RuntimeError("Close the current entry before starting a new one.")
        if not self._try_claim(name):
            return False
        with self._guard():
            self._entry = container.open(name, "w", force_zip64=True)
        self._encoder = codecs.getincrementalencoder(REPORT_ENCODING)()
        return True

    def write(self, text: str) -> None:
        """Append text to the open entry.

        Raises:
            RuntimeError: If no entry is open.
            ArchiveWriteError: If compression or writing fails.
        """
        if self._entry is None or self._encoder is None:
            raise RuntimeError("No archive entry is open.")
        with self._guard():
            self._entry.write(self._encoder.encode(text))

    def end_entry(self) -> None:
        """Finish the open entry. Does nothing if no entry is open."""
        if self._entry is None or self._encoder is None:
            return
        entry, encoder = self._entry, self._encoder
        self._entry, self._encoder = None, None
        with self._guard():
            try:
                entry.write(encoder.encode("", final=True))
            finally:
                entry.close()

    def write_whole_entry(self, name: str, data: bytes) -> bool:
        """Write a complete entry in one call.

        Args:
            name: Entry name.
            data: Already encoded entry content.

        Returns:
            False if an entry with this name already exists and data was
            dropped.

        Raises:
            ArchiveWriteError: If compression or writing fails.
        """
        container = self._container()
        if self._entry is not None:
            raise RuntimeError("Close the current entry before writing a new one.")
        if not self._try_claim(name):
            return False
        with self._guard():
            container.writestr(name, data)
        return True

    def close(self) -> None:
        """Close any open entry and the archive file."""
        if self._zip is None:
            return
        container = self._zip
        try:
            self.end_entry()
        finally:
            self._zip = None
            with self._guard():
                container.close()
