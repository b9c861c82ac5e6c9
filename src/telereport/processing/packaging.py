"""Package report rows into the archive using one of three layouts."""

import abc
import logging
import pathlib
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import Optional

import polars as pl

from telereport.core import config, models
from telereport.io.readers import readers
from telereport.io.writers import writers
from telereport.processing import formatting, names
from telereport.processing import window as report_window


@dataclass(frozen=True)
class PackagingContext:
    """Everything a packager needs for one run.

    Attributes:
        user: Owner of the report.
        dash_id: Id of the dashboard the report belongs to.
        dashboard: The dashboard, used to resolve device names.
        report: The report definition. Not modified by packaging.
        window: Aligned window start and fetch count of the run.
        sample_source: Storage the pin samples are fetched from.
        logger: Logger for progress messages.
    """

    user: models.User
    dash_id: int
    dashboard: models.Dashboard
    report: models.Report
    window: report_window.ReportWindow
    sample_source: readers.SampleSource
    logger: logging.Logger = field(default_factory=config.get_logger)

    def fetch(
        self, device_id: int, data_stream: models.ReportDataStream
    ) -> Optional[pl.DataFrame]:
        """Fetch and decode the samples of one (device, pin) pair.

        Returns:
            The decoded samples, or None if the stream has no pin type or the
            source has no data.
        """
        if data_stream.pin_type is None:
            return None
        buffer = self.sample_source.fetch(
            self.user,
            self.dash_id,
            device_id,
            data_stream.pin_type,
            data_stream.pin,
            self.window.fetch_count,
            self.report.granularity,
            0,
        )
        if not buffer:
            self.logger.debug(
                "No data for device %s, pin %s.", device_id, data_stream.format_pin()
            )
            return None
        return readers.decode_samples(buffer)


def valid_sources(report: models.Report) -> Generator[models.ReportSource, None, None]:
    """Yield the sources of a report that are valid."""
    for source in report.sources:
        if source.is_valid:
            yield source


def valid_streams(
    source: models.ReportSource,
) -> Generator[models.ReportDataStream, None, None]:
    """Yield the data streams of a source that are valid."""
    for data_stream in source.data_streams:
        if data_stream.is_valid:
            yield data_stream


def device_streams(
    report: models.Report,
) -> Generator[tuple[int, models.ReportDataStream], None, None]:
    """Yield every (device id, data stream) pair of the valid sources."""
    for source in valid_sources(report):
        for device_id in source.device_ids:
            for data_stream in valid_streams(source):
                yield device_id, data_stream


class AbstractPackager(abc.ABC):
    """Interface of the archive layouts."""

    @abc.abstractmethod
    def package(
        self, archive: writers.ReportArchive, context: PackagingContext
    ) -> bool:
        """Write the report into the archive.

        Returns:
            Whether at least one data row was written.
        """
        pass


class MergedPackager(AbstractPackager):
    """All rows in one '<report name>.csv' entry, labeled with pin and device."""

    def package(
        self, archive: writers.ReportArchive, context: PackagingContext
    ) -> bool:
        """Write every (device, pin) pair into the single report entry."""
        entry_name = names.report_file_name(context.report)
        if not archive.begin_entry(entry_name):
            return False

        formatter = context.report.make_formatter()
        row_count = 0
        for device_id, data_stream in device_streams(context.report):
            samples = context.fetch(device_id, data_stream)
            if samples is None:
                continue
            row_count += formatting.write_labeled_rows(
                archive,
                samples,
                data_stream.format_pin(),
                names.csv_device_name(context.dashboard, device_id),
                context.window.start_from,
                formatter,
            )
        archive.end_entry()
        return row_count > 0


class PerDevicePackager(AbstractPackager):
    """One '<device>_<id>.csv' entry per device, rows labeled with the pin."""

    def package(
        self, archive: writers.ReportArchive, context: PackagingContext
    ) -> bool:
        """Write one entry per device of every valid source."""
        formatter = context.report.make_formatter()
        row_count = 0
        for source in valid_sources(context.report):
            for device_id in source.device_ids:
                entry_name = names.device_file_name(
                    names.device_file_name_part(context.dashboard, device_id),
                    device_id,
                )
                if not archive.begin_entry(entry_name):
                    continue
                for data_stream in valid_streams(source):
                    samples = context.fetch(device_id, data_stream)
                    if samples is None:
                        continue
                    row_count += formatting.write_device_rows(
                        archive,
                        samples,
                        data_stream.format_pin(),
                        context.window.start_from,
                        formatter,
                    )
                archive.end_entry()
        return row_count > 0


class PerDevicePerPinPackager(AbstractPackager):
    """One '<device>_<id>_<pin>.csv' entry per (device, pin) pair with data.

    Pairs without rows in the window get no entry.
    """

    def package(
        self, archive: writers.ReportArchive, context: PackagingContext
    ) -> bool:
        """Write one entry per (device, pin) pair that has rows."""
        formatter = context.report.make_formatter()
        at_least_one = False
        for device_id, data_stream in device_streams(context.report):
            samples = context.fetch(device_id, data_stream)
            if samples is None:
                continue
            csv_text, has_rows = formatting.format_pin_rows(
                samples, context.window.start_from, formatter
            )
            if not has_rows:
                continue
            entry_name = names.device_and_pin_file_name(
                names.device_file_name_part(context.dashboard, device_id),
                device_id,
                data_stream,
            )
            if archive.write_whole_entry(
                entry_name, csv_text.encode(writers.REPORT_ENCODING)
            ):
                at_least_one = True
        return at_least_one


class PackagingDispatcher:
    """Class used to select and run the packager of a report output format."""

    _packager: AbstractPackager

    def __init__(self, output: Optional[models.ReportOutput]) -> None:
        """Initializes the dispatcher with the packager for the output format.

        Args:
            output: The report output format. The legacy EXCEL_TAB_PER_DEVICE
                is packaged as merged CSV; None and unknown formats as one file
                per device and pin.
        """
        if output in (
            models.ReportOutput.MERGED_CSV,
            models.ReportOutput.EXCEL_TAB_PER_DEVICE,
        ):
            self._packager = MergedPackager()
        elif output == models.ReportOutput.CSV_FILE_PER_DEVICE:
            self._packager = PerDevicePackager()
        else:
            self._packager = PerDevicePerPinPackager()

    @property
    def packager(self) -> AbstractPackager:
        """The selected packager."""
        return self._packager

    def run(self, output: pathlib.Path, context: PackagingContext) -> bool:
        """Write the report archive to output.

        The archive is closed before returning, also on errors.

        Args:
            output: Path of the archive file.
            context: The run context.

        Returns:
            Whether at least one data row was written.

        Raises:
            ArchiveWriteError: If the archive cannot be written.
            InvalidSampleBufferError: If a sample buffer is malformed.
        """
        context.logger.debug(
            "Packaging report %s with %s into %s.",
            context.report.id,
            type(self._packager).__name__,
            output,
        )
        with writers.ReportArchive(output, logger=context.logger) as archive:
            return self._packager.package(archive, context)
