"""Report runner."""

import datetime
import logging
import pathlib
import time
import zoneinfo
from typing import Callable, List, Optional, Sequence

from rich import progress

from telereport.core import config, models
from telereport.io.notifiers import notifiers
from telereport.io.readers import readers
from telereport.io.writers import writers
from telereport.processing import packaging, window


def current_millis() -> int:
    """Current time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class ReportRunner:
    """Runs reports: window, packaging, notification and the run outcome.

    A run never raises. Failures end as ReportResult.ERROR so one broken
    report does not stop a batch of reports. Runs for the same report key
    must be serialized by the caller since they write the same archive.
    """

    def __init__(
        self,
        sample_source: readers.SampleSource,
        notifier: notifiers.Notifier,
        settings: Optional[config.Settings] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], int] = current_millis,
    ) -> None:
        """Initializes the runner.

        Args:
            sample_source: Storage the pin samples are fetched from.
            notifier: Delivery channel for the download link.
            settings: Output folder, download URL and archive extension.
                Defaults to the environment settings.
            logger: Logger for run messages. Defaults to the telereport logger.
            clock: Returns the current time in epoch milliseconds.
        """
        self.sample_source = sample_source
        self.notifier = notifier
        self.settings = settings or config.get_settings()
        self._logger = logger or config.get_logger()
        self._clock = clock

    def run(self, task: models.ReportTask) -> models.RunOutcome:
        """Generate the report of a task.

        Args:
            task: The report with its user and dashboard id.

        Returns:
            The run result and the completion time, to be stored as the last
            run of the report.
        """
        now = self._clock()
        try:
            result = self._generate(task, now)
        except Exception as exc_info:
            result = models.ReportResult.ERROR
            self._logger.error(
                "Error generating report %s for user %s. Error: %s",
                task.report.id,
                task.user.email,
                exc_info,
                exc_info=True,
            )

        finished = self._clock()
        self._logger.info(
            "Processed report for %s, time %s ms.", task.user.email, finished - now
        )
        return models.RunOutcome(result=result, last_report_at=finished)

    def output_path(self, task: models.ReportTask, now: int) -> pathlib.Path:
        """Archive path of a run started at now.

        The folder is dated in the report timezone.
        """
        report = task.report
        date = datetime.datetime.fromtimestamp(
            now / 1000, tz=zoneinfo.ZoneInfo(report.tz_name)
        ).date()
        folder = writers.user_report_dir(
            self.settings.reports_dir,
            task.user.email,
            task.user.app_name,
            report.id,
            date,
        )
        return writers.archive_path(folder, self.settings.archive_extension)

    def _generate(self, task: models.ReportTask, now: int) -> models.ReportResult:
        report = task.report
        dashboard = task.user.get_dash_or_raise(task.dash_id)
        report_window = window.compute_window(
            report.report_type, report.granularity, now
        )
        output = self.output_path(task, now)

        context = packaging.PackagingContext(
            user=task.user,
            dash_id=task.dash_id,
            dashboard=dashboard,
            report=report,
            window=report_window,
            sample_source=self.sample_source,
            logger=self._logger,
        )
        has_data = packaging.PackagingDispatcher(report.output).run(output, context)
        if has_data:
            self._notify(report, output)
            return models.ReportResult.OK

        self._logger.info(
            "No data for report for user %s and reportId %s.",
            task.user.email,
            report.id,
        )
        return models.ReportResult.NO_DATA

    def _notify(self, report: models.Report, output: pathlib.Path) -> None:
        duration_label = report.report_type.duration_label.lower()
        subject = f"Your {duration_label} {report.report_name} is ready"
        download_url = self.settings.download_url + output.name
        self.notifier.send(
            report.recipients,
            subject,
            download_url,
            report.build_dynamic_section(),
        )


def run_batch(
    tasks: Sequence[models.ReportTask],
    runner: ReportRunner,
    store: Optional[models.ReportStore] = None,
    show_progress: bool = True,
    logger: Optional[logging.Logger] = None,
) -> List[models.RunOutcome]:
    """Run report tasks one after the other.

    Args:
        tasks: The tasks to run.
        runner: Runner used for every task.
        store: If given, receives each outcome as the last run of its report.
        show_progress: Whether to display a progress bar.
        logger: Logger for batch messages. Defaults to the telereport logger.

    Returns:
        The outcome of every task, in task order. Tasks sharing a report key
        each keep their own outcome.
    """
    logger = logger or config.get_logger()
    outcomes: List[models.RunOutcome] = []
    with progress.Progress(
        progress.SpinnerColumn(),
        progress.TextColumn("[progress.description]{task.description}"),
        progress.BarColumn(),
        progress.TaskProgressColumn(),
        console=None,
        disable=not show_progress,
    ) as progress_bar:
        progress_task = progress_bar.add_task(
            "[cyan]Generating reports...", total=len(tasks)
        )
        for task in tasks:
            outcome = runner.run(task)
            outcomes.append(outcome)
            if store is not None:
                try:
                    store.update_last_run(task.key, outcome)
                except Exception as e:
                    logger.error(
                        "Could not store outcome of report %s, Error: %s",
                        task.report.id,
                        e,
                    )
            progress_bar.update(progress_task, advance=1)
    logger.info("Processed %s reports.", len(tasks))
    return outcomes
