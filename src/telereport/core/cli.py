"""CLI for telereport."""

import logging
import pathlib
from typing import Optional

import typer

from telereport.core import config, exceptions, models
from telereport.io.notifiers import notifiers
from telereport.io.readers import readers

logger = config.get_logger()
app = typer.Typer(
    help="Generate report archives from stored pin history.",
)


def version_check(version: bool) -> None:
    """Print the current version of telereport and exit."""
    if version:
        typer.echo(f"Telereport version: {config.get_version()}")
        raise typer.Exit()


def _load_tasks(task_files: list[pathlib.Path]) -> tuple[list[models.ReportTask], int]:
    """Read task files, reporting the ones that cannot be read.

    Returns:
        The tasks that were read and the number of files that failed.
    """
    tasks = []
    failed = 0
    for task_file in task_files:
        try:
            tasks.append(readers.read_report_task(task_file))
        except exceptions.InvalidTaskFileError as e:
            typer.echo(f"Error: {e}", err=True)
            failed += 1
    return tasks, failed


@app.command()
def main(
    task_files: list[pathlib.Path] = typer.Argument(
        ...,
        help="JSON files with the 'user', 'dash_id' and 'report' of each report.",
        exists=True,
        dir_okay=False,
    ),
    data_dir: Optional[pathlib.Path] = typer.Option(
        None,
        "-d",
        "--data-dir",
        help="Directory holding the pin history files. "
        "Defaults to TELEREPORT_DATA_DIR.",
    ),
    reports_dir: Optional[pathlib.Path] = typer.Option(
        None,
        "-r",
        "--reports-dir",
        help="Directory report archives are written to. "
        "Defaults to TELEREPORT_REPORTS_DIR.",
    ),
    download_url: Optional[str] = typer.Option(
        None,
        "-u",
        "--download-url",
        help="Base URL of the download link. Defaults to TELEREPORT_DOWNLOAD_URL.",
    ),
    verbosity: bool = typer.Option(
        False,
        "-v",
        "--verbosity",
        help="Determines the level of verbosity. Use -v for DEBUG. "
        "Defaults to TELEREPORT_LOG_LEVEL if not included.",
    ),
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        help="Print the current version of telereport and exit.",
        is_eager=True,
        callback=version_check,
    ),
) -> None:
    """Run every report task and print its result."""
    from telereport.core import orchestrator

    overrides = {
        "data_dir": data_dir,
        "reports_dir": reports_dir,
        "download_url": download_url,
    }
    settings = config.get_settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    logger.setLevel(logging.DEBUG if verbosity else settings.log_level.upper())
    logger.debug("Running telereport. arguments given: %s", locals())

    tasks, failed = _load_tasks(task_files)
    runner = orchestrator.ReportRunner(
        sample_source=readers.DiskSampleSource(settings.data_dir),
        notifier=notifiers.LoggingNotifier(),
        settings=settings,
    )
    outcomes = orchestrator.run_batch(tasks, runner, logger=logger)

    for task, outcome in zip(tasks, outcomes):
        result = outcome.result.value
        typer.echo(f"{task.report.report_name} ({task.report.id}): {result}")

    errors = sum(outcome.result == models.ReportResult.ERROR for outcome in outcomes)
    if failed or errors:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
