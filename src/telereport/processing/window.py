"""Compute the time window of a report run."""

from dataclasses import dataclass

from telereport.core import models


@dataclass(frozen=True)
class ReportWindow:
    """Time window and sample budget of one report run.

    Attributes:
        start_from: Epoch milliseconds of the earliest sample to report,
            aligned to the granularity period.
        fetch_count: Maximum number of samples requested per (device, pin).
    """

    start_from: int
    fetch_count: int


def align_to_period(timestamp: int, period: int) -> int:
    """Floor an epoch millisecond timestamp to a multiple of the period.

    Args:
        timestamp: Epoch milliseconds.
        period: Period length in milliseconds. Must be > 0.

    Returns:
        The largest multiple of period that is <= timestamp.

    Raises:
        ValueError: If period is not positive.
    """
    if period <= 0:
        raise ValueError("Period must be greater than 0.")
    return (timestamp // period) * period


def compute_window(
    report_type: models.ReportType,
    granularity: models.GranularityType,
    now: int,
) -> ReportWindow:
    """Derive the report window for a run started at now.

    The start is floored to the granularity period. Stored samples carry
    period aligned timestamps, so an unaligned start would drop the first
    sample of the window.

    Args:
        report_type: Supplies the duration in days and the fetch count rule.
        granularity: Supplies the sample period.
        now: Epoch milliseconds of the run start.

    Returns:
        The aligned start and the fetch count.
    """
    start_from = now - report_type.duration_days * models.DAY_MILLIS
    return ReportWindow(
        start_from=align_to_period(start_from, granularity.period),
        fetch_count=report_type.fetch_count(granularity),
    )
