"""Convert decoded pin samples into CSV rows."""

from typing import Protocol, Sequence

import polars as pl

from telereport.core import models
from telereport.processing import names

ROW_SEPARATOR = "\n"


class TextSink(Protocol):
    """Anything CSV text can be streamed into."""

    def write(self, text: str) -> None:
        """Write text to the sink."""
        ...


def _timestamp_expression(formatter: models.RowFormatter) -> pl.Expr:
    pattern = formatter.timestamp_format.pattern
    if pattern is None:
        return pl.col("ts").cast(pl.Utf8)
    return (
        pl.from_epoch(pl.col("ts"), time_unit="ms")
        .dt.replace_time_zone("UTC")
        .dt.convert_time_zone(formatter.tz_name)
        .dt.strftime(pattern)
    )


def _value_expression(formatter: models.RowFormatter) -> pl.Expr:
    value = pl.col("value")
    if formatter.value_precision is not None:
        value = value.round(formatter.value_precision)
    return value.cast(pl.Utf8)


def format_rows(
    samples: pl.DataFrame,
    start_from: int,
    formatter: models.RowFormatter,
    prefix: Sequence[str] = (),
) -> list[str]:
    """Filter samples and render them as CSV rows without line terminators.

    Samples with a timestamp before start_from are dropped. The upper bound
    of the window is enforced by the sample source, not here.

    Args:
        samples: Frame with an int64 'ts' column in epoch milliseconds and a
            float64 'value' column.
        start_from: Aligned window start in epoch milliseconds.
        formatter: Timestamp and value formatting rule of the report.
        prefix: Already escaped fields written before the timestamp.

    Returns:
        One string per retained sample, in sample order.
    """
    if samples.is_empty():
        return []
    columns = [pl.lit(field, dtype=pl.Utf8) for field in prefix]
    columns += [_timestamp_expression(formatter), _value_expression(formatter)]
    return (
        samples.lazy()
        .filter(pl.col("ts") >= start_from)
        .select(pl.concat_str(columns, separator=",").alias("row"))
        .collect()
        .get_column("row")
        .to_list()
    )


def _write_rows(writer: TextSink, rows: list[str]) -> int:
    if rows:
        writer.write(ROW_SEPARATOR.join(rows) + ROW_SEPARATOR)
    return len(rows)


def write_labeled_rows(
    writer: TextSink,
    samples: pl.DataFrame,
    pin_label: str,
    device_name: str,
    start_from: int,
    formatter: models.RowFormatter,
) -> int:
    """Write '<pin>,<device>,<timestamp>,<value>' rows for a merged file.

    Args:
        writer: Destination of the rows.
        samples: Decoded samples of one (device, pin) pair.
        pin_label: Label of the pin, escaped here.
        device_name: Device name, already escaped for CSV.
        start_from: Aligned window start in epoch milliseconds.
        formatter: Timestamp and value formatting rule of the report.

    Returns:
        The number of rows written.
    """
    rows = format_rows(
        samples,
        start_from,
        formatter,
        prefix=(names.escape_csv(pin_label), device_name),
    )
    return _write_rows(writer, rows)


def write_device_rows(
    writer: TextSink,
    samples: pl.DataFrame,
    pin_label: str,
    start_from: int,
    formatter: models.RowFormatter,
) -> int:
    """Write '<pin>,<timestamp>,<value>' rows for a per-device file.

    Returns:
        The number of rows written.
    """
    rows = format_rows(
        samples, start_from, formatter, prefix=(names.escape_csv(pin_label),)
    )
    return _write_rows(writer, rows)


def format_pin_rows(
    samples: pl.DataFrame,
    start_from: int,
    formatter: models.RowFormatter,
) -> tuple[str, bool]:
    """Render '<timestamp>,<value>' rows of a per-device, per-pin file.

    Returns:
        The CSV text and whether it holds at least one row.
    """
    rows = format_rows(samples, start_from, formatter)
    if not rows:
        return "", False
    return ROW_SEPARATOR.join(rows) + ROW_SEPARATOR, True
