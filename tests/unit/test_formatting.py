"""Test the formatting module."""

import csv
import io
from typing import Callable, Sequence, Tuple

import polars as pl
import pytest

from telereport.core import models
from telereport.io.readers import readers
from telereport.processing import formatting

Encoder = Callable[[Sequence[Tuple[int, float]]], bytes]


@pytest.fixture
def samples(sensor_samples: bytes) -> pl.DataFrame:
    """Decoded samples at t=100, 200 and 300."""
    return readers.decode_samples(sensor_samples)


def test_format_rows_filters_before_start(samples: pl.DataFrame) -> None:
    """Test samples before the start are dropped and the start itself is kept."""
    rows = formatting.format_rows(samples, 200, models.RowFormatter())

    assert rows == ["200,2.5", "300,3.5"]


def test_format_rows_empty_frame() -> None:
    """Test an empty frame gives no rows."""
    rows = formatting.format_rows(
        readers.decode_samples(None), 0, models.RowFormatter()
    )

    assert rows == []


def test_format_pin_rows(samples: pl.DataFrame) -> None:
    """Test the per-pin text blob and its row flag."""
    text, has_rows = formatting.format_pin_rows(samples, 150, models.RowFormatter())

    assert text == "200,2.5\n300,3.5\n"
    assert has_rows is True


def test_format_pin_rows_nothing_in_window(samples: pl.DataFrame) -> None:
    """Test the blob is empty when every sample is before the start."""
    text, has_rows = formatting.format_pin_rows(samples, 301, models.RowFormatter())

    assert text == ""
    assert has_rows is False


def test_write_labeled_rows(samples: pl.DataFrame) -> None:
    """Test labeled rows parse back into pin, device, timestamp and value."""
    writer = io.StringIO()

    count = formatting.write_labeled_rows(
        writer, samples, "Temp, inside", '"Boiler, east"', 150, models.RowFormatter()
    )

    parsed = list(csv.reader(io.StringIO(writer.getvalue())))
    assert count == 2
    assert parsed == [
        ["Temp, inside", "Boiler, east", "200", "2.5"],
        ["Temp, inside", "Boiler, east", "300", "3.5"],
    ]


def test_write_device_rows(samples: pl.DataFrame) -> None:
    """Test device-scoped rows carry the pin label."""
    writer = io.StringIO()

    count = formatting.write_device_rows(
        writer, samples, "v3", 0, models.RowFormatter()
    )

    assert count == 3
    assert writer.getvalue() == "v3,100,1.5\nv3,200,2.5\nv3,300,3.5\n"


def test_write_device_rows_nothing_written() -> None:
    """Test nothing reaches the writer when there are no rows."""
    writer = io.StringIO()

    count = formatting.write_device_rows(
        writer, readers.decode_samples(b""), "v3", 0, models.RowFormatter()
    )

    assert count == 0
    assert writer.getvalue() == ""


def test_iso_timestamps_in_report_timezone(encode: Encoder) -> None:
    """Test formatted timestamps are rendered in the report timezone."""
    samples = readers.decode_samples(encode([(0, 1.0)]))
    formatter = models.RowFormatter(
        timestamp_format=models.TimestampFormat.ISO_SIMPLE,
        tz_name="America/New_York",
    )

    rows = formatting.format_rows(samples, 0, formatter)

    assert rows == ["1969-12-31T19:00:00,1.0"]


def test_us_timestamps(encode: Encoder) -> None:
    """Test the US timestamp pattern."""
    samples = readers.decode_samples(encode([(13 * 3_600_000, 1.0)]))
    formatter = models.RowFormatter(timestamp_format=models.TimestampFormat.ISO_US)

    rows = formatting.format_rows(samples, 0, formatter)

    assert rows == ["01/01/70 01:00:00 PM,1.0"]


def test_value_precision(encode: Encoder) -> None:
    """Test values are rounded to the report precision."""
    samples = readers.decode_samples(encode([(1, 2.456)]))

    rows = formatting.format_rows(samples, 0, models.RowFormatter(value_precision=1))

    assert rows == ["1,2.5"]
