"""Test readers.py functions."""

import json
import pathlib
from typing import Callable, Sequence, Tuple

import polars as pl
import pytest

from telereport.core import exceptions, models
from telereport.io.readers import readers

Encoder = Callable[[Sequence[Tuple[int, float]]], bytes]


def test_decode_samples(sensor_samples: bytes) -> None:
    """Test records decode into timestamp and value columns."""
    frame = readers.decode_samples(sensor_samples)

    assert frame.schema == {"ts": pl.Int64, "value": pl.Float64}
    assert frame["ts"].to_list() == [100, 200, 300]
    assert frame["value"].to_list() == [1.5, 2.5, 3.5]


@pytest.mark.parametrize("buffer", [None, b""])
def test_decode_samples_no_data(buffer: bytes) -> None:
    """Test absent and empty buffers both decode to an empty frame."""
    assert readers.decode_samples(buffer).is_empty()


def test_decode_samples_partial_record(sensor_samples: bytes) -> None:
    """Test error if the buffer ends inside a record."""
    with pytest.raises(exceptions.InvalidSampleBufferError):
        readers.decode_samples(sensor_samples[:-1])


@pytest.fixture
def disk_source(
    tmp_path: pathlib.Path, user: models.User, encode: Encoder
) -> readers.DiskSampleSource:
    """Disk source with ten hourly samples of virtual pin 3 on device 7."""
    source = readers.DiskSampleSource(tmp_path)
    path = source.history_file(
        user, 1, 7, models.PinType.VIRTUAL, 3, models.GranularityType.HOURLY
    )
    path.parent.mkdir(parents=True)
    path.write_bytes(encode([(ts, float(ts)) for ts in range(10)]))
    return source


def test_history_file_name(
    disk_source: readers.DiskSampleSource, user: models.User
) -> None:
    """Test the history file layout."""
    path = disk_source.history_file(
        user, 1, 7, models.PinType.VIRTUAL, 3, models.GranularityType.HOURLY
    )

    assert path == disk_source.data_dir / user.email / "history_1_7_v3_hourly.bin"


@pytest.mark.parametrize(
    "max_count, offset, expected",
    [(3, 0, [7, 8, 9]), (3, 2, [5, 6, 7]), (50, 0, list(range(10))), (5, 8, [0, 1])],
)
def test_disk_fetch_newest_records(
    disk_source: readers.DiskSampleSource,
    user: models.User,
    max_count: int,
    offset: int,
    expected: list[int],
) -> None:
    """Test fetch returns the newest records, skipping offset records."""
    buffer = disk_source.fetch(
        user,
        1,
        7,
        models.PinType.VIRTUAL,
        3,
        max_count,
        models.GranularityType.HOURLY,
        offset,
    )

    assert readers.decode_samples(buffer)["ts"].to_list() == expected


def test_disk_fetch_missing_file(
    disk_source: readers.DiskSampleSource, user: models.User
) -> None:
    """Test a missing history file means no data."""
    buffer = disk_source.fetch(
        user, 1, 8, models.PinType.VIRTUAL, 3, 10, models.GranularityType.HOURLY
    )

    assert buffer is None


def test_disk_fetch_offset_past_start(
    disk_source: readers.DiskSampleSource, user: models.User
) -> None:
    """Test an offset beyond the stored records means no data."""
    buffer = disk_source.fetch(
        user, 1, 7, models.PinType.VIRTUAL, 3, 10, models.GranularityType.HOURLY, 20
    )

    assert buffer is None


def test_read_report_task(tmp_path: pathlib.Path) -> None:
    """Test a task file is read into a validated task."""
    task_file = tmp_path / "task.json"
    task_file.write_text(
        json.dumps(
            {
                "user": {"email": "owner@example.com", "dashboards": [{"id": 1}]},
                "dash_id": 1,
                "report": {
                    "id": 4,
                    "name": "Energy",
                    "report_type": {"type": "weekly"},
                    "output": "MERGED_CSV",
                },
            }
        )
    )

    task = readers.read_report_task(task_file)

    assert task.report.report_type == models.WeeklyReport()
    assert task.report.output == models.ReportOutput.MERGED_CSV
    assert task.key.report_id == 4


def test_read_report_task_invalid(tmp_path: pathlib.Path) -> None:
    """Test error if the task file does not validate."""
    task_file = tmp_path / "task.json"
    task_file.write_text('{"dash_id": 1}')

    with pytest.raises(exceptions.InvalidTaskFileError):
        readers.read_report_task(task_file)


def test_read_report_task_missing(tmp_path: pathlib.Path) -> None:
    """Test error if the task file does not exist."""
    with pytest.raises(exceptions.InvalidTaskFileError):
        readers.read_report_task(tmp_path / "missing.json")
