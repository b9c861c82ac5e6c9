"""Read pin history buffers and report task files."""

import pathlib
from typing import Optional, Protocol, Union

import numpy as np
import polars as pl
import pydantic

from telereport.core import exceptions, models

SAMPLE_DTYPE = np.dtype([("value", ">f8"), ("ts", ">i8")])
SAMPLE_SIZE = SAMPLE_DTYPE.itemsize


class SampleSource(Protocol):
    """Storage of the per-pin sample history.

    Implementations return the raw big-endian (value, timestamp) records of
    one (device, pin) pair, at most max_count of them, ending offset records
    before the newest one. None means there is no data.
    """

    def fetch(
        self,
        user: models.User,
        dash_id: int,
        device_id: int,
        pin_type: models.PinType,
        pin: int,
        max_count: int,
        granularity: models.GranularityType,
        offset: int = 0,
    ) -> Optional[bytes]:
        """Fetch the sample buffer of one (device, pin) pair."""
        ...


def decode_samples(buffer: Optional[bytes]) -> pl.DataFrame:
    """Decode a sample buffer into a frame with 'ts' and 'value' columns.

    Args:
        buffer: Concatenated 16 byte records of a big-endian float64 value
            followed by a big-endian int64 epoch millisecond timestamp. None
            and an empty buffer both decode to an empty frame.

    Returns:
        Frame with an int64 'ts' and a float64 'value' column in buffer order.

    Raises:
        InvalidSampleBufferError: If the buffer length is not a whole number
            of records.
    """
    if not buffer:
        return pl.DataFrame(schema={"ts": pl.Int64, "value": pl.Float64})
    if len(buffer) % SAMPLE_SIZE:
        raise exceptions.InvalidSampleBufferError(
            f"Sample buffer of {len(buffer)} bytes is not a multiple of "
            f"{SAMPLE_SIZE} bytes."
        )
    records = np.frombuffer(buffer, dtype=SAMPLE_DTYPE)
    return pl.DataFrame(
        {
            "ts": records["ts"].astype(np.int64),
            "value": records["value"].astype(np.float64),
        }
    )


class DiskSampleSource:
    """Sample source backed by per-pin history files.

    Files are laid out as
    '<data_dir>/<email>/history_<dash>_<device>_<pin type><pin>_<granularity>.bin'
    and hold records oldest first.
    """

    def __init__(self, data_dir: Union[pathlib.Path, str]) -> None:
        """Initializes the source.

        Args:
            data_dir: Root directory of all users' history files.
        """
        self.data_dir = pathlib.Path(data_dir)

    def history_file(
        self,
        user: models.User,
        dash_id: int,
        device_id: int,
        pin_type: models.PinType,
        pin: int,
        granularity: models.GranularityType,
    ) -> pathlib.Path:
        """Path of the history file of one (device, pin, granularity)."""
        file_name = (
            f"history_{dash_id}_{device_id}_{pin_type.char}{pin}_"
            f"{granularity.label}.bin"
        )
        return self.data_dir / user.email / file_name

    def fetch(
        self,
        user: models.User,
        dash_id: int,
        device_id: int,
        pin_type: models.PinType,
        pin: int,
        max_count: int,
        granularity: models.GranularityType,
        offset: int = 0,
    ) -> Optional[bytes]:
        """Read the newest max_count records, skipping offset newest records.

        Returns:
            The raw records, or None if the file is missing or holds no
            records in the requested range.
        """
        path = self.history_file(user, dash_id, device_id, pin_type, pin, granularity)
        if not path.is_file():
            return None

        total = path.stat().st_size // SAMPLE_SIZE
        end = max(total - offset, 0)
        start = max(end - max_count, 0)
        if end <= start:
            return None

        with open(path, "rb") as f:
            f.seek(start * SAMPLE_SIZE)
            return f.read((end - start) * SAMPLE_SIZE)


def read_report_task(file_name: Union[pathlib.Path, str]) -> models.ReportTask:
    """Read a report task from a JSON file.

    Args:
        file_name: JSON file with 'user', 'dash_id' and 'report' keys.

    Returns:
        The validated report task.

    Raises:
        InvalidTaskFileError: If the file cannot be read or validated.
    """
    path = pathlib.Path(file_name)
    try:
        return models.ReportTask.model_validate_json(path.read_bytes())
    except (OSError, pydantic.ValidationError) as exc_info:
        raise exceptions.InvalidTaskFileError(
            f"Could not read report task {path}: {exc_info}"
        ) from exc_info
