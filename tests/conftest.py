"""Fixtures used by pytest."""

import pathlib
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import pytest

from telereport.core import config, models
from telereport.io.readers import readers

SampleKey = Tuple[int, models.PinType, int]


def encode_samples(samples: Sequence[Tuple[int, float]]) -> bytes:
    """Encode (timestamp, value) pairs into the binary record layout."""
    records = np.zeros(len(samples), dtype=readers.SAMPLE_DTYPE)
    for index, (ts, value) in enumerate(samples):
        records[index] = (value, ts)
    return records.tobytes()


class StaticSampleSource:
    """Sample source serving fixed buffers, recording every fetch."""

    def __init__(
        self, buffers: Optional[Dict[SampleKey, Optional[bytes]]] = None
    ) -> None:
        """Initializes the source with buffers keyed by (device, pin type, pin)."""
        self.buffers = buffers or {}
        self.calls: list[dict] = []

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
        """Return the buffer of the pair, or None."""
        self.calls.append(
            {
                "device_id": device_id,
                "pin_type": pin_type,
                "pin": pin,
                "max_count": max_count,
                "granularity": granularity,
                "offset": offset,
            }
        )
        return self.buffers.get((device_id, pin_type, pin))


@pytest.fixture
def virtual_pin_3() -> models.ReportDataStream:
    """A selected virtual pin 3 data stream."""
    return models.ReportDataStream(pin_type=models.PinType.VIRTUAL, pin=3)


@pytest.fixture
def dashboard() -> models.Dashboard:
    """Dashboard with two named devices."""
    return models.Dashboard(
        id=1,
        devices=[
            models.Device(id=7, name="Sensor A"),
            models.Device(id=8, name="Boiler, east"),
        ],
    )


@pytest.fixture
def user(dashboard: models.Dashboard) -> models.User:
    """User owning the dashboard."""
    return models.User(
        email="owner@example.com", app_name="app", dashboards=[dashboard]
    )


@pytest.fixture
def sensor_samples() -> bytes:
    """Samples at t=100, 200 and 300."""
    return encode_samples([(100, 1.5), (200, 2.5), (300, 3.5)])


@pytest.fixture
def settings(tmp_path: pathlib.Path) -> config.Settings:
    """Settings writing into a temporary directory."""
    return config.Settings(
        data_dir=tmp_path / "data",
        reports_dir=tmp_path / "reports",
        download_url="https://reports.example.com/",
    )


@pytest.fixture
def encode() -> Callable[[Sequence[Tuple[int, float]]], bytes]:
    """The sample buffer encoder."""
    return encode_samples


@pytest.fixture
def make_source() -> type[StaticSampleSource]:
    """Factory of in-memory sample sources."""
    return StaticSampleSource
