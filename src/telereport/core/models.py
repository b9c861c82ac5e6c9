"""Internal data model."""

import dataclasses
import enum
import zoneinfo
from typing import Annotated, Any, Literal, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from telereport.core import exceptions

DAY_MILLIS = 86_400_000
MAX_PIN = 255


class PinType(str, enum.Enum):
    """Pin types, valued by the single character used in file names."""

    DIGITAL = "d"
    ANALOG = "a"
    VIRTUAL = "v"

    @property
    def char(self) -> str:
        """The single character code of the pin type."""
        return self.value


class GranularityType(str, enum.Enum):
    """Sampling resolution of the stored history."""

    MINUTE = "minute"
    HOURLY = "hourly"
    DAILY = "daily"

    @property
    def period(self) -> int:
        """Length of one sample period in milliseconds."""
        return _GRANULARITY_PERIODS[self]

    @property
    def label(self) -> str:
        """Label used in history file names and notifications."""
        return self.value


_GRANULARITY_PERIODS = {
    GranularityType.MINUTE: 60_000,
    GranularityType.HOURLY: 3_600_000,
    GranularityType.DAILY: DAY_MILLIS,
}


class ReportOutput(str, enum.Enum):
    """How the report rows are packaged into the archive.

    EXCEL_TAB_PER_DEVICE is a legacy value that is packaged as MERGED_CSV.
    """

    MERGED_CSV = "MERGED_CSV"
    CSV_FILE_PER_DEVICE = "CSV_FILE_PER_DEVICE"
    CSV_FILE_PER_DEVICE_PER_PIN = "CSV_FILE_PER_DEVICE_PER_PIN"
    EXCEL_TAB_PER_DEVICE = "EXCEL_TAB_PER_DEVICE"


class ReportResult(str, enum.Enum):
    """Outcome of a single report run."""

    OK = "OK"
    NO_DATA = "NO_DATA"
    ERROR = "ERROR"


class TimestampFormat(str, enum.Enum):
    """Rendering of sample timestamps in the CSV rows.

    TS keeps the raw epoch milliseconds, the others are strftime patterns
    applied in the report timezone.
    """

    TS = "TS"
    ISO_SIMPLE = "ISO_SIMPLE"
    ISO_US = "ISO_US"

    @property
    def pattern(self) -> Optional[str]:
        """The strftime pattern, or None for raw timestamps."""
        return _TIMESTAMP_PATTERNS[self]


_TIMESTAMP_PATTERNS = {
    TimestampFormat.TS: None,
    TimestampFormat.ISO_SIMPLE: "%Y-%m-%dT%H:%M:%S",
    TimestampFormat.ISO_US: "%m/%d/%y %I:%M:%S %p",
}


@dataclasses.dataclass(frozen=True)
class RowFormatter:
    """Formatting rule for the timestamp and value columns of a row.

    Attributes:
        timestamp_format: How timestamps are rendered.
        tz_name: IANA timezone the timestamps are rendered in.
        value_precision: Number of decimals values are rounded to. None keeps
            the full value.
    """

    timestamp_format: TimestampFormat = TimestampFormat.TS
    tz_name: str = "UTC"
    value_precision: Optional[int] = None


class _BaseReportType(BaseModel):
    """Shared behaviour of the report types."""

    model_config = ConfigDict(frozen=True)

    @property
    def duration_days(self) -> int:
        """Number of days covered by one run."""
        raise NotImplementedError

    @property
    def duration_label(self) -> str:
        """Human readable period label, e.g. 'Daily'."""
        raise NotImplementedError

    def fetch_count(self, granularity: GranularityType) -> int:
        """Maximum number of samples fetched per (device, pin) pair."""
        return self.duration_days * DAY_MILLIS // granularity.period


class DailyReport(_BaseReportType):
    """Report covering the last day."""

    type: Literal["daily"] = "daily"

    @property
    def duration_days(self) -> int:
        """One day."""
        return 1

    @property
    def duration_label(self) -> str:
        """Daily."""
        return "Daily"


class WeeklyReport(_BaseReportType):
    """Report covering the last week."""

    type: Literal["weekly"] = "weekly"

    @property
    def duration_days(self) -> int:
        """Seven days."""
        return 7

    @property
    def duration_label(self) -> str:
        """Weekly."""
        return "Weekly"


class MonthlyReport(_BaseReportType):
    """Report covering the last thirty days."""

    type: Literal["monthly"] = "monthly"

    @property
    def duration_days(self) -> int:
        """Thirty days."""
        return 30

    @property
    def duration_label(self) -> str:
        """Monthly."""
        return "Monthly"


class OneTimeReport(_BaseReportType):
    """Report over an explicit range, counted in whole days."""

    type: Literal["one_time"] = "one_time"
    range_millis: int = Field(ge=0)

    @property
    def duration_days(self) -> int:
        """Whole days contained in the range."""
        return self.range_millis // DAY_MILLIS

    @property
    def duration_label(self) -> str:
        """One time."""
        return "One time"


ReportType = Annotated[
    Union[DailyReport, WeeklyReport, MonthlyReport, OneTimeReport],
    Field(discriminator="type"),
]


class Device(BaseModel):
    """A device whose pins are reported on."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None


class Dashboard(BaseModel):
    """A dashboard, the owner of the devices of a report."""

    model_config = ConfigDict(frozen=True)

    id: int
    devices: list[Device] = []

    def get_device_by_id(self, device_id: int) -> Optional[Device]:
        """Returns the device with the given id, or None if it is unknown."""
        for device in self.devices:
            if device.id == device_id:
                return device
        return None


class User(BaseModel):
    """Owner of dashboards and reports."""

    model_config = ConfigDict(frozen=True)

    email: str
    app_name: str = "telereport"
    dashboards: list[Dashboard] = []

    def get_dash_or_raise(self, dash_id: int) -> Dashboard:
        """Returns the dashboard with the given id.

        Raises:
            DashboardNotFoundError: If the user has no such dashboard.
        """
        for dash in self.dashboards:
            if dash.id == dash_id:
                return dash
        raise exceptions.DashboardNotFoundError(
            f"Dashboard {dash_id} not found for user {self.email}."
        )


class ReportDataStream(BaseModel):
    """One pin of a report source."""

    model_config = ConfigDict(frozen=True)

    pin_type: Optional[PinType] = None
    pin: int = -1
    label: Optional[str] = None
    selected: bool = True

    @property
    def is_valid(self) -> bool:
        """Whether the stream is selected and addresses a real pin."""
        return self.selected and self.pin_type is not None and 0 <= self.pin <= MAX_PIN

    def format_pin(self) -> str:
        """Label of the stream in CSV rows."""
        if self.label:
            return self.label
        return f"{self.pin_type.char if self.pin_type else ''}{self.pin}"


class ReportSource(BaseModel):
    """A group of devices reported with the same data streams."""

    model_config = ConfigDict(frozen=True)

    device_ids: list[int] = []
    data_streams: list[ReportDataStream] = []

    @property
    def is_valid(self) -> bool:
        """Whether the source has at least one device and one stream."""
        return bool(self.device_ids) and bool(self.data_streams)


class RunOutcome(BaseModel):
    """Result of one report run and the time it completed."""

    model_config = ConfigDict(frozen=True)

    result: ReportResult
    last_report_at: int


class Report(BaseModel):
    """Report definition.

    Read-only while a run is in progress; the run outcome is applied as a
    whole through with_outcome() or a ReportStore.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    tz_name: str = "UTC"
    report_type: ReportType = Field(default_factory=DailyReport)
    granularity: GranularityType = GranularityType.HOURLY
    output: Optional[ReportOutput] = ReportOutput.CSV_FILE_PER_DEVICE_PER_PIN
    timestamp_format: TimestampFormat = TimestampFormat.TS
    value_precision: Optional[int] = Field(default=None, ge=0)
    sources: list[ReportSource] = []
    recipients: list[str] = []
    last_report_at: int = 0
    last_run_result: Optional[ReportResult] = None

    @field_validator("tz_name")
    def validate_tz_name(cls, v: str) -> str:
        """Validate that the timezone is a known IANA zone.

        Raises:
            ValueError: If the timezone cannot be resolved.
        """
        try:
            zoneinfo.ZoneInfo(v)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc_info:
            raise ValueError(f"Unknown timezone: {v}") from exc_info
        return v

    @field_validator("output", mode="before")
    def validate_output(cls, v: Any) -> Any:
        """Map output values this version does not know to None."""
        if isinstance(v, str) and v not in ReportOutput.__members__:
            return None
        return v

    @property
    def report_name(self) -> str:
        """The configured name, or 'Report' when none is set."""
        return self.name or "Report"

    def make_formatter(self) -> RowFormatter:
        """Row formatting rule of this report."""
        return RowFormatter(
            timestamp_format=self.timestamp_format,
            tz_name=self.tz_name,
            value_precision=self.value_precision,
        )

    def build_dynamic_section(self) -> str:
        """Report specific part of the notification body."""
        return (
            f"Report name: {self.report_name}<br>"
            f"Period: {self.report_type.duration_label}<br>"
            f"Granularity: {self.granularity.label}<br>"
            f"Timezone: {self.tz_name}<br>"
        )

    def with_outcome(self, outcome: RunOutcome) -> "Report":
        """Returns a copy of the report with the last run fields updated."""
        return self.model_copy(
            update={
                "last_report_at": outcome.last_report_at,
                "last_run_result": outcome.result,
            }
        )


class ReportTaskKey(BaseModel):
    """Identity of a report run; runs for the same key must not overlap."""

    model_config = ConfigDict(frozen=True)

    email: str
    app_name: str
    dash_id: int
    report_id: int


class ReportTask(BaseModel):
    """A report together with the user and dashboard it is run for."""

    model_config = ConfigDict(frozen=True)

    user: User
    dash_id: int
    report: Report

    @property
    def key(self) -> ReportTaskKey:
        """Key of this task."""
        return ReportTaskKey(
            email=self.user.email,
            app_name=self.user.app_name,
            dash_id=self.dash_id,
            report_id=self.report.id,
        )


class ReportStore(Protocol):
    """Owner of report definitions, applies run outcomes atomically."""

    def update_last_run(self, key: ReportTaskKey, outcome: RunOutcome) -> None:
        """Record the outcome of the last run of the keyed report."""
        ...
