"""Archive entry and CSV field naming."""

import re
from typing import Optional

from telereport.core import models

MAX_FILE_NAME_LENGTH = 16
CSV_EXTENSION = ".csv"

_UNSUPPORTED_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')
_CSV_SPECIAL_CHARS = (",", '"', "\r", "\n")


def remove_unsupported_chars(name: str) -> str:
    """Strip characters that are not allowed in file or archive entry names."""
    return _UNSUPPORTED_CHARS.sub("", name)


def truncate_file_name(name: Optional[str]) -> str:
    """Sanitize a name and cut it to MAX_FILE_NAME_LENGTH characters.

    Args:
        name: A device or report name, may be None.

    Returns:
        The sanitized, truncated name. Empty if name is None or empty.
    """
    if not name:
        return ""
    return remove_unsupported_chars(name)[:MAX_FILE_NAME_LENGTH]


def escape_csv(value: str) -> str:
    """Quote a CSV field if it contains a delimiter, quote or line break."""
    if any(char in value for char in _CSV_SPECIAL_CHARS):
        return '"' + value.replace('"', '""') + '"'
    return value


def device_file_name_part(dashboard: models.Dashboard, device_id: int) -> str:
    """File name part of a device, empty if the device has no usable name."""
    device = dashboard.get_device_by_id(device_id)
    if device is None:
        return ""
    return truncate_file_name(device.name)


def csv_device_name(dashboard: models.Dashboard, device_id: int) -> str:
    """Device name embedded in merged CSV rows.

    Escaped for CSV but not truncated. Falls back to the device id.
    """
    device = dashboard.get_device_by_id(device_id)
    if device is None or not device.name:
        return str(device_id)
    return escape_csv(device.name)


def report_file_name(report: models.Report) -> str:
    """Entry name of the merged report file."""
    return truncate_file_name(report.report_name) + CSV_EXTENSION


def device_file_name(device_name: str, device_id: int) -> str:
    """Entry name of a per-device file."""
    return f"{device_name}_{device_id}{CSV_EXTENSION}"


def device_and_pin_file_name(
    device_name: str, device_id: int, data_stream: models.ReportDataStream
) -> str:
    """Entry name of a per-device, per-pin file."""
    pin_char = data_stream.pin_type.char if data_stream.pin_type else ""
    return f"{device_name}_{device_id}_{pin_char}{data_stream.pin}{CSV_EXTENSION}"
