"""Test the exceptions module."""

import pytest

from telereport.core import exceptions


def test_logged_exception(caplog: pytest.LogCaptureFixture) -> None:
    """Test the message is logged when the exception is created."""
    with pytest.raises(exceptions.ArchiveWriteError, match="disk full"):
        raise exceptions.ArchiveWriteError("disk full")

    assert "disk full" in caplog.text


def test_duplicate_entry_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Test duplicate entry errors are left for the archive to report."""
    exceptions.DuplicateEntryError("Duplicate zip entry a.csv.")

    assert caplog.text == ""
