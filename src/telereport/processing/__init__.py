"""This is the report processing submodule.

This module contains the logic that turns stored pin history into report
archives: the report time window, the CSV row formatting, the archive
entry naming and the packaging strategies.
"""
