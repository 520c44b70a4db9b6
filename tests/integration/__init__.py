"""Integration tests.

These run the whole pipeline: tool state to report, report to a DICOM
file on disk through pydicom, and back to tool state.  They are kept in
a separate directory so they can be excluded from the fast unit-test
run with ``pytest tests/unit/``.
"""
from __future__ import annotations
