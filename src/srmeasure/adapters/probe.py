"""Probe tool: a single point."""
from __future__ import annotations

from srmeasure.adapters.base import MeasurementAdapter
from srmeasure.templates import PointRepresentation


class ProbeAdapter(MeasurementAdapter):
    tool_type = "Probe"
    representation = PointRepresentation
