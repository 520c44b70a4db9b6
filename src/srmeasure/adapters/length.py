"""Length tool: a two-point line with its length in millimetres."""
from __future__ import annotations

from srmeasure import codes
from srmeasure.adapters.base import MeasurementAdapter, distance
from srmeasure.codec import SetupMeasurementData
from srmeasure.state import Annotation, MeasurementState
from srmeasure.templates import LengthRepresentation

LEGACY_TRACKING_IDENTIFIER = f"{codes.LEGACY_TRACKING_IDENTIFIER_TAG}:Length"


class LengthAdapter(MeasurementAdapter):
    tool_type = "Length"
    representation = LengthRepresentation

    def measured_value(self, annotation: Annotation) -> float | None:
        stats = annotation.data.cached_stats.get(annotation.stats_key, {})
        if "length" in stats:
            return float(stats["length"])
        return distance(annotation.data.points)

    def restore_data(self, state: MeasurementState, setup: SetupMeasurementData) -> None:
        annotation = state.annotation
        value = setup.measured_value
        annotation.data.points = annotation.data.points[:2]
        annotation.data.cached_stats[annotation.stats_key] = {
            "length": value if value is not None else 0.0
        }
