"""Arrow annotation tool: a two-point arrow with user text.

The arrow text is the annotation's label, so it travels as a free-text
finding and comes back through label derivation.
"""
from __future__ import annotations

from srmeasure.adapters.base import MeasurementAdapter
from srmeasure.codec import SetupMeasurementData
from srmeasure.state import Annotation, MeasurementState
from srmeasure.templates import PolylineRepresentation


class ArrowAnnotateAdapter(MeasurementAdapter):
    tool_type = "ArrowAnnotate"
    representation = PolylineRepresentation

    def label_of(self, annotation: Annotation) -> str:
        return annotation.metadata.label or annotation.data.text or ""

    def restore_data(self, state: MeasurementState, setup: SetupMeasurementData) -> None:
        state.annotation.data.text = state.annotation.metadata.label
