"""Measurement adapter base class.

An adapter is the codec strategy for one tool kind: it knows how to turn
that tool's annotation into representation arguments, and how to rebuild
the annotation from a measurement group.  Adapters are instances, so one
class can serve several tool kinds (a subtype registered with a
``parent_type`` reuses its parent's class).

Tracking identifiers
--------------------
An adapter writes ``"<tag>:<tool type>"``, or
``"<tag>:<parent type>:<tool type>"`` when it has a parent.  Because the
parent's identifier is a prefix of the subtype's, a reader that only
registered the parent can still decode subtype groups.
"""
from __future__ import annotations

import logging
import math
from abc import ABC
from collections.abc import Mapping, Sequence

from srmeasure import codes
from srmeasure.codec import SetupMeasurementData, encode_label, get_setup_measurement_data
from srmeasure.metadata import ImageToWorld, MetadataProvider, WorldToImage
from srmeasure.state import Annotation, MeasurementState
from srmeasure.templates import Representation, RepresentationArguments
from srmeasure.tree.nodes import ContentNode

logger = logging.getLogger(__name__)


class MeasurementAdapter(ABC):
    """Reads and writes one tool kind's measurement groups.

    Subclasses set ``tool_type`` and ``representation`` and override
    ``restore_data`` to put tool-specific values back on the annotation.

    Parameters
    ----------
    tool_type:
        Overrides the class-level ``tool_type``.
    parent_type:
        Tool kind this one specialises; changes the tracking identifier
        to ``"<tag>:<parent>:<tool>"``.
    representation:
        Overrides the class-level TID 300 representation.
    """

    tool_type: str = ""
    representation: type[Representation]

    def __init__(
        self,
        tool_type: str | None = None,
        *,
        parent_type: str | None = None,
        representation: type[Representation] | None = None,
    ) -> None:
        if tool_type is not None:
            self.tool_type = tool_type
        if not self.tool_type:
            raise ValueError(f"{type(self).__name__} needs a tool type")
        if representation is not None:
            self.representation = representation
        self.parent_type = parent_type
        self.tracking_identifiers: set[str] = set()
        if parent_type:
            self.tracking_identifier_text_value = (
                f"{codes.TRACKING_IDENTIFIER_TAG}:{parent_type}:{self.tool_type}"
            )
            self.tracking_identifiers.add(f"{codes.TRACKING_IDENTIFIER_TAG}:{self.tool_type}")
        else:
            self.tracking_identifier_text_value = (
                f"{codes.TRACKING_IDENTIFIER_TAG}:{self.tool_type}"
            )
        self.tracking_identifiers.add(self.tracking_identifier_text_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tool_type={self.tool_type!r}, parent_type={self.parent_type!r})"

    # ------------------------------------------------------------------
    # Identification
    # ------------------------------------------------------------------

    def is_valid_tracking_identifier(self, tracking_identifier: str) -> bool:
        """Return True if this adapter can decode groups tagged ``tracking_identifier``.

        Accepts the adapter's own identifiers and any identifier that
        extends its primary one with further ``:``-separated parts.
        """
        if tracking_identifier in self.tracking_identifiers:
            return True
        if ":" not in tracking_identifier:
            return False
        return tracking_identifier.startswith(f"{self.tracking_identifier_text_value}:")

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def get_representation_arguments(
        self, annotation: Annotation, world_to_image: WorldToImage
    ) -> RepresentationArguments:
        """Extract representation arguments from ``annotation``.

        Image-anchored annotations are projected into the referenced
        image; annotations without a referenced image are written as 3-D
        coordinates in their frame of reference.
        """
        finding, finding_sites = encode_label(
            self.label_of(annotation), annotation.finding, annotation.finding_sites
        )
        image_id = annotation.metadata.referenced_image_id
        if image_id:
            points = tuple(
                tuple(float(c) for c in world_to_image(image_id, point)[:2])
                for point in annotation.data.points
            )
            use_3d = False
        else:
            if not annotation.metadata.frame_of_reference_uid:
                raise ValueError(
                    f"{self.tool_type} annotation {annotation.annotation_uid} has neither "
                    "a referenced image nor a frame of reference"
                )
            points = tuple(tuple(float(c) for c in point) for point in annotation.data.points)
            use_3d = True
        return RepresentationArguments(
            points=points,
            tracking_identifier=self.tracking_identifier_text_value,
            finding=finding,
            finding_sites=finding_sites,
            value=self.measured_value(annotation),
            use_3d=use_3d,
            frame_of_reference_uid=annotation.metadata.frame_of_reference_uid,
        )

    def label_of(self, annotation: Annotation) -> str:
        return annotation.metadata.label

    def measured_value(self, annotation: Annotation) -> float | None:
        """Return the numeric value the representation records, if any."""
        return None

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def get_measurement_data(
        self,
        group: ContentNode,
        image_id_map: Mapping[str, str],
        image_to_world: ImageToWorld,
        metadata: MetadataProvider,
        tracking_identifier: str | None = None,
    ) -> MeasurementState:
        """Rebuild the measurement held in ``group``."""
        setup = get_setup_measurement_data(group, image_id_map, metadata, self.tool_type)
        state = setup.default_state
        state.annotation.data.points = self.world_points(setup, image_to_world)
        self.restore_data(state, setup)
        logger.debug(
            "Decoded %s measurement %s (tracking identifier %r)",
            self.tool_type,
            state.annotation.annotation_uid,
            tracking_identifier,
        )
        return state

    def world_points(
        self, setup: SetupMeasurementData, image_to_world: ImageToWorld
    ) -> list[tuple[float, ...]]:
        spatial = setup.spatial
        if spatial.scoord3d is not None:
            return spatial.scoord3d.points
        image_id = spatial.referenced_image_id
        return [tuple(image_to_world(image_id, point)) for point in spatial.scoord.points]

    def restore_data(self, state: MeasurementState, setup: SetupMeasurementData) -> None:
        """Hook for tool-specific values; the default restores nothing."""


def distance(points: Sequence[Sequence[float]]) -> float:
    """Return the euclidean distance between the first two points."""
    if len(points) < 2:
        return 0.0
    return math.dist(points[0], points[1])
