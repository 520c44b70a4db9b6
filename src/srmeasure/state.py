"""Application-side annotation records.

These are the mutable counterparts of measurement groups.  Callers own
them: the codec builds fresh records when parsing and keeps no reference
once it returns.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from srmeasure.tree.nodes import Code


@dataclass
class AnnotationMetadata:
    """Where an annotation lives and what the user called it.

    Parameters
    ----------
    tool_name:
        The tool kind that produced the annotation, e.g. ``"Length"``.
    referenced_image_id:
        Image id for image-anchored annotations.
    frame_of_reference_uid:
        Frame of reference of the anchoring image or volume.
    volume_id:
        Volume id for annotations drawn on a reconstructed volume.
    label:
        User-visible label.
    """

    tool_name: str
    referenced_image_id: str | None = None
    frame_of_reference_uid: str | None = None
    volume_id: str | None = None
    label: str = ""


@dataclass
class AnnotationData:
    """Tool-specific geometry.

    ``points`` are world coordinates.  ``cached_stats`` maps a target key
    (``"imageId:<id>"`` or ``"volumeId:<id>"``) to computed statistics.
    """

    points: list[tuple[float, float, float]] = field(default_factory=list)
    text: str | None = None
    cached_stats: dict[str, dict[str, float]] = field(default_factory=dict)
    frame_number: int | None = None


@dataclass
class Annotation:
    annotation_uid: str
    metadata: AnnotationMetadata
    data: AnnotationData = field(default_factory=AnnotationData)
    finding: Code | None = None
    finding_sites: list[Code] = field(default_factory=list)
    description: str | None = None

    @property
    def stats_key(self) -> str:
        """Return the ``cached_stats`` key for this annotation's target."""
        if self.metadata.referenced_image_id:
            return f"imageId:{self.metadata.referenced_image_id}"
        return f"volumeId:{self.metadata.volume_id}"


@dataclass
class MeasurementState:
    """A decoded measurement group.

    Parameters
    ----------
    annotation:
        The rebuilt annotation.  Its ``annotation_uid`` is freshly
        generated.
    description:
        Meaning of the Finding, when one was present.
    sop_instance_uid:
        SOP Instance UID of the referenced image, for image-anchored
        measurements.  Mapping it to an application image id is left to
        the caller.
    finding:
        The Finding code, if any.
    finding_sites:
        Finding Site codes in document order.
    tracking_identifier:
        Tracking Identifier text the adapter was resolved from.
    tracking_unique_identifier:
        Tracking Unique Identifier UID, if the group carried one.
    """

    annotation: Annotation
    description: str | None = None
    sop_instance_uid: str | None = None
    finding: Code | None = None
    finding_sites: list[Code] = field(default_factory=list)
    tracking_identifier: str | None = None
    tracking_unique_identifier: str | None = None


# image id -> tool type -> annotations
ToolState = dict[str, dict[str, list[Annotation]]]

# tool type -> decoded measurements
MeasurementData = dict[str, list[MeasurementState]]

