"""TID 300 measurement and TID 1501 measurement group builders.

A ``Representation`` turns ``RepresentationArguments`` (what an adapter
extracted from one annotation) into the content items of a single
measurement.  ``measurement_group`` wraps those items, together with the
tracking identifiers, finding and finding sites, in a Measurement Group
container.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from srmeasure import codes
from srmeasure.tree.nodes import (
    Code,
    ContentNode,
    GraphicType,
    ReferencedSOP,
    RelationshipType,
    code_item,
    container_item,
    num_item,
    scoord3d_item,
    scoord_item,
    text_item,
    uid_item,
)


@dataclass(frozen=True)
class RepresentationArguments:
    """Everything a representation needs to emit one measurement.

    Parameters
    ----------
    points:
        Image ``(column, row)`` pairs for 2-D measurements, world
        ``(x, y, z)`` triples for 3-D ones.
    tracking_identifier:
        Tracking Identifier text naming the producing tool.
    finding:
        Optional Finding code.
    finding_sites:
        Finding Site codes, emitted in order.
    value:
        Measured value for representations that carry one.
    use_3d:
        Emit SCOORD3D in ``frame_of_reference_uid`` instead of SCOORD.
    frame_of_reference_uid:
        Required when ``use_3d`` is set.
    referenced_sop:
        Referenced image for SCOORD items; filled in by the group codec.
    """

    points: tuple[tuple[float, ...], ...]
    tracking_identifier: str
    finding: Code | None = None
    finding_sites: tuple[Code, ...] = field(default=())
    value: float | None = None
    use_3d: bool = False
    frame_of_reference_uid: str | None = None
    referenced_sop: ReferencedSOP | None = None

    def with_referenced_sop(self, referenced_sop: ReferencedSOP | None) -> "RepresentationArguments":
        return replace(self, referenced_sop=referenced_sop)


class Representation(ABC):
    """Base class for TID 300 measurement representations."""

    graphic_type: GraphicType = GraphicType.POINT

    def __init__(self, arguments: RepresentationArguments) -> None:
        self.arguments = arguments

    @abstractmethod
    def content_items(self) -> tuple[ContentNode, ...]:
        """Return the measurement items placed in the measurement group."""

    def spatial_coordinates(
        self, relationship: RelationshipType = RelationshipType.INFERRED_FROM
    ) -> ContentNode:
        """Return the SCOORD or SCOORD3D item for the representation's points."""
        args = self.arguments
        if args.use_3d:
            if not args.frame_of_reference_uid:
                raise ValueError("3-D measurements require a frame of reference UID")
            return scoord3d_item(
                self.graphic_type,
                args.points,
                args.frame_of_reference_uid,
                relationship=relationship,
            )
        if args.referenced_sop is None:
            raise ValueError("2-D measurements require a referenced SOP")
        return scoord_item(
            self.graphic_type, args.points, args.referenced_sop, relationship=relationship
        )


class LengthRepresentation(Representation):
    """A two-point POLYLINE inferring a Length value in millimetres."""

    graphic_type = GraphicType.POLYLINE

    def content_items(self) -> tuple[ContentNode, ...]:
        value = self.arguments.value if self.arguments.value is not None else 0.0
        return (
            num_item(
                codes.LENGTH,
                value,
                codes.MILLIMETER,
                children=(self.spatial_coordinates(),),
            ),
        )


class PointRepresentation(Representation):
    """A single POINT placed directly in the measurement group."""

    graphic_type = GraphicType.POINT

    def content_items(self) -> tuple[ContentNode, ...]:
        return (self.spatial_coordinates(RelationshipType.CONTAINS),)


class PolylineRepresentation(Representation):
    """An unmeasured POLYLINE placed directly in the measurement group."""

    graphic_type = GraphicType.POLYLINE

    def content_items(self) -> tuple[ContentNode, ...]:
        return (self.spatial_coordinates(RelationshipType.CONTAINS),)


def measurement_group(
    representation: Representation, tracking_unique_identifier: str
) -> ContentNode:
    """Build a TID 1501 Measurement Group container for one measurement."""
    args = representation.arguments
    children: list[ContentNode] = [
        text_item(
            codes.TRACKING_IDENTIFIER,
            args.tracking_identifier,
            relationship=RelationshipType.HAS_OBS_CONTEXT,
        ),
        uid_item(codes.TRACKING_UNIQUE_IDENTIFIER, tracking_unique_identifier),
    ]
    if args.finding is not None:
        children.append(code_item(codes.FINDING, args.finding))
    children.extend(
        code_item(codes.FINDING_SITE, site, relationship=RelationshipType.HAS_CONCEPT_MOD)
        for site in args.finding_sites
    )
    children.extend(representation.content_items())
    return container_item(codes.MEASUREMENT_GROUP, children=tuple(children))
