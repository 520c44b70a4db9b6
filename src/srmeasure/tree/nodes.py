"""Content tree node definitions for DICOM SR documents.

Every node is a frozen dataclass so content trees are immutable and
hashable once built.  A ``ContentNode`` pairs a concept name with exactly
one payload; the payload's type *is* the value type, so the two can never
disagree.  Downstream code should dispatch on ``node.value_type`` or use
``isinstance`` checks on ``node.value``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


# ---------------------------------------------------------------------------
# Coded concepts
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Code:
    """A coded concept: ``(coding scheme designator, code value, meaning)``.

    Parameters
    ----------
    scheme:
        Coding scheme designator, e.g. ``"DCM"`` or ``"SCT"``.
    value:
        Code value within the scheme.
    meaning:
        Optional human-readable code meaning.
    """

    scheme: str
    value: str
    meaning: str | None = None

    def __repr__(self) -> str:
        return f"Code({self.scheme}:{self.value} {self.meaning!r})"

    def same_concept(self, other: "Code | None") -> bool:
        """Return True if ``other`` names the same ``(scheme, value)`` pair."""
        if other is None:
            return False
        return self.scheme == other.scheme and self.value == other.value

    def with_meaning(self, meaning: str) -> "Code":
        """Return a copy of this code carrying ``meaning``."""
        return Code(scheme=self.scheme, value=self.value, meaning=meaning)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ValueType(Enum):
    """Content item value types understood by this codec.

    The enum values are the DICOM ``ValueType`` attribute strings.
    """

    TEXT = "TEXT"
    CODE = "CODE"
    NUM = "NUM"
    UIDREF = "UIDREF"
    SCOORD = "SCOORD"
    SCOORD3D = "SCOORD3D"
    CONTAINER = "CONTAINER"
    IMAGE = "IMAGE"


class RelationshipType(Enum):
    """Relationship of a content item with its parent."""

    CONTAINS = "CONTAINS"
    HAS_OBS_CONTEXT = "HAS OBS CONTEXT"
    HAS_ACQ_CONTEXT = "HAS ACQ CONTEXT"
    HAS_CONCEPT_MOD = "HAS CONCEPT MOD"
    HAS_PROPERTIES = "HAS PROPERTIES"
    INFERRED_FROM = "INFERRED FROM"
    SELECTED_FROM = "SELECTED FROM"


class GraphicType(Enum):
    """Graphic types for SCOORD and SCOORD3D items."""

    POINT = "POINT"
    MULTIPOINT = "MULTIPOINT"
    POLYLINE = "POLYLINE"
    POLYGON = "POLYGON"
    CIRCLE = "CIRCLE"
    ELLIPSE = "ELLIPSE"
    ELLIPSOID = "ELLIPSOID"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReferencedSOP:
    """Identity of the image (and frame) a measurement refers to.

    Parameters
    ----------
    sop_class_uid:
        SOP Class UID of the referenced instance.
    sop_instance_uid:
        SOP Instance UID of the referenced instance.
    frame_number:
        Referenced frame, populated only for multi-frame instances.
    """

    sop_class_uid: str
    sop_instance_uid: str
    frame_number: int | None = None


@dataclass(frozen=True, slots=True)
class TextValue:
    """Payload of a TEXT item."""

    text: str


@dataclass(frozen=True, slots=True)
class CodeValue:
    """Payload of a CODE item."""

    code: Code


@dataclass(frozen=True, slots=True)
class NumValue:
    """Payload of a NUM item: a measured value and its unit."""

    value: float
    unit: Code


@dataclass(frozen=True, slots=True)
class UidValue:
    """Payload of a UIDREF item."""

    uid: str


@dataclass(frozen=True, slots=True)
class Scoord:
    """Image-relative spatial coordinates.

    ``graphic_data`` is the flat ``(column, row, column, row, ...)`` list
    as stored in the document.
    """

    graphic_type: GraphicType
    graphic_data: tuple[float, ...]

    @property
    def points(self) -> list[tuple[float, float]]:
        """Return the graphic data as ``(column, row)`` pairs."""
        data = self.graphic_data
        return [(data[i], data[i + 1]) for i in range(0, len(data) - 1, 2)]


@dataclass(frozen=True, slots=True)
class Scoord3D:
    """Frame-of-reference-relative spatial coordinates in patient space (mm)."""

    graphic_type: GraphicType
    graphic_data: tuple[float, ...]
    frame_of_reference_uid: str

    @property
    def points(self) -> list[tuple[float, float, float]]:
        """Return the graphic data as ``(x, y, z)`` triples."""
        data = self.graphic_data
        return [(data[i], data[i + 1], data[i + 2]) for i in range(0, len(data) - 2, 3)]


@dataclass(frozen=True, slots=True)
class ContainerValue:
    """Payload of a CONTAINER item."""

    continuous: bool = False
    template_identifier: str | None = None
    mapping_resource: str | None = None


@dataclass(frozen=True, slots=True)
class ImageValue:
    """Payload of an IMAGE item."""

    referenced_sop: ReferencedSOP


Payload = Union[
    TextValue,
    CodeValue,
    NumValue,
    UidValue,
    Scoord,
    Scoord3D,
    ContainerValue,
    ImageValue,
]

_VALUE_TYPES: dict[type, ValueType] = {
    TextValue: ValueType.TEXT,
    CodeValue: ValueType.CODE,
    NumValue: ValueType.NUM,
    UidValue: ValueType.UIDREF,
    Scoord: ValueType.SCOORD,
    Scoord3D: ValueType.SCOORD3D,
    ContainerValue: ValueType.CONTAINER,
    ImageValue: ValueType.IMAGE,
}


# ---------------------------------------------------------------------------
# Content node
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ContentNode:
    """One item of an SR content tree.

    Parameters
    ----------
    concept:
        Concept name code.  ``None`` only for items that legitimately carry
        no concept name (e.g. an IMAGE item selected from a SCOORD).
    value:
        The payload; its type determines ``value_type``.
    relationship:
        Relationship with the parent item.  ``None`` for the root.
    children:
        Ordered child items.
    """

    concept: Code | None
    value: Payload
    relationship: RelationshipType | None = None
    children: tuple["ContentNode", ...] = field(default=())

    def __post_init__(self) -> None:
        if type(self.value) not in _VALUE_TYPES:
            raise TypeError(f"Unsupported content payload: {type(self.value)!r}")

    @property
    def value_type(self) -> ValueType:
        """Return the value type implied by the payload."""
        return _VALUE_TYPES[type(self.value)]

    @property
    def meaning(self) -> str | None:
        """Return the concept name's code meaning, if any."""
        return self.concept.meaning if self.concept is not None else None

    def walk(self):
        """Yield this node and every descendant in document order."""
        yield self
        for child in self.children:
            yield from child.walk()


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def text_item(
    concept: Code, text: str, relationship: RelationshipType = RelationshipType.CONTAINS
) -> ContentNode:
    return ContentNode(concept=concept, value=TextValue(text), relationship=relationship)


def code_item(
    concept: Code, code: Code, relationship: RelationshipType = RelationshipType.CONTAINS
) -> ContentNode:
    return ContentNode(concept=concept, value=CodeValue(code), relationship=relationship)


def uid_item(
    concept: Code, uid: str, relationship: RelationshipType = RelationshipType.HAS_OBS_CONTEXT
) -> ContentNode:
    return ContentNode(concept=concept, value=UidValue(uid), relationship=relationship)


def num_item(
    concept: Code,
    value: float,
    unit: Code,
    children: tuple[ContentNode, ...] = (),
    relationship: RelationshipType = RelationshipType.CONTAINS,
) -> ContentNode:
    return ContentNode(
        concept=concept,
        value=NumValue(value=float(value), unit=unit),
        relationship=relationship,
        children=children,
    )


def image_item(
    referenced_sop: ReferencedSOP,
    relationship: RelationshipType = RelationshipType.SELECTED_FROM,
    concept: Code | None = None,
) -> ContentNode:
    return ContentNode(
        concept=concept, value=ImageValue(referenced_sop), relationship=relationship
    )


def scoord_item(
    graphic_type: GraphicType,
    points: list[tuple[float, float]] | tuple[tuple[float, float], ...],
    referenced_sop: ReferencedSOP,
    relationship: RelationshipType = RelationshipType.INFERRED_FROM,
    concept: Code | None = None,
) -> ContentNode:
    """Build a SCOORD item whose IMAGE child references ``referenced_sop``."""
    data = tuple(float(c) for point in points for c in point[:2])
    return ContentNode(
        concept=concept,
        value=Scoord(graphic_type=graphic_type, graphic_data=data),
        relationship=relationship,
        children=(image_item(referenced_sop),),
    )


def scoord3d_item(
    graphic_type: GraphicType,
    points: list[tuple[float, float, float]] | tuple[tuple[float, float, float], ...],
    frame_of_reference_uid: str,
    relationship: RelationshipType = RelationshipType.INFERRED_FROM,
    concept: Code | None = None,
) -> ContentNode:
    data = tuple(float(c) for point in points for c in point[:3])
    return ContentNode(
        concept=concept,
        value=Scoord3D(
            graphic_type=graphic_type,
            graphic_data=data,
            frame_of_reference_uid=frame_of_reference_uid,
        ),
        relationship=relationship,
    )


def container_item(
    concept: Code,
    children: tuple[ContentNode, ...] = (),
    relationship: RelationshipType | None = RelationshipType.CONTAINS,
    template_identifier: str | None = None,
    mapping_resource: str | None = None,
) -> ContentNode:
    return ContentNode(
        concept=concept,
        value=ContainerValue(
            continuous=False,
            template_identifier=template_identifier,
            mapping_resource=mapping_resource,
        ),
        relationship=relationship,
        children=children,
    )
