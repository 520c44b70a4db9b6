"""SR content tree module.

Exports the content node types, the concept matcher and the serializer
for converting trees to and from JSON/YAML.
"""
from __future__ import annotations

from srmeasure.tree.matching import (
    code_meaning_equals,
    code_value_match,
    filter_children,
    find_by_meaning,
    find_child,
    find_value_type,
    matches_code,
)
from srmeasure.tree.nodes import (
    Code,
    CodeValue,
    ContainerValue,
    ContentNode,
    GraphicType,
    ImageValue,
    NumValue,
    Payload,
    ReferencedSOP,
    RelationshipType,
    Scoord,
    Scoord3D,
    TextValue,
    UidValue,
    ValueType,
    code_item,
    container_item,
    image_item,
    num_item,
    scoord3d_item,
    scoord_item,
    text_item,
    uid_item,
)
from srmeasure.tree.serializer import ContentTreeSerializer

__all__ = [
    # Nodes
    "Code",
    "ContentNode",
    "ReferencedSOP",
    # Enums
    "ValueType",
    "RelationshipType",
    "GraphicType",
    # Payloads
    "Payload",
    "TextValue",
    "CodeValue",
    "NumValue",
    "UidValue",
    "Scoord",
    "Scoord3D",
    "ContainerValue",
    "ImageValue",
    # Builders
    "text_item",
    "code_item",
    "num_item",
    "uid_item",
    "image_item",
    "scoord_item",
    "scoord3d_item",
    "container_item",
    # Matching
    "code_value_match",
    "code_meaning_equals",
    "matches_code",
    "find_child",
    "filter_children",
    "find_value_type",
    "find_by_meaning",
    # Serializer
    "ContentTreeSerializer",
]
