"""Content tree serialization and deserialization.

Provides round-trip serialization of ``ContentNode`` trees to and from
JSON and YAML.  The serialized form is a plain dict/list structure that
maps naturally to both formats and is handy for fixtures and debugging
dumps.

Usage
-----
::

    from srmeasure.tree.serializer import ContentTreeSerializer

    serializer = ContentTreeSerializer()
    data = serializer.to_dict(group)
    yaml_text = serializer.to_yaml(group)
    group2 = serializer.from_yaml(yaml_text)
    assert group == group2
"""
from __future__ import annotations

import json

import yaml

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
)


class ContentTreeSerializer:
    """Converts between ``ContentNode`` trees and plain Python dicts.

    Each node dict carries a ``"value_type"`` discriminator so that
    deserialization is unambiguous.
    """

    # ------------------------------------------------------------------
    # Serialization (tree → dict)
    # ------------------------------------------------------------------

    def to_dict(self, node: ContentNode) -> dict[str, object]:
        """Serialize a ``ContentNode`` (and its subtree) to a JSON-compatible dict."""
        data: dict[str, object] = {
            "value_type": node.value_type.value,
            "concept": self._code_to_dict(node.concept) if node.concept else None,
            "relationship": node.relationship.value if node.relationship else None,
        }
        data.update(self._payload_to_dict(node.value))
        if node.children:
            data["children"] = [self.to_dict(child) for child in node.children]
        return data

    def _code_to_dict(self, code: Code) -> dict[str, object]:
        return {"scheme": code.scheme, "value": code.value, "meaning": code.meaning}

    def _sop_to_dict(self, sop: ReferencedSOP) -> dict[str, object]:
        return {
            "sop_class_uid": sop.sop_class_uid,
            "sop_instance_uid": sop.sop_instance_uid,
            "frame_number": sop.frame_number,
        }

    def _payload_to_dict(self, value: Payload) -> dict[str, object]:
        if isinstance(value, TextValue):
            return {"text": value.text}
        if isinstance(value, CodeValue):
            return {"code": self._code_to_dict(value.code)}
        if isinstance(value, NumValue):
            return {"numeric_value": value.value, "unit": self._code_to_dict(value.unit)}
        if isinstance(value, UidValue):
            return {"uid": value.uid}
        if isinstance(value, Scoord):
            return {
                "graphic_type": value.graphic_type.value,
                "graphic_data": list(value.graphic_data),
            }
        if isinstance(value, Scoord3D):
            return {
                "graphic_type": value.graphic_type.value,
                "graphic_data": list(value.graphic_data),
                "frame_of_reference_uid": value.frame_of_reference_uid,
            }
        if isinstance(value, ContainerValue):
            return {
                "continuous": value.continuous,
                "template_identifier": value.template_identifier,
                "mapping_resource": value.mapping_resource,
            }
        if isinstance(value, ImageValue):
            return {"referenced_sop": self._sop_to_dict(value.referenced_sop)}
        raise TypeError(f"Unknown payload type: {type(value)}")

    # ------------------------------------------------------------------
    # Deserialization (dict → tree)
    # ------------------------------------------------------------------

    def from_dict(self, data: dict[str, object]) -> ContentNode:
        """Deserialize a ``ContentNode`` subtree from a plain dict."""
        concept = data.get("concept")
        relationship = data.get("relationship")
        return ContentNode(
            concept=self._code_from_dict(concept) if concept else None,
            value=self._payload_from_dict(ValueType(data["value_type"]), data),
            relationship=RelationshipType(relationship) if relationship else None,
            children=tuple(self.from_dict(c) for c in data.get("children", [])),
        )

    def _code_from_dict(self, d: dict[str, object]) -> Code:
        return Code(scheme=d["scheme"], value=d["value"], meaning=d.get("meaning"))

    def _sop_from_dict(self, d: dict[str, object]) -> ReferencedSOP:
        frame = d.get("frame_number")
        return ReferencedSOP(
            sop_class_uid=d["sop_class_uid"],
            sop_instance_uid=d["sop_instance_uid"],
            frame_number=int(frame) if frame is not None else None,
        )

    def _payload_from_dict(self, value_type: ValueType, d: dict[str, object]) -> Payload:
        if value_type is ValueType.TEXT:
            return TextValue(text=d["text"])
        if value_type is ValueType.CODE:
            return CodeValue(code=self._code_from_dict(d["code"]))
        if value_type is ValueType.NUM:
            return NumValue(value=float(d["numeric_value"]), unit=self._code_from_dict(d["unit"]))
        if value_type is ValueType.UIDREF:
            return UidValue(uid=d["uid"])
        if value_type is ValueType.SCOORD:
            return Scoord(
                graphic_type=GraphicType(d["graphic_type"]),
                graphic_data=tuple(float(v) for v in d.get("graphic_data", [])),
            )
        if value_type is ValueType.SCOORD3D:
            return Scoord3D(
                graphic_type=GraphicType(d["graphic_type"]),
                graphic_data=tuple(float(v) for v in d.get("graphic_data", [])),
                frame_of_reference_uid=d["frame_of_reference_uid"],
            )
        if value_type is ValueType.CONTAINER:
            return ContainerValue(
                continuous=bool(d.get("continuous", False)),
                template_identifier=d.get("template_identifier"),
                mapping_resource=d.get("mapping_resource"),
            )
        if value_type is ValueType.IMAGE:
            return ImageValue(referenced_sop=self._sop_from_dict(d["referenced_sop"]))
        raise ValueError(f"Unknown value type: {value_type!r}")

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def to_json(self, node: ContentNode, indent: int = 2) -> str:
        """Serialize a ``ContentNode`` to a JSON string."""
        return json.dumps(self.to_dict(node), indent=indent, ensure_ascii=False)

    def from_json(self, text: str) -> ContentNode:
        """Deserialize a ``ContentNode`` from a JSON string."""
        data: dict[str, object] = json.loads(text)
        return self.from_dict(data)

    # ------------------------------------------------------------------
    # YAML helpers
    # ------------------------------------------------------------------

    def to_yaml(self, node: ContentNode) -> str:
        """Serialize a ``ContentNode`` to a YAML string."""
        return yaml.dump(
            self.to_dict(node), default_flow_style=False, allow_unicode=True, sort_keys=False
        )

    def from_yaml(self, text: str) -> ContentNode:
        """Deserialize a ``ContentNode`` from a YAML string."""
        data: dict[str, object] = yaml.safe_load(text)
        return self.from_dict(data)
