"""Conversion between ``StructuredReport`` and pydicom datasets.

pydicom owns the DICOM encoding: value representations, transfer
syntaxes and file I/O.  This module only maps content items and header
attributes onto pydicom ``Dataset`` objects and back, so reports can be
written with ``write_report`` and read with ``read_report``.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pydicom
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.multival import MultiValue
from pydicom.sequence import Sequence as DicomSequence
from pydicom.valuerep import DSfloat, format_number_as_ds

from srmeasure.errors import UnsupportedRelationshipError, UnsupportedValueTypeError
from srmeasure.report import StructuredReport
from srmeasure.tree.nodes import (
    Code,
    CodeValue,
    ContainerValue,
    ContentNode,
    GraphicType,
    ImageValue,
    NumValue,
    ReferencedSOP,
    RelationshipType,
    Scoord,
    Scoord3D,
    TextValue,
    UidValue,
    ValueType,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Codes
# ---------------------------------------------------------------------------


# CodeValue is SH; longer values go in LongCodeValue (UC).
_MAX_CODE_VALUE_LENGTH = 16


def code_to_dataset(code: Code) -> Dataset:
    item = Dataset()
    if len(code.value) > _MAX_CODE_VALUE_LENGTH:
        item.LongCodeValue = code.value
    else:
        item.CodeValue = code.value
    item.CodingSchemeDesignator = code.scheme
    if code.meaning is not None:
        item.CodeMeaning = code.meaning
    return item


def code_from_dataset(item: Dataset) -> Code:
    value = item.get("CodeValue") or item.get("LongCodeValue") or item.get("URNCodeValue") or ""
    return Code(
        scheme=str(item.get("CodingSchemeDesignator", "")),
        value=str(value),
        meaning=item.get("CodeMeaning"),
    )


def _first(sequence: Sequence[Dataset] | None) -> Dataset | None:
    if not sequence:
        return None
    return sequence[0]


# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------


def node_to_dataset(node: ContentNode) -> Dataset:
    """Convert a content node (and its subtree) to a pydicom content item."""
    item = Dataset()
    if node.relationship is not None:
        item.RelationshipType = node.relationship.value
    item.ValueType = node.value_type.value
    if node.concept is not None:
        item.ConceptNameCodeSequence = [code_to_dataset(node.concept)]

    value = node.value
    if isinstance(value, TextValue):
        item.TextValue = value.text
    elif isinstance(value, CodeValue):
        item.ConceptCodeSequence = [code_to_dataset(value.code)]
    elif isinstance(value, NumValue):
        measured = Dataset()
        measured.NumericValue = format_number_as_ds(value.value)
        measured.MeasurementUnitsCodeSequence = [code_to_dataset(value.unit)]
        item.MeasuredValueSequence = [measured]
    elif isinstance(value, UidValue):
        item.UID = value.uid
    elif isinstance(value, Scoord):
        item.GraphicType = value.graphic_type.value
        item.GraphicData = list(value.graphic_data)
    elif isinstance(value, Scoord3D):
        item.GraphicType = value.graphic_type.value
        item.GraphicData = list(value.graphic_data)
        item.ReferencedFrameOfReferenceUID = value.frame_of_reference_uid
    elif isinstance(value, ContainerValue):
        item.ContinuityOfContent = "CONTINUOUS" if value.continuous else "SEPARATE"
        if value.template_identifier is not None:
            template = Dataset()
            template.MappingResource = value.mapping_resource or ""
            template.TemplateIdentifier = value.template_identifier
            item.ContentTemplateSequence = [template]
    elif isinstance(value, ImageValue):
        item.ReferencedSOPSequence = [_sop_to_dataset(value.referenced_sop)]

    if node.children:
        item.ContentSequence = [node_to_dataset(child) for child in node.children]
    return item


def node_from_dataset(item: Dataset) -> ContentNode:
    """Convert a pydicom content item (and its subtree) to a content node.

    Raises
    ------
    UnsupportedValueTypeError
        If the item's value type is not one this codec models.
    UnsupportedRelationshipError
        If the item's relationship type is not one this codec models.
    """
    raw_value_type = item.get("ValueType")
    try:
        value_type = ValueType(raw_value_type)
    except ValueError:
        raise UnsupportedValueTypeError(raw_value_type) from None

    concept_item = _first(item.get("ConceptNameCodeSequence"))
    return ContentNode(
        concept=code_from_dataset(concept_item) if concept_item is not None else None,
        value=_payload_from_dataset(value_type, item),
        relationship=_relationship_from_dataset(item),
        children=tuple(_children_from_dataset(item)),
    )


def _relationship_from_dataset(item: Dataset) -> RelationshipType | None:
    relationship = item.get("RelationshipType")
    if not relationship:
        return None
    try:
        return RelationshipType(relationship)
    except ValueError:
        raise UnsupportedRelationshipError(relationship) from None


def _children_from_dataset(item: Dataset) -> list[ContentNode]:
    children: list[ContentNode] = []
    for index, child in enumerate(item.get("ContentSequence", []), start=1):
        try:
            children.append(node_from_dataset(child))
        except (UnsupportedValueTypeError, UnsupportedRelationshipError) as exc:
            # PNAME, DATE, by-reference and similar items carry no measurement data.
            logger.debug("Dropping content item: %s", exc)
        except (AttributeError, IndexError, KeyError, ValueError) as exc:
            logger.warning(
                "Dropping malformed %s content item %d: %s",
                child.get("ValueType"),
                index,
                exc,
            )
    return children


def _payload_from_dataset(value_type: ValueType, item: Dataset):
    if value_type is ValueType.TEXT:
        return TextValue(text=str(item.get("TextValue", "")))
    if value_type is ValueType.CODE:
        return CodeValue(code=code_from_dataset(item.ConceptCodeSequence[0]))
    if value_type is ValueType.NUM:
        measured = item.MeasuredValueSequence[0]
        return NumValue(
            value=float(DSfloat(measured.NumericValue)),
            unit=code_from_dataset(measured.MeasurementUnitsCodeSequence[0]),
        )
    if value_type is ValueType.UIDREF:
        return UidValue(uid=str(item.UID))
    if value_type is ValueType.SCOORD:
        return Scoord(
            graphic_type=GraphicType(item.GraphicType),
            graphic_data=tuple(float(v) for v in _as_list(item.GraphicData)),
        )
    if value_type is ValueType.SCOORD3D:
        return Scoord3D(
            graphic_type=GraphicType(item.GraphicType),
            graphic_data=tuple(float(v) for v in _as_list(item.GraphicData)),
            frame_of_reference_uid=str(item.ReferencedFrameOfReferenceUID),
        )
    if value_type is ValueType.CONTAINER:
        template = _first(item.get("ContentTemplateSequence"))
        return ContainerValue(
            continuous=item.get("ContinuityOfContent") == "CONTINUOUS",
            template_identifier=str(template.TemplateIdentifier) if template is not None else None,
            mapping_resource=template.get("MappingResource") if template is not None else None,
        )
    if value_type is ValueType.IMAGE:
        return ImageValue(referenced_sop=_sop_from_dataset(item.ReferencedSOPSequence[0]))
    raise UnsupportedValueTypeError(value_type.value)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (MultiValue, list, tuple)):
        return list(value)
    return [value]


def _sop_to_dataset(sop: ReferencedSOP) -> Dataset:
    item = Dataset()
    item.ReferencedSOPClassUID = sop.sop_class_uid
    item.ReferencedSOPInstanceUID = sop.sop_instance_uid
    if sop.frame_number is not None:
        item.ReferencedFrameNumber = sop.frame_number
    return item


def _sop_from_dataset(item: Dataset) -> ReferencedSOP:
    frame = item.get("ReferencedFrameNumber")
    if frame is not None:
        frame = int(_as_list(frame)[0])
    return ReferencedSOP(
        sop_class_uid=str(item.ReferencedSOPClassUID),
        sop_instance_uid=str(item.ReferencedSOPInstanceUID),
        frame_number=frame,
    )


# ---------------------------------------------------------------------------
# Header attributes
# ---------------------------------------------------------------------------


def _mapping_to_dataset(attributes: Mapping[str, Any], target: Dataset | None = None) -> Dataset:
    dataset = target if target is not None else Dataset()
    for keyword, value in attributes.items():
        if isinstance(value, list) and value and isinstance(value[0], Mapping):
            value = DicomSequence([_mapping_to_dataset(entry) for entry in value])
        setattr(dataset, keyword, value)
    return dataset


def _dataset_to_mapping(dataset: Dataset) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for element in dataset:
        keyword = element.keyword
        if not keyword or keyword in _CONTENT_KEYWORDS:
            continue
        if element.VR == "SQ":
            attributes[keyword] = [_dataset_to_mapping(entry) for entry in element.value]
        else:
            attributes[keyword] = element.value
    return attributes


# Attributes of the root content item; they live in the content tree.
_CONTENT_KEYWORDS = frozenset(
    {
        "ValueType",
        "ConceptNameCodeSequence",
        "ContinuityOfContent",
        "ContentTemplateSequence",
        "ContentSequence",
    }
)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def to_dataset(report: StructuredReport) -> Dataset:
    """Build a pydicom dataset (with file meta) for ``report``."""
    dataset = node_to_dataset(report.content)
    _mapping_to_dataset(report.header, dataset)

    file_meta = FileMetaDataset()
    _mapping_to_dataset(report.file_meta, file_meta)
    if "SOPClassUID" in dataset:
        file_meta.MediaStorageSOPClassUID = dataset.SOPClassUID
    if "SOPInstanceUID" in dataset:
        file_meta.MediaStorageSOPInstanceUID = dataset.SOPInstanceUID
    dataset.file_meta = file_meta
    return dataset


def from_dataset(dataset: Dataset) -> StructuredReport:
    """Build a ``StructuredReport`` from a pydicom SR dataset."""
    file_meta = getattr(dataset, "file_meta", None)
    return StructuredReport(
        content=node_from_dataset(dataset),
        header=_dataset_to_mapping(dataset),
        file_meta=_dataset_to_mapping(file_meta) if file_meta is not None else {},
    )


def write_report(report: StructuredReport, path: str | Path) -> None:
    """Encode ``report`` as a DICOM Part 10 file at ``path``."""
    dataset = to_dataset(report)
    dataset.save_as(str(path), enforce_file_format=True)
    logger.debug("Wrote structured report %s to %s", dataset.get("SOPInstanceUID"), path)


def read_report(path: str | Path) -> StructuredReport:
    """Read a DICOM SR file into a ``StructuredReport``."""
    dataset = pydicom.dcmread(str(path))
    return from_dataset(dataset)
