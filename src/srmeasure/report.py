"""TID 1500 measurement report assembly and parsing.

``MeasurementReport.generate_report`` turns per-image tool state into a
``StructuredReport``; ``MeasurementReport.generate_tool_state`` reads one
back.  Each measurement group is decoded independently: a group that
fails is logged and left out, and its siblings still decode.

Usage
-----
::

    from srmeasure.report import MeasurementReport

    report = MeasurementReport().generate_report(
        tool_state, metadata, world_to_image
    )
    measurements = MeasurementReport().generate_tool_state(
        report, {"1.2.3.4": "wadors:1"}, image_to_world, metadata
    )
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydicom.uid import PYDICOM_IMPLEMENTATION_UID, ExplicitVRLittleEndian, generate_uid

from srmeasure import codes
from srmeasure.adapters.registry import AdapterRegistry, default_registry
from srmeasure.codec import (
    AdapterHook,
    DecodeContext,
    decode_measurement_group,
    encode_measurement_group,
)
from srmeasure.errors import UnresolvedAdapterError, UnsupportedTemplateError
from srmeasure.metadata import (
    FRAME_NUMBER_MODULE,
    INSTANCE_MODULE,
    SOP_COMMON_MODULE,
    ImageToWorld,
    MetadataProvider,
    WorldToImage,
    require_module,
)
from srmeasure.state import Annotation, MeasurementData, ToolState
from srmeasure.tree.matching import code_meaning_equals, find_by_meaning
from srmeasure.tree.nodes import (
    ContainerValue,
    ContentNode,
    ReferencedSOP,
    RelationshipType,
    code_item,
    container_item,
    image_item,
)

logger = logging.getLogger(__name__)

STUDY_TAGS = (
    "StudyInstanceUID",
    "StudyDate",
    "StudyTime",
    "StudyID",
    "StudyDescription",
    "AccessionNumber",
    "ReferringPhysicianName",
    "PatientName",
    "PatientID",
    "PatientBirthDate",
    "PatientSex",
    "PatientAge",
    "IssuerOfPatientID",
)

SERIES_TAGS = (
    "SeriesInstanceUID",
    "SeriesNumber",
    "SeriesDescription",
    "SeriesDate",
    "SeriesTime",
    "Modality",
)


# ---------------------------------------------------------------------------
# Options and hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportOptions:
    """Settings for report generation.

    Parameters
    ----------
    character_set:
        Specific Character Set of the report.
    transfer_syntax_uid:
        Transfer syntax recorded in the file meta header.
    implementation_version_name:
        Implementation Version Name recorded in the file meta header.
    series_description:
        Series Description of the report series.
    series_number:
        Series Number of the report series.
    manufacturer:
        Manufacturer of the equipment creating the report.
    volume_image_ids:
        Returns the image ids of a volume id.  Needed only when tool
        state carries volume-anchored annotations under ``NO_IMAGE_ID``.
    """

    character_set: str = codes.DEFAULT_CHARACTER_SET
    transfer_syntax_uid: str = ExplicitVRLittleEndian
    implementation_version_name: str = "srmeasure"
    series_description: str = "Research Derived series"
    series_number: int = 99
    manufacturer: str = "sr-measure"
    volume_image_ids: Callable[[str], Sequence[str]] | None = None


@dataclass(frozen=True)
class ParseHooks:
    """Caller overrides for report parsing.

    Parameters
    ----------
    adapter_for_group:
        Called with ``(group, report, adapters_by_tool_type)`` before the
        registry is consulted.  Returning an adapter overrides the
        tracking-identifier lookup; returning ``None`` falls through.
    """

    adapter_for_group: AdapterHook | None = None


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivationSourceDataset:
    """Study and series attributes copied from a source instance."""

    attributes: Mapping[str, Any]

    @classmethod
    def from_instance(cls, instance: Mapping[str, Any]) -> "DerivationSourceDataset":
        tags = {**copy_study_tags(instance), **copy_series_tags(instance)}
        return cls(attributes=MappingProxyType(tags))

    @property
    def series_instance_uid(self) -> str | None:
        return self.attributes.get("SeriesInstanceUID")

    @property
    def study_instance_uid(self) -> str | None:
        return self.attributes.get("StudyInstanceUID")


def copy_study_tags(instance: Mapping[str, Any]) -> dict[str, Any]:
    return {tag: instance[tag] for tag in STUDY_TAGS if instance.get(tag) is not None}


def copy_series_tags(instance: Mapping[str, Any]) -> dict[str, Any]:
    return {tag: instance[tag] for tag in SERIES_TAGS if instance.get(tag) is not None}


@dataclass
class StructuredReport:
    """An SR document: header attributes plus the content tree.

    Parameters
    ----------
    content:
        Root CONTAINER of the content tree.
    header:
        DICOM keyword -> value for the dataset-level attributes.
        Sequences are lists of mappings.
    file_meta:
        DICOM keyword -> value for the file meta information.
    """

    content: ContentNode
    header: dict[str, Any] = field(default_factory=dict)
    file_meta: dict[str, Any] = field(default_factory=dict)

    @property
    def template_identifier(self) -> str | None:
        value = self.content.value
        return value.template_identifier if isinstance(value, ContainerValue) else None

    @property
    def sop_class_uid(self) -> str | None:
        return self.header.get("SOPClassUID")

    @property
    def is_3d(self) -> bool:
        return self.sop_class_uid == codes.COMPREHENSIVE_3D_SR_STORAGE

    def imaging_measurements(self) -> ContentNode | None:
        """Return the Imaging Measurements container, located by meaning."""
        return find_by_meaning(self.content.children, codes.IMAGING_MEASUREMENTS)

    def measurement_groups(self) -> list[ContentNode]:
        section = self.imaging_measurements()
        if section is None:
            return []
        return [
            child
            for child in section.children
            if code_meaning_equals(codes.MEASUREMENT_GROUP.meaning)(child)
        ]


# ---------------------------------------------------------------------------
# Assembler / parser
# ---------------------------------------------------------------------------


@dataclass
class _ReportBuild:
    """Accumulators for a single ``generate_report`` call."""

    derivation_source_datasets: list[DerivationSourceDataset] = field(default_factory=list)
    sop_instance_to_series: dict[str, str] = field(default_factory=dict)
    referenced_sops: list[ReferencedSOP] = field(default_factory=list)
    groups: list[ContentNode] = field(default_factory=list)
    is_3d: bool = False

    def add_derivation_source(self, instance: Mapping[str, Any]) -> None:
        series_uid = instance.get("SeriesInstanceUID")
        if any(d.series_instance_uid == series_uid for d in self.derivation_source_datasets):
            return
        self.derivation_source_datasets.append(DerivationSourceDataset.from_instance(instance))


class MeasurementReport:
    """Builds and reads TID 1500 measurement reports.

    Parameters
    ----------
    registry:
        Adapter registry used for both directions.  Defaults to the
        process-wide registry holding the built-in tool kinds.
    """

    def __init__(self, registry: AdapterRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def generate_report(
        self,
        tool_state: ToolState,
        metadata: MetadataProvider,
        world_to_image: WorldToImage,
        options: ReportOptions | None = None,
    ) -> StructuredReport:
        """Assemble a report from per-image tool state.

        Parameters
        ----------
        tool_state:
            image id -> tool type -> annotations.  Volume-anchored
            annotations live under ``codes.NO_IMAGE_ID``.
        metadata:
            Provider for SOP common, instance and frame number modules.
        world_to_image:
            Transform used for image-anchored annotations.
        options:
            Report settings; defaults apply when omitted.

        Raises
        ------
        MissingMetadataError
            If a source image's metadata cannot be found.
        ValueError
            If no annotation could be encoded.
        """
        options = options or ReportOptions()
        build = _ReportBuild()

        for image_id, tool_data in tool_state.items():
            tool_types = [t for t, annotations in tool_data.items() if annotations]
            if not tool_types:
                continue
            referenced_sop = self.generate_referenced_sop_sequence(
                tool_data, tool_types, metadata, image_id, build, options
            )
            if image_id == codes.NO_IMAGE_ID:
                build.is_3d = True

            for tool_type in tool_types:
                if tool_type not in self.registry:
                    logger.debug("No adapter for tool type %r; not exported", tool_type)
                    continue
                adapter = self.registry.get(tool_type)
                for annotation in tool_data[tool_type]:
                    build.groups.append(
                        encode_measurement_group(
                            annotation,
                            adapter,
                            None if image_id == codes.NO_IMAGE_ID else referenced_sop,
                            world_to_image,
                        )
                    )

        if not build.derivation_source_datasets:
            raise ValueError("Cannot generate a report without any annotated image")

        report = StructuredReport(
            content=self._content_tree(build),
            header=self._header(build, options),
            file_meta=self.generate_dataset_meta(options),
        )
        logger.debug(
            "Generated %s with %d measurement group(s) over %d series",
            "3-D report" if build.is_3d else "report",
            len(build.groups),
            len(build.derivation_source_datasets),
        )
        return report

    def generate_referenced_sop_sequence(
        self,
        tool_data: Mapping[str, list[Annotation]],
        tool_types: Sequence[str],
        metadata: MetadataProvider,
        image_id: str,
        build: _ReportBuild,
        options: ReportOptions,
    ) -> ReferencedSOP:
        """Return the referenced image shared by all measurements on ``image_id``.

        Also records the image's series and, for a series seen for the
        first time, its derivation source dataset.
        """
        effective_image_id = image_id
        if image_id == codes.NO_IMAGE_ID:
            effective_image_id = self.image_id_from_volume(tool_data, tool_types, options)

        sop_common = require_module(metadata, SOP_COMMON_MODULE, effective_image_id)
        instance = require_module(metadata, INSTANCE_MODULE, effective_image_id)

        sop_instance_uid = sop_common["sop_instance_uid"]
        sop_class_uid = sop_common["sop_class_uid"]
        build.sop_instance_to_series[sop_instance_uid] = instance.get("SeriesInstanceUID")
        build.add_derivation_source(instance)

        frame_number = None
        number_of_frames = instance.get("NumberOfFrames")
        if (number_of_frames and int(number_of_frames) > 1) or codes.is_multiframe_sop_class_uid(
            sop_class_uid
        ):
            frame = metadata.get(FRAME_NUMBER_MODULE, effective_image_id)
            frame_number = int(frame) if frame is not None else None

        referenced_sop = ReferencedSOP(
            sop_class_uid=sop_class_uid,
            sop_instance_uid=sop_instance_uid,
            frame_number=frame_number,
        )
        if referenced_sop not in build.referenced_sops:
            build.referenced_sops.append(referenced_sop)
        return referenced_sop

    def image_id_from_volume(
        self,
        tool_data: Mapping[str, list[Annotation]],
        tool_types: Sequence[str],
        options: ReportOptions,
    ) -> str:
        """Return the first image id of the first annotation's volume."""
        annotation = tool_data[tool_types[0]][0]
        volume_id = annotation.metadata.volume_id
        if volume_id is None or options.volume_image_ids is None:
            raise ValueError(
                f"Annotation {annotation.annotation_uid} is not anchored to an image "
                "and its volume cannot be resolved"
            )
        image_ids = options.volume_image_ids(volume_id)
        if not image_ids:
            raise ValueError(f"Volume {volume_id!r} has no images")
        return image_ids[0]

    def generate_dataset_meta(self, options: ReportOptions) -> dict[str, Any]:
        return {
            "FileMetaInformationVersion": b"\x00\x01",
            "TransferSyntaxUID": options.transfer_syntax_uid,
            "ImplementationClassUID": PYDICOM_IMPLEMENTATION_UID,
            "ImplementationVersionName": options.implementation_version_name,
        }

    def _content_tree(self, build: _ReportBuild) -> ContentNode:
        library_entries = tuple(
            image_item(sop, RelationshipType.CONTAINS) for sop in build.referenced_sops
        )
        return container_item(
            codes.MEASUREMENT_REPORT,
            relationship=None,
            template_identifier=codes.MEASUREMENT_REPORT_TEMPLATE,
            mapping_resource=codes.MAPPING_RESOURCE,
            children=(
                code_item(
                    codes.LANGUAGE_OF_CONTENT,
                    codes.ENGLISH_US,
                    relationship=RelationshipType.HAS_CONCEPT_MOD,
                ),
                code_item(
                    codes.PROCEDURE_REPORTED,
                    codes.IMAGING_PROCEDURE,
                    relationship=RelationshipType.HAS_CONCEPT_MOD,
                ),
                container_item(
                    codes.IMAGE_LIBRARY,
                    children=(container_item(codes.IMAGE_LIBRARY_GROUP, children=library_entries),),
                ),
                container_item(codes.IMAGING_MEASUREMENTS, children=tuple(build.groups)),
            ),
        )

    def _header(self, build: _ReportBuild, options: ReportOptions) -> dict[str, Any]:
        source = build.derivation_source_datasets[0]
        now = datetime.now()
        header: dict[str, Any] = {
            key: value
            for key, value in source.attributes.items()
            if key in STUDY_TAGS
        }
        header.update(
            {
                "SpecificCharacterSet": options.character_set,
                "SOPClassUID": (
                    codes.COMPREHENSIVE_3D_SR_STORAGE
                    if build.is_3d
                    else codes.COMPREHENSIVE_SR_STORAGE
                ),
                "SOPInstanceUID": generate_uid(),
                "SeriesInstanceUID": generate_uid(),
                "Modality": "SR",
                "SeriesNumber": options.series_number,
                "SeriesDescription": options.series_description,
                "InstanceNumber": 1,
                "Manufacturer": options.manufacturer,
                "ContentDate": now.strftime("%Y%m%d"),
                "ContentTime": now.strftime("%H%M%S"),
                "CompletionFlag": "INCOMPLETE",
                "VerificationFlag": "UNVERIFIED",
                "CurrentRequestedProcedureEvidenceSequence": self._evidence(build),
            }
        )
        return header

    def _evidence(self, build: _ReportBuild) -> list[dict[str, Any]]:
        studies: dict[str, dict[str, list[dict[str, Any]]]] = {}
        series_to_study = {
            d.series_instance_uid: d.study_instance_uid for d in build.derivation_source_datasets
        }
        for sop in build.referenced_sops:
            series_uid = build.sop_instance_to_series.get(sop.sop_instance_uid)
            study_uid = series_to_study.get(series_uid)
            instances = studies.setdefault(study_uid, {}).setdefault(series_uid, [])
            entry = {
                "ReferencedSOPClassUID": sop.sop_class_uid,
                "ReferencedSOPInstanceUID": sop.sop_instance_uid,
            }
            if entry not in instances:
                instances.append(entry)
        return [
            {
                "StudyInstanceUID": study_uid,
                "ReferencedSeriesSequence": [
                    {"SeriesInstanceUID": series_uid, "ReferencedSOPSequence": instances}
                    for series_uid, instances in series.items()
                ],
            }
            for study_uid, series in studies.items()
        ]

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def generate_tool_state(
        self,
        report: StructuredReport,
        image_id_map: Mapping[str, str],
        image_to_world: ImageToWorld,
        metadata: MetadataProvider,
        hooks: ParseHooks | None = None,
    ) -> MeasurementData:
        """Read the measurements of a TID 1500 report.

        Parameters
        ----------
        report:
            The report to read.
        image_id_map:
            SOP Instance UID -> application image id.
        image_to_world:
            Transform for image-relative coordinates.
        metadata:
            Provider for the referenced images' plane modules.
        hooks:
            Optional parsing overrides.

        Returns
        -------
        dict[str, list[MeasurementState]]
            Decoded measurements keyed by tool type.  Measurements carry
            SOP Instance UIDs; mapping them to image ids is up to the
            caller.

        Raises
        ------
        UnsupportedTemplateError
            If the report does not declare TID 1500.
        """
        if report.template_identifier != codes.MEASUREMENT_REPORT_TEMPLATE:
            raise UnsupportedTemplateError(
                report.template_identifier, codes.MEASUREMENT_REPORT_TEMPLATE
            )

        context = DecodeContext(
            registry=self.registry,
            image_id_map=image_id_map,
            image_to_world=image_to_world,
            metadata=metadata,
            adapter_hook=hooks.adapter_for_group if hooks else None,
            document=report,
        )
        measurement_data: MeasurementData = {}
        for index, group in enumerate(report.measurement_groups()):
            try:
                tool_type, state = decode_measurement_group(group, context)
            except UnresolvedAdapterError as exc:
                logger.warning("Skipping measurement group %d: %s", index, exc)
                continue
            except Exception:
                logger.exception(
                    "Unable to generate tool state for measurement group %d: %r", index, group
                )
                continue
            measurement_data.setdefault(tool_type, []).append(state)
        return measurement_data


# ---------------------------------------------------------------------------
# Default-registry shortcuts
# ---------------------------------------------------------------------------


def generate_report(
    tool_state: ToolState,
    metadata: MetadataProvider,
    world_to_image: WorldToImage,
    options: ReportOptions | None = None,
    registry: AdapterRegistry | None = None,
) -> StructuredReport:
    """Assemble a report using ``registry`` (default: the process-wide one)."""
    return MeasurementReport(registry).generate_report(tool_state, metadata, world_to_image, options)


def generate_tool_state(
    report: StructuredReport,
    image_id_map: Mapping[str, str],
    image_to_world: ImageToWorld,
    metadata: MetadataProvider,
    hooks: ParseHooks | None = None,
    registry: AdapterRegistry | None = None,
) -> MeasurementData:
    """Read a report using ``registry`` (default: the process-wide one)."""
    return MeasurementReport(registry).generate_tool_state(
        report, image_id_map, image_to_world, metadata, hooks
    )
