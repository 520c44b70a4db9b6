"""Measurement group codec.

Encoding turns one annotation into a TID 1501 Measurement Group through
the adapter registered for its tool kind.  Decoding goes the other way:
it identifies the adapter from the group's Tracking Identifier, then
hands the group to the adapter, which uses ``get_setup_measurement_data``
for everything tool-independent (finding, finding sites, spatial
context, label).
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pydicom.uid import generate_uid

from srmeasure import codes
from srmeasure.errors import UnresolvedAdapterError
from srmeasure.geometry import SpatialCoordinates, resolve_spatial_coordinates
from srmeasure.metadata import ImageToWorld, MetadataProvider, WorldToImage
from srmeasure.state import Annotation, AnnotationData, AnnotationMetadata, MeasurementState
from srmeasure.templates import measurement_group
from srmeasure.tree.matching import (
    filter_children,
    find_by_meaning,
    find_child,
    find_value_type,
    matches_code,
)
from srmeasure.tree.nodes import (
    Code,
    CodeValue,
    ContentNode,
    NumValue,
    ReferencedSOP,
    TextValue,
    UidValue,
    ValueType,
)

if TYPE_CHECKING:
    from srmeasure.adapters.base import MeasurementAdapter
    from srmeasure.adapters.registry import AdapterRegistry
    from srmeasure.report import StructuredReport

logger = logging.getLogger(__name__)

AdapterHook = Callable[
    [ContentNode, "StructuredReport | None", Mapping[str, "MeasurementAdapter"]],
    "MeasurementAdapter | None",
]


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def derive_label(finding: Code | None, finding_sites: Sequence[Code]) -> str:
    """Return the user label carried by free-text finding codes.

    The first free-text finding site wins; a free-text finding is used
    only when no finding site carries free text.  Returns ``""`` when
    neither does.
    """
    for site in finding_sites:
        if codes.is_free_text(site):
            return site.meaning or ""
    if codes.is_free_text(finding):
        return finding.meaning or ""
    return ""


def encode_label(
    label: str, finding: Code | None, finding_sites: Sequence[Code]
) -> tuple[Code | None, tuple[Code, ...]]:
    """Fold ``label`` into the finding codes so ``derive_label`` recovers it.

    The label becomes a free-text Finding when the annotation has no
    Finding, otherwise a leading free-text Finding Site.
    """
    sites = tuple(finding_sites)
    if not label or derive_label(finding, sites) == label:
        return finding, sites
    sites = tuple(site for site in sites if not codes.is_free_text(site))
    if finding is None or codes.is_free_text(finding):
        return codes.free_text_code(label), sites
    return finding, (codes.free_text_code(label),) + sites


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def encode_measurement_group(
    annotation: Annotation,
    adapter: "MeasurementAdapter",
    referenced_sop: ReferencedSOP | None,
    world_to_image: WorldToImage,
    tracking_unique_identifier: str | None = None,
) -> ContentNode:
    """Encode ``annotation`` as a Measurement Group container.

    Parameters
    ----------
    annotation:
        The annotation to encode.
    adapter:
        Adapter registered for the annotation's tool kind.
    referenced_sop:
        Referenced image shared by every measurement on the source image;
        ``None`` is allowed for volume-anchored annotations.
    world_to_image:
        Transform used by 2-D adapters.
    tracking_unique_identifier:
        Defaults to a freshly generated UID.
    """
    arguments = adapter.get_representation_arguments(annotation, world_to_image)
    representation = adapter.representation(arguments.with_referenced_sop(referenced_sop))
    uid = tracking_unique_identifier or generate_uid()
    return measurement_group(representation, uid)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


@dataclass
class SetupMeasurementData:
    """Tool-independent pieces of a decoded measurement group.

    Parameters
    ----------
    default_state:
        The measurement with finding, finding sites, description, label
        and anchoring filled in; adapters add their geometry to it.
    num:
        The group's NUM item, if it has one.
    spatial:
        The resolved spatial coordinates.
    """

    default_state: MeasurementState
    num: ContentNode | None
    spatial: SpatialCoordinates

    @property
    def measured_value(self) -> float | None:
        if self.num is None:
            return None
        value = self.num.value
        return value.value if isinstance(value, NumValue) else None


def get_setup_measurement_data(
    group: ContentNode,
    image_id_map: Mapping[str, str],
    metadata: MetadataProvider,
    tool_type: str,
) -> SetupMeasurementData:
    """Extract the tool-independent state of a measurement group.

    Raises
    ------
    MissingSpatialContextError
        If no SCOORD or SCOORD3D item is found.
    MissingMetadataError
        If the referenced image cannot be resolved.
    """
    finding_node = find_child(group, matches_code(codes.FINDING))
    site_nodes = filter_children(group, matches_code(codes.FINDING_SITE, codes.FINDING_SITE_OLD))
    num_node = find_value_type(group, ValueType.NUM)

    spatial = resolve_spatial_coordinates(
        num_node if num_node is not None else group, image_id_map, metadata, tool_type
    )

    finding = _concept_code(finding_node)
    finding_sites = [code for code in map(_concept_code, site_nodes) if code is not None]
    label = derive_label(finding, finding_sites)

    annotation = Annotation(
        annotation_uid=generate_uid(),
        metadata=AnnotationMetadata(
            tool_name=tool_type,
            referenced_image_id=spatial.referenced_image_id,
            frame_of_reference_uid=spatial.frame_of_reference_uid,
            label=label,
        ),
        data=AnnotationData(frame_number=spatial.frame_number),
        finding=None if codes.is_free_text(finding) else finding,
        finding_sites=[site for site in finding_sites if not codes.is_free_text(site)],
        description=finding.meaning if finding is not None else None,
    )
    state = MeasurementState(
        annotation=annotation,
        description=annotation.description,
        sop_instance_uid=spatial.sop_instance_uid,
        finding=finding,
        finding_sites=finding_sites,
    )
    return SetupMeasurementData(default_state=state, num=num_node, spatial=spatial)


def _concept_code(node: ContentNode | None) -> Code | None:
    if node is None or not isinstance(node.value, CodeValue):
        return None
    return node.value.code


@dataclass
class DecodeContext:
    """Collaborators shared by every group decoded from one document.

    Parameters
    ----------
    registry:
        Registry used to resolve tracking identifiers.
    image_id_map:
        SOP Instance UID -> application image id.
    image_to_world:
        Transform from image ``(column, row)`` to world coordinates.
    metadata:
        Metadata provider.
    adapter_hook:
        Optional override consulted before the registry.
    document:
        The report the groups come from, passed to ``adapter_hook``.
    """

    registry: "AdapterRegistry"
    image_id_map: Mapping[str, str]
    image_to_world: ImageToWorld
    metadata: MetadataProvider
    adapter_hook: AdapterHook | None = None
    document: "StructuredReport | None" = field(default=None)


def tracking_identifier_of(group: ContentNode) -> str | None:
    node = find_by_meaning(group.children, codes.TRACKING_IDENTIFIER)
    if node is None or not isinstance(node.value, TextValue):
        return None
    return node.value.text


def tracking_unique_identifier_of(group: ContentNode) -> str | None:
    node = find_by_meaning(group.children, codes.TRACKING_UNIQUE_IDENTIFIER)
    if node is None or not isinstance(node.value, UidValue):
        return None
    return node.value.uid


def resolve_adapter(group: ContentNode, context: DecodeContext) -> "MeasurementAdapter":
    """Pick the adapter for ``group``: the hook first, then the registry.

    Raises
    ------
    UnresolvedAdapterError
        If neither claims the group.
    """
    tracking_identifier = tracking_identifier_of(group)
    adapter = None
    if context.adapter_hook is not None:
        adapter = context.adapter_hook(
            group, context.document, context.registry.adapters_by_tool_type
        )
    if adapter is None and tracking_identifier is not None:
        adapter = context.registry.resolve(tracking_identifier)
    if adapter is None:
        raise UnresolvedAdapterError(tracking_identifier)
    return adapter


def decode_measurement_group(
    group: ContentNode, context: DecodeContext
) -> tuple[str, MeasurementState]:
    """Decode one Measurement Group.

    Returns
    -------
    tuple[str, MeasurementState]
        The resolved tool type and the rebuilt measurement.

    Raises
    ------
    UnresolvedAdapterError
        If no adapter claims the group's tracking identifier.
    SrMeasureError
        Any group-local failure raised while extracting the measurement.
    """
    adapter = resolve_adapter(group, context)
    tracking_identifier = tracking_identifier_of(group)
    state = adapter.get_measurement_data(
        group,
        context.image_id_map,
        context.image_to_world,
        context.metadata,
        tracking_identifier,
    )
    state.tracking_identifier = tracking_identifier
    state.tracking_unique_identifier = tracking_unique_identifier_of(group)
    return adapter.tool_type, state
