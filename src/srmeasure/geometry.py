"""Spatial context resolution for decoded measurement groups.

A measurement's coordinates are either image-relative (SCOORD, pixel
space of one referenced image) or frame-of-reference-relative (SCOORD3D,
patient space).  Which one a group carries decides whether the rebuilt
annotation is image-anchored or volume-anchored, so adapters must read
``SpatialCoordinates.is_3d`` before interpreting graphic data.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from srmeasure.errors import MissingSpatialContextError
from srmeasure.metadata import IMAGE_PLANE_MODULE, MetadataProvider, require_module
from srmeasure.tree.matching import find_value_type
from srmeasure.tree.nodes import ContentNode, ImageValue, ReferencedSOP, Scoord, Scoord3D, ValueType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpatialCoordinates:
    """Resolved spatial context of one measurement.

    Parameters
    ----------
    node:
        The SCOORD or SCOORD3D content item.
    frame_of_reference_uid:
        Frame of reference the coordinates live in.
    referenced_sop:
        The referenced image, for SCOORD measurements only.
    referenced_image_id:
        Application image id of ``referenced_sop``, for SCOORD only.
    """

    node: ContentNode
    frame_of_reference_uid: str | None
    referenced_sop: ReferencedSOP | None = None
    referenced_image_id: str | None = None

    @property
    def is_3d(self) -> bool:
        return self.node.value_type is ValueType.SCOORD3D

    @property
    def scoord(self) -> Scoord | None:
        value = self.node.value
        return value if isinstance(value, Scoord) else None

    @property
    def scoord3d(self) -> Scoord3D | None:
        value = self.node.value
        return value if isinstance(value, Scoord3D) else None

    @property
    def sop_instance_uid(self) -> str | None:
        return self.referenced_sop.sop_instance_uid if self.referenced_sop else None

    @property
    def frame_number(self) -> int | None:
        return self.referenced_sop.frame_number if self.referenced_sop else None


def resolve_spatial_coordinates(
    container: ContentNode,
    image_id_map: Mapping[str, str],
    metadata: MetadataProvider,
    tool_type: str | None = None,
) -> SpatialCoordinates:
    """Locate and resolve the coordinate item nested in ``container``.

    Parameters
    ----------
    container:
        The measurement's NUM item, or the measurement group itself for
        tools whose coordinates are not attached to a numeric value.
    image_id_map:
        SOP Instance UID -> application image id.
    metadata:
        Provider consulted for the referenced image's plane module.
    tool_type:
        Used in error messages only.

    Returns
    -------
    SpatialCoordinates
        Image-anchored for SCOORD, volume-anchored for SCOORD3D.

    Raises
    ------
    MissingSpatialContextError
        If ``container`` holds neither a SCOORD nor a SCOORD3D item.
    MissingMetadataError
        If the referenced image is unknown to the map or the provider.
    """
    scoord_node = find_value_type(container, ValueType.SCOORD)
    if scoord_node is not None:
        return _resolve_scoord(scoord_node, image_id_map, metadata, tool_type)

    scoord3d_node = find_value_type(container, ValueType.SCOORD3D)
    if scoord3d_node is not None:
        value = scoord3d_node.value
        assert isinstance(value, Scoord3D)
        return SpatialCoordinates(
            node=scoord3d_node, frame_of_reference_uid=value.frame_of_reference_uid
        )

    raise MissingSpatialContextError(tool_type)


def _resolve_scoord(
    scoord_node: ContentNode,
    image_id_map: Mapping[str, str],
    metadata: MetadataProvider,
    tool_type: str | None,
) -> SpatialCoordinates:
    image_node = find_value_type(scoord_node, ValueType.IMAGE)
    if image_node is None:
        raise MissingSpatialContextError(tool_type)
    assert isinstance(image_node.value, ImageValue)
    referenced_sop = image_node.value.referenced_sop

    referenced_image_id = image_id_map.get(referenced_sop.sop_instance_uid)
    image_plane = require_module(metadata, IMAGE_PLANE_MODULE, referenced_image_id)
    logger.debug(
        "Resolved SOP instance %s to image %s", referenced_sop.sop_instance_uid, referenced_image_id
    )
    return SpatialCoordinates(
        node=scoord_node,
        frame_of_reference_uid=image_plane.get("frame_of_reference_uid"),
        referenced_sop=referenced_sop,
        referenced_image_id=referenced_image_id,
    )
