"""Metadata provider contract and coordinate transform signatures.

The codec never reads image headers itself.  It asks a caller-supplied
provider for named metadata modules, keyed by the application's image
id:

``imagePlaneModule``
    Mapping with ``frame_of_reference_uid`` (plus spacing/orientation
    entries the codec does not interpret).
``sopCommonModule``
    Mapping with ``sop_class_uid`` and ``sop_instance_uid``.
``instance``
    Mapping of DICOM keywords to values for the instance: study and
    series attributes, ``SeriesInstanceUID``, ``NumberOfFrames``.
``frameNumber``
    The 1-based frame number of the image id within its instance.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from srmeasure.errors import MissingMetadataError

IMAGE_PLANE_MODULE = "imagePlaneModule"
SOP_COMMON_MODULE = "sopCommonModule"
INSTANCE_MODULE = "instance"
FRAME_NUMBER_MODULE = "frameNumber"

Point2D = Sequence[float]
Point3D = Sequence[float]

# (image id, world point) -> (column, row)
WorldToImage = Callable[[str, Point3D], Point2D]
# (image id, (column, row)) -> world point
ImageToWorld = Callable[[str, Point2D], Point3D]


class MetadataProvider(Protocol):
    """Anything with a ``get(module_name, image_id)`` lookup."""

    def get(self, module_name: str, image_id: str) -> Any: ...


def require_module(provider: MetadataProvider, module_name: str, image_id: str | None) -> Any:
    """Return the ``module_name`` record for ``image_id``.

    Raises
    ------
    MissingMetadataError
        If ``image_id`` is ``None`` or the provider has no such record.
    """
    if image_id is None:
        raise MissingMetadataError(module_name, image_id)
    record = provider.get(module_name, image_id)
    if record is None:
        raise MissingMetadataError(module_name, image_id)
    return record


class StaticMetadataProvider:
    """In-memory metadata provider keyed by ``(module_name, image_id)``.

    Example
    -------
    ::

        provider = StaticMetadataProvider()
        provider.add_image(
            "wadors:1",
            sop_class_uid="1.2.840.10008.5.1.4.1.1.2",
            sop_instance_uid="1.2.3.4",
            frame_of_reference_uid="1.2.3.9",
            instance={"SeriesInstanceUID": "1.2.3", "StudyInstanceUID": "1.2"},
        )
    """

    def __init__(self) -> None:
        self._modules: dict[tuple[str, str], Any] = {}

    def get(self, module_name: str, image_id: str) -> Any:
        return self._modules.get((module_name, image_id))

    def set(self, module_name: str, image_id: str, record: Any) -> None:
        self._modules[(module_name, image_id)] = record

    def add_image(
        self,
        image_id: str,
        *,
        sop_class_uid: str,
        sop_instance_uid: str,
        frame_of_reference_uid: str,
        instance: Mapping[str, Any],
        frame_number: int = 1,
    ) -> None:
        """Register every module the codec reads for one image."""
        self.set(
            SOP_COMMON_MODULE,
            image_id,
            {"sop_class_uid": sop_class_uid, "sop_instance_uid": sop_instance_uid},
        )
        self.set(IMAGE_PLANE_MODULE, image_id, {"frame_of_reference_uid": frame_of_reference_uid})
        self.set(INSTANCE_MODULE, image_id, dict(instance))
        self.set(FRAME_NUMBER_MODULE, image_id, frame_number)

    def __contains__(self, key: object) -> bool:
        return key in self._modules

    def __len__(self) -> int:
        return len(self._modules)
