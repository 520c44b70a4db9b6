"""Shared test fixtures for sr-measure.

Fixtures defined here are available to all tests in the suite without
needing an explicit import.  The images live in one CT series; world
coordinates map to image coordinates by dropping ``z``.
"""
from __future__ import annotations

import pytest

from srmeasure.adapters import AdapterRegistry, register_builtin_adapters
from srmeasure.metadata import StaticMetadataProvider
from srmeasure.state import Annotation, AnnotationData, AnnotationMetadata

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"
ENHANCED_CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2.1"

STUDY_UID = "1.2.826.0.1.3680043.8.498.1"
SERIES_UID = "1.2.826.0.1.3680043.8.498.2"
FRAME_OF_REFERENCE_UID = "1.2.826.0.1.3680043.8.498.9"

SOP_INSTANCE_UIDS = {
    "img:1": "1.2.826.0.1.3680043.8.498.101",
    "img:2": "1.2.826.0.1.3680043.8.498.102",
    "img:mf": "1.2.826.0.1.3680043.8.498.103",
}


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "srmeasure"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string."""
    return "0.1.0"


@pytest.fixture()
def metadata() -> StaticMetadataProvider:
    provider = StaticMetadataProvider()
    instance = {
        "StudyInstanceUID": STUDY_UID,
        "SeriesInstanceUID": SERIES_UID,
        "PatientID": "PAT-001",
        "PatientName": "Doe^Jane",
        "StudyDate": "20240102",
        "Modality": "CT",
    }
    provider.add_image(
        "img:1",
        sop_class_uid=CT_IMAGE_STORAGE,
        sop_instance_uid=SOP_INSTANCE_UIDS["img:1"],
        frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
        instance=instance,
    )
    provider.add_image(
        "img:2",
        sop_class_uid=CT_IMAGE_STORAGE,
        sop_instance_uid=SOP_INSTANCE_UIDS["img:2"],
        frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
        instance=instance,
    )
    provider.add_image(
        "img:mf",
        sop_class_uid=ENHANCED_CT_IMAGE_STORAGE,
        sop_instance_uid=SOP_INSTANCE_UIDS["img:mf"],
        frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
        instance={**instance, "NumberOfFrames": 10},
        frame_number=3,
    )
    return provider


@pytest.fixture()
def sop_instance_uids() -> dict[str, str]:
    """Image id -> SOP Instance UID."""
    return dict(SOP_INSTANCE_UIDS)


@pytest.fixture()
def image_id_map() -> dict[str, str]:
    """SOP Instance UID -> image id."""
    return {uid: image_id for image_id, uid in SOP_INSTANCE_UIDS.items()}


@pytest.fixture()
def world_to_image():
    def transform(image_id, point):
        return (point[0], point[1])

    return transform


@pytest.fixture()
def image_to_world():
    def transform(image_id, point):
        return (float(point[0]), float(point[1]), 0.0)

    return transform


@pytest.fixture()
def registry() -> AdapterRegistry:
    """Return a registry holding only the built-in adapters."""
    fresh = AdapterRegistry("test")
    register_builtin_adapters(fresh)
    return fresh


@pytest.fixture()
def frame_of_reference_uid() -> str:
    return FRAME_OF_REFERENCE_UID


@pytest.fixture()
def make_annotation():
    """Return a factory building an annotation from world points."""

    def factory(
        tool_name: str,
        points: list[tuple[float, float, float]],
        image_id: str | None = "img:1",
        **metadata_kwargs,
    ) -> Annotation:
        return Annotation(
            annotation_uid=f"{tool_name.lower()}-{len(points)}",
            metadata=AnnotationMetadata(
                tool_name=tool_name,
                referenced_image_id=image_id,
                frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
                **metadata_kwargs,
            ),
            data=AnnotationData(points=list(points)),
        )

    return factory
