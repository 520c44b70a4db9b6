#!/usr/bin/env python3
"""Example: Quickstart — sr-measure

Minimal working example: export a Length and a Probe annotation as a
TID 1500 measurement report, write it to disk, read it back and decode
the measurements.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install sr-measure
"""
from __future__ import annotations

import tempfile
from pathlib import Path

import srmeasure
from srmeasure.metadata import StaticMetadataProvider
from srmeasure.state import Annotation, AnnotationData, AnnotationMetadata
from srmeasure.tree.nodes import Code
from srmeasure.tree.serializer import ContentTreeSerializer

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"
SOP_INSTANCE_UID = "1.2.826.0.1.3680043.8.498.101"
FRAME_OF_REFERENCE_UID = "1.2.826.0.1.3680043.8.498.9"


def world_to_image(image_id, point):
    return (point[0], point[1])


def image_to_world(image_id, point):
    return (point[0], point[1], 0.0)


def main() -> None:
    print(f"sr-measure version: {srmeasure.__version__}")

    metadata = StaticMetadataProvider()
    metadata.add_image(
        "wadors:1",
        sop_class_uid=CT_IMAGE_STORAGE,
        sop_instance_uid=SOP_INSTANCE_UID,
        frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
        instance={
            "StudyInstanceUID": "1.2.826.0.1.3680043.8.498.1",
            "SeriesInstanceUID": "1.2.826.0.1.3680043.8.498.2",
            "PatientID": "PAT-001",
            "PatientName": "Doe^Jane",
        },
    )

    length = Annotation(
        annotation_uid="length-1",
        metadata=AnnotationMetadata(
            tool_name="Length",
            referenced_image_id="wadors:1",
            frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
            label="Target 1",
        ),
        data=AnnotationData(points=[(10.0, 10.0, 0.0), (40.0, 50.0, 0.0)]),
        finding=Code("SCT", "4147007", "Mass"),
    )
    probe = Annotation(
        annotation_uid="probe-1",
        metadata=AnnotationMetadata(
            tool_name="Probe",
            referenced_image_id="wadors:1",
            frame_of_reference_uid=FRAME_OF_REFERENCE_UID,
        ),
        data=AnnotationData(points=[(64.0, 64.0, 0.0)]),
    )
    tool_state = {"wadors:1": {"Length": [length], "Probe": [probe]}}

    # Step 1: Assemble the report
    report = srmeasure.generate_report(tool_state, metadata, world_to_image)
    groups = report.measurement_groups()
    print(f"Report SOP class: {report.sop_class_uid}, measurement groups: {len(groups)}")

    # Step 2: Dump one measurement group as YAML
    print(ContentTreeSerializer().to_yaml(groups[0]))

    # Step 3: Write and read back with pydicom
    with tempfile.TemporaryDirectory() as directory:
        path = Path(directory) / "measurements.dcm"
        srmeasure.write_report(report, path)
        restored = srmeasure.read_report(path)

    # Step 4: Decode the measurements
    measurements = srmeasure.generate_tool_state(
        restored, {SOP_INSTANCE_UID: "wadors:1"}, image_to_world, metadata
    )
    for tool_type, states in measurements.items():
        for state in states:
            annotation = state.annotation
            print(
                f"{tool_type}: label={annotation.metadata.label!r} "
                f"points={annotation.data.points} stats={annotation.data.cached_stats}"
            )


if __name__ == "__main__":
    main()
