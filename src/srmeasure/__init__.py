"""sr-measure — annotation tool state to DICOM SR TID 1500 measurement reports and back.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    import srmeasure

    # Tool state: image id -> tool type -> annotations
    report = srmeasure.generate_report(tool_state, metadata, world_to_image)

    # Encode with pydicom
    srmeasure.write_report(report, "measurements.dcm")

    # Read back: tool type -> decoded measurements
    report = srmeasure.read_report("measurements.dcm")
    measurements = srmeasure.generate_tool_state(
        report, sop_instance_uid_to_image_id, image_to_world, metadata
    )

    # Custom tool kinds register with the process-wide registry
    srmeasure.register_adapter(MyToolAdapter())

    srmeasure.__version__
    '0.1.0'
"""
from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

__version__: str = "0.1.0"

if TYPE_CHECKING:
    from srmeasure.adapters.base import MeasurementAdapter
    from srmeasure.adapters.registry import ReplaceStrategy
    from srmeasure.metadata import ImageToWorld, MetadataProvider, WorldToImage
    from srmeasure.report import ParseHooks, ReportOptions, StructuredReport
    from srmeasure.state import MeasurementData, ToolState


def generate_report(
    tool_state: "ToolState",
    metadata: "MetadataProvider",
    world_to_image: "WorldToImage",
    options: "ReportOptions | None" = None,
) -> "StructuredReport":
    """Assemble a TID 1500 report from per-image tool state.

    Parameters
    ----------
    tool_state:
        image id -> tool type -> annotations.
    metadata:
        Provider of the source images' metadata modules.
    world_to_image:
        ``(image_id, world_point) -> (column, row)``.
    options:
        Report settings.

    Returns
    -------
    StructuredReport
        The assembled report.
    """
    from srmeasure.report import generate_report as _generate_report

    return _generate_report(tool_state, metadata, world_to_image, options)


def generate_tool_state(
    report: "StructuredReport",
    image_id_map: Mapping[str, str],
    image_to_world: "ImageToWorld",
    metadata: "MetadataProvider",
    hooks: "ParseHooks | None" = None,
) -> "MeasurementData":
    """Read the measurements of a TID 1500 report.

    Parameters
    ----------
    report:
        The report to read.
    image_id_map:
        SOP Instance UID -> application image id.
    image_to_world:
        ``(image_id, (column, row)) -> world_point``.
    metadata:
        Provider of the referenced images' metadata modules.
    hooks:
        Optional parsing overrides.

    Returns
    -------
    dict[str, list[MeasurementState]]
        Decoded measurements keyed by tool type.

    Raises
    ------
    srmeasure.errors.UnsupportedTemplateError
        If the report is not a TID 1500 measurement report.
    """
    from srmeasure.report import generate_tool_state as _generate_tool_state

    return _generate_tool_state(report, image_id_map, image_to_world, metadata, hooks)


def register_adapter(adapter: "MeasurementAdapter", replace: "ReplaceStrategy" = False) -> None:
    """Register ``adapter`` with the process-wide registry.

    Raises
    ------
    srmeasure.errors.DuplicateToolKindError
        If the tool type is already registered and ``replace`` is falsy.
    """
    from srmeasure.adapters import default_registry

    default_registry.register(adapter, replace)


def read_report(path: str | Path) -> "StructuredReport":
    """Read a DICOM SR file with pydicom."""
    from srmeasure.dataset import read_report as _read_report

    return _read_report(path)


def write_report(report: "StructuredReport", path: str | Path) -> None:
    """Write ``report`` as a DICOM Part 10 file with pydicom."""
    from srmeasure.dataset import write_report as _write_report

    _write_report(report, path)


__all__ = [
    "__version__",
    "generate_report",
    "generate_tool_state",
    "register_adapter",
    "read_report",
    "write_report",
]
