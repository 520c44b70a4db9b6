"""Exception types for sr-measure.

Errors fall into four scopes:

* document-level, raised before any measurement group is read
  (``UnsupportedTemplateError``);
* group-level, raised while one measurement group is decoded and caught
  by the report parser so sibling groups still decode
  (``MissingSpatialContextError``, ``UnresolvedAdapterError``,
  ``MissingMetadataError``);
* item-level, raised while a stored content item is converted and
  caught by the dataset reader so only that item is dropped
  (``UnsupportedValueTypeError``, ``UnsupportedRelationshipError``);
* registration-time (``DuplicateToolKindError``, ``AdapterNotFoundError``).
"""
from __future__ import annotations


class SrMeasureError(Exception):
    """Base class for every error raised by sr-measure."""


class UnsupportedTemplateError(SrMeasureError, ValueError):
    """Raised when a document does not declare the TID 1500 template."""

    def __init__(self, template_identifier: str | None, expected: str = "1500") -> None:
        self.template_identifier = template_identifier
        self.expected = expected
        super().__init__(
            f"Unsupported SR template {template_identifier!r}; "
            f"only TID {expected} measurement reports can be interpreted."
        )


class MissingSpatialContextError(SrMeasureError):
    """Raised when a measurement has neither a SCOORD nor a SCOORD3D item."""

    def __init__(self, tool_type: str | None = None) -> None:
        self.tool_type = tool_type
        suffix = f" for tool {tool_type!r}" if tool_type else ""
        super().__init__(f"No spatial coordinates group found{suffix}.")


class UnresolvedAdapterError(SrMeasureError, LookupError):
    """Raised when no registered adapter claims a tracking identifier."""

    def __init__(self, tracking_identifier: str | None) -> None:
        self.tracking_identifier = tracking_identifier
        super().__init__(
            f"No measurement adapter is registered for tracking identifier "
            f"{tracking_identifier!r}."
        )


class DuplicateToolKindError(SrMeasureError, ValueError):
    """Raised when a tool kind is registered twice without a replace strategy."""

    def __init__(self, tool_type: str, registry_name: str) -> None:
        self.tool_type = tool_type
        self.registry_name = registry_name
        super().__init__(
            f"The tool type {tool_type!r} is already registered in the "
            f"{registry_name!r} registry. Use a different tool type or pass "
            "replace=True (or a callable) to override it."
        )


class AdapterNotFoundError(SrMeasureError, KeyError):
    """Raised when a tool kind is looked up but was never registered."""

    def __init__(self, tool_type: str, registry_name: str) -> None:
        self.tool_type = tool_type
        self.registry_name = registry_name
        super().__init__(
            f"Tool type {tool_type!r} is not registered in the "
            f"{registry_name!r} registry."
        )


class MissingMetadataError(SrMeasureError, LookupError):
    """Raised when the metadata provider has no record for a required module."""

    def __init__(self, module_name: str, image_id: str | None) -> None:
        self.module_name = module_name
        self.image_id = image_id
        super().__init__(
            f"Metadata module {module_name!r} is not available for image "
            f"{image_id!r}."
        )


class UnsupportedValueTypeError(SrMeasureError, ValueError):
    """Raised when a content item carries a value type this codec cannot map."""

    def __init__(self, value_type: str | None) -> None:
        self.value_type = value_type
        super().__init__(f"Unsupported content item value type {value_type!r}.")


class UnsupportedRelationshipError(SrMeasureError, ValueError):
    """Raised when a content item carries a relationship type this codec cannot map."""

    def __init__(self, relationship: str | None) -> None:
        self.relationship = relationship
        super().__init__(f"Unsupported content item relationship type {relationship!r}.")
