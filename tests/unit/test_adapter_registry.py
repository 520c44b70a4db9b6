"""Unit tests for srmeasure.adapters.registry — AdapterRegistry, error types,
tracking identifier resolution and the validator fallback cache.
"""
from __future__ import annotations

import logging
import threading
from unittest.mock import MagicMock

import pytest

from srmeasure.adapters import (
    ArrowAnnotateAdapter,
    KeyImageAdapter,
    LengthAdapter,
    ProbeAdapter,
    default_registry,
)
from srmeasure.adapters.length import LEGACY_TRACKING_IDENTIFIER
from srmeasure.adapters.registry import AdapterRegistry
from srmeasure.errors import AdapterNotFoundError, DuplicateToolKindError
from srmeasure.report import MeasurementReport
from srmeasure.state import Annotation
from srmeasure.tree.nodes import ValueType


class CountingProbeAdapter(ProbeAdapter):
    """Probe adapter that counts validator calls."""

    def __init__(self) -> None:
        super().__init__()
        self.validator_calls = 0

    def is_valid_tracking_identifier(self, tracking_identifier: str) -> bool:
        self.validator_calls += 1
        return super().is_valid_tracking_identifier(tracking_identifier)


class FixedLengthAdapter(LengthAdapter):
    """Length adapter that reports a constant measured value."""

    def measured_value(self, annotation: Annotation) -> float | None:
        return 42.0


def _fresh_registry(name: str = "test") -> AdapterRegistry:
    """Return a new empty registry for each test."""
    return AdapterRegistry(name)


# ===========================================================================
# Error types
# ===========================================================================


class TestDuplicateToolKindError:
    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            raise DuplicateToolKindError("Length", "my-registry")

    def test_attributes(self) -> None:
        error = DuplicateToolKindError("Length", "my-registry")
        assert error.tool_type == "Length"
        assert error.registry_name == "my-registry"

    def test_message_contains_tool_type(self) -> None:
        assert "Length" in str(DuplicateToolKindError("Length", "my-registry"))


class TestAdapterNotFoundError:
    def test_is_key_error(self) -> None:
        with pytest.raises(KeyError):
            raise AdapterNotFoundError("Circle", "my-registry")

    def test_has_tool_type_attribute(self) -> None:
        assert AdapterNotFoundError("Circle", "r").tool_type == "Circle"


# ===========================================================================
# Construction
# ===========================================================================


class TestRegistryConstruction:
    def test_empty_registry_has_zero_length(self) -> None:
        assert len(_fresh_registry()) == 0

    def test_empty_registry_list_tool_types_is_empty(self) -> None:
        assert _fresh_registry().list_tool_types() == []

    def test_repr_contains_name(self) -> None:
        assert "viewer" in repr(_fresh_registry("viewer"))

    def test_name_property(self) -> None:
        assert _fresh_registry("viewer").name == "viewer"


# ===========================================================================
# Registration
# ===========================================================================


class TestRegister:
    def test_register_indexes_tool_type(self) -> None:
        registry = _fresh_registry()
        registry.register(LengthAdapter())
        assert "Length" in registry
        assert isinstance(registry.get("Length"), LengthAdapter)

    def test_register_indexes_primary_tracking_identifier(self) -> None:
        registry = _fresh_registry()
        adapter = LengthAdapter()
        registry.register(adapter)
        assert registry.resolve("Cornerstone3DTools@^0.1.0:Length") is adapter

    def test_duplicate_without_replace_raises(self) -> None:
        registry = _fresh_registry()
        registry.register(LengthAdapter())
        with pytest.raises(DuplicateToolKindError) as excinfo:
            registry.register(LengthAdapter())
        assert excinfo.value.tool_type == "Length"

    def test_duplicate_leaves_original_in_place(self) -> None:
        registry = _fresh_registry()
        original = LengthAdapter()
        registry.register(original)
        with pytest.raises(DuplicateToolKindError):
            registry.register(LengthAdapter())
        assert registry.get("Length") is original

    def test_replace_true_overwrites(self) -> None:
        registry = _fresh_registry()
        registry.register(LengthAdapter())
        replacement = LengthAdapter()
        registry.register(replacement, replace=True)
        assert registry.get("Length") is replacement
        assert len(registry) == 1

    def test_replace_callable_receives_previous(
        self, make_annotation, metadata, world_to_image
    ) -> None:
        registry = _fresh_registry()
        original = LengthAdapter()
        registry.register(original)
        callback = MagicMock()
        replacement = FixedLengthAdapter()
        registry.register(replacement, replace=callback)
        callback.assert_called_once_with(original)
        assert registry.get("Length") is replacement

        annotation = make_annotation("Length", [(0.0, 0.0, 0.0), (3.0, 4.0, 0.0)])
        report = MeasurementReport(registry).generate_report(
            {"img:1": {"Length": [annotation]}}, metadata, world_to_image
        )
        (group,) = report.measurement_groups()
        (num,) = [child for child in group.children if child.value_type is ValueType.NUM]
        assert num.value.value == 42.0

    def test_register_logs_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = _fresh_registry()
        with caplog.at_level(logging.DEBUG, logger="srmeasure.adapters.registry"):
            registry.register(ProbeAdapter())
        assert "Probe" in caplog.text

    def test_get_unknown_raises(self) -> None:
        with pytest.raises(AdapterNotFoundError):
            _fresh_registry().get("Circle")

    def test_adapters_by_tool_type_is_read_only(self) -> None:
        registry = _fresh_registry()
        registry.register(ProbeAdapter())
        view = registry.adapters_by_tool_type
        with pytest.raises(TypeError):
            view["Length"] = LengthAdapter()  # type: ignore[index]

    def test_list_tool_types_sorted(self) -> None:
        registry = _fresh_registry()
        registry.register(ProbeAdapter())
        registry.register(ArrowAnnotateAdapter())
        registry.register(LengthAdapter())
        assert registry.list_tool_types() == ["ArrowAnnotate", "Length", "Probe"]


# ===========================================================================
# Resolution
# ===========================================================================


class TestResolve:
    def test_unknown_identifier_returns_none(self) -> None:
        registry = _fresh_registry()
        registry.register(LengthAdapter())
        assert registry.resolve("OtherViewer@1.0:Bidirectional") is None

    def test_extra_tracking_identifier(self) -> None:
        registry = _fresh_registry()
        adapter = LengthAdapter()
        registry.register(adapter)
        registry.register_tracking_identifiers(adapter, LEGACY_TRACKING_IDENTIFIER)
        assert registry.resolve("cornerstoneTools@^4.0.0:Length") is adapter
        assert registry.list_tool_types() == ["Length"]

    def test_subtype_resolves_to_parent(self) -> None:
        registry = _fresh_registry()
        probe = ProbeAdapter()
        registry.register(probe)
        assert registry.resolve("Cornerstone3DTools@^0.1.0:Probe:KeyImage") is probe

    def test_subtype_prefers_own_adapter(self) -> None:
        registry = _fresh_registry()
        registry.register(ProbeAdapter())
        key_image = KeyImageAdapter()
        registry.register(key_image)
        assert registry.resolve("Cornerstone3DTools@^0.1.0:Probe:KeyImage") is key_image

    def test_fallback_result_is_cached(self) -> None:
        registry = _fresh_registry()
        adapter = CountingProbeAdapter()
        registry.register(adapter)
        identifier = "Cornerstone3DTools@^0.1.0:Probe:Custom"

        assert registry.resolve(identifier) is adapter
        calls_after_first = adapter.validator_calls
        assert calls_after_first == 1

        assert registry.resolve(identifier) is adapter
        assert adapter.validator_calls == calls_after_first

    def test_exact_match_skips_validators(self) -> None:
        registry = _fresh_registry()
        adapter = CountingProbeAdapter()
        registry.register(adapter)
        registry.resolve("Cornerstone3DTools@^0.1.0:Probe")
        assert adapter.validator_calls == 0

    def test_rejected_identifier_is_not_cached(self) -> None:
        registry = _fresh_registry()
        adapter = CountingProbeAdapter()
        registry.register(adapter)
        registry.resolve("Unknown")
        registry.resolve("Unknown")
        assert adapter.validator_calls == 2

    def test_concurrent_resolution_returns_same_adapter(self) -> None:
        registry = _fresh_registry()
        probe = ProbeAdapter()
        registry.register(probe)
        results: list[object] = []

        def worker() -> None:
            for _ in range(50):
                results.append(registry.resolve("Cornerstone3DTools@^0.1.0:Probe:Custom"))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(results) == 200
        assert all(result is probe for result in results)


# ===========================================================================
# Built-in registrations
# ===========================================================================


class TestDefaultRegistry:
    def test_builtin_tool_types(self) -> None:
        for tool_type in ("Length", "Probe", "ArrowAnnotate", "KeyImage"):
            assert tool_type in default_registry

    def test_legacy_length_identifier(self) -> None:
        assert isinstance(default_registry.resolve(LEGACY_TRACKING_IDENTIFIER), LengthAdapter)

    def test_fixture_registry_is_independent(self, registry: AdapterRegistry) -> None:
        assert registry is not default_registry
        assert registry.list_tool_types() == ["ArrowAnnotate", "KeyImage", "Length", "Probe"]
