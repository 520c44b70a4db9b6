"""Measurement adapters for sr-measure.

Importing this package registers the built-in tool kinds with
``default_registry``.  Applications with their own tool kinds register
them the same way at startup::

    from srmeasure.adapters import default_registry

    default_registry.register(MyToolAdapter())
"""
from __future__ import annotations

from srmeasure.adapters.arrow import ArrowAnnotateAdapter
from srmeasure.adapters.base import MeasurementAdapter
from srmeasure.adapters.key_image import KeyImageAdapter
from srmeasure.adapters.length import LEGACY_TRACKING_IDENTIFIER, LengthAdapter
from srmeasure.adapters.probe import ProbeAdapter
from srmeasure.adapters.registry import AdapterRegistry, ReplaceStrategy, default_registry


def register_builtin_adapters(registry: AdapterRegistry, replace: ReplaceStrategy = False) -> None:
    """Register Length, Probe, ArrowAnnotate and KeyImage with ``registry``."""
    length = LengthAdapter()
    registry.register(length, replace)
    registry.register_tracking_identifiers(length, LEGACY_TRACKING_IDENTIFIER)
    registry.register(ProbeAdapter(), replace)
    registry.register(ArrowAnnotateAdapter(), replace)
    registry.register(KeyImageAdapter(), replace)


register_builtin_adapters(default_registry)

__all__ = [
    "AdapterRegistry",
    "MeasurementAdapter",
    "LengthAdapter",
    "ProbeAdapter",
    "ArrowAnnotateAdapter",
    "KeyImageAdapter",
    "default_registry",
    "register_builtin_adapters",
]
