"""Adapter registry for sr-measure.

Maps tool kinds and tracking identifiers to ``MeasurementAdapter``
instances.  Each tool kind has exactly one adapter; any number of
tracking identifiers may point at the same adapter.

Example
-------
Register an adapter::

    from srmeasure.adapters.registry import AdapterRegistry

    registry = AdapterRegistry("viewer")
    registry.register(LengthAdapter())

Override it later, keeping a handle on the original::

    registry.register(MyLengthAdapter(), replace=lambda previous: ...)

Resolve the adapter for a tracking identifier found in a document::

    adapter = registry.resolve("Cornerstone3DTools@^0.1.0:Length")

Thread safety
-------------
``resolve`` caches identifiers claimed through the validator fallback,
so it writes as well as reads.  Both maps are guarded by a single
re-entrant lock covering registration and that cache fill.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Union

from srmeasure.errors import AdapterNotFoundError, DuplicateToolKindError

if TYPE_CHECKING:
    from srmeasure.adapters.base import MeasurementAdapter

logger = logging.getLogger(__name__)

ReplaceStrategy = Union[bool, Callable[["MeasurementAdapter"], None]]


class AdapterRegistry:
    """Registry of measurement adapters keyed by tool kind and tracking identifier.

    Parameters
    ----------
    name:
        A human-readable name for this registry (used in error messages).
    """

    def __init__(self, name: str = "default") -> None:
        self._name = name
        self._lock = threading.RLock()
        self._by_tool_type: dict[str, MeasurementAdapter] = {}
        self._by_tracking_identifier: dict[str, MeasurementAdapter] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, adapter: "MeasurementAdapter", replace: ReplaceStrategy = False) -> None:
        """Register ``adapter`` under its tool type and primary tracking identifier.

        Parameters
        ----------
        adapter:
            The adapter to register.
        replace:
            What to do when the tool type is already registered.  Falsy
            rejects the registration; ``True`` overwrites; a callable is
            called with the previous adapter and then overwritten.

        Raises
        ------
        DuplicateToolKindError
            If the tool type is taken and ``replace`` is falsy.
        """
        tool_type = adapter.tool_type
        with self._lock:
            previous = self._by_tool_type.get(tool_type)
            if previous is not None:
                if not replace:
                    raise DuplicateToolKindError(tool_type, self._name)
                if callable(replace):
                    replace(previous)
                logger.debug(
                    "Replacing adapter %r for tool type %r in registry %r",
                    previous,
                    tool_type,
                    self._name,
                )
            self._by_tool_type[tool_type] = adapter
            self._by_tracking_identifier[adapter.tracking_identifier_text_value] = adapter
        logger.debug(
            "Registered adapter %r -> %s in registry %r",
            tool_type,
            type(adapter).__qualname__,
            self._name,
        )

    def register_tracking_identifiers(
        self, adapter: "MeasurementAdapter", *tracking_identifiers: str
    ) -> None:
        """Map extra tracking identifiers to ``adapter``.

        The tool-type map is not touched, so this is how one adapter
        answers to legacy identifiers written by older producers.
        """
        with self._lock:
            for identifier in tracking_identifiers:
                self._by_tracking_identifier[identifier] = adapter
        logger.debug(
            "Registered tracking identifiers %s for %r in registry %r",
            list(tracking_identifiers),
            adapter.tool_type,
            self._name,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def resolve(self, tracking_identifier: str) -> "MeasurementAdapter | None":
        """Return the adapter for ``tracking_identifier``, or ``None``.

        Exact matches are answered from the identifier map.  Otherwise
        every registered adapter's ``is_valid_tracking_identifier`` is
        probed in registration order; the first that accepts is cached
        under ``tracking_identifier`` and returned.
        """
        adapter = self._by_tracking_identifier.get(tracking_identifier)
        if adapter is not None:
            return adapter
        with self._lock:
            adapter = self._by_tracking_identifier.get(tracking_identifier)
            if adapter is not None:
                return adapter
            for candidate in list(self._by_tool_type.values()):
                if candidate.is_valid_tracking_identifier(tracking_identifier):
                    self._by_tracking_identifier[tracking_identifier] = candidate
                    logger.debug(
                        "Tracking identifier %r claimed by %r; cached",
                        tracking_identifier,
                        candidate.tool_type,
                    )
                    return candidate
        return None

    def get(self, tool_type: str) -> "MeasurementAdapter":
        """Return the adapter registered for ``tool_type``.

        Raises
        ------
        AdapterNotFoundError
            If no adapter is registered under ``tool_type``.
        """
        try:
            return self._by_tool_type[tool_type]
        except KeyError:
            raise AdapterNotFoundError(tool_type, self._name) from None

    @property
    def adapters_by_tool_type(self) -> Mapping[str, "MeasurementAdapter"]:
        """Read-only view of the tool-type map."""
        return MappingProxyType(self._by_tool_type)

    @property
    def name(self) -> str:
        return self._name

    def list_tool_types(self) -> list[str]:
        """Return a sorted list of all registered tool types."""
        return sorted(self._by_tool_type)

    def __contains__(self, tool_type: object) -> bool:
        """Support ``"Length" in registry`` membership test."""
        return tool_type in self._by_tool_type

    def __len__(self) -> int:
        """Return the number of registered tool types."""
        return len(self._by_tool_type)

    def __repr__(self) -> str:
        return f"AdapterRegistry(name={self._name!r}, tool_types={self.list_tool_types()})"


default_registry = AdapterRegistry("default")
