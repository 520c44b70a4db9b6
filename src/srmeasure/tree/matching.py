"""Concept matching for content tree nodes.

Two ways of recognising a node are supported:

* by coded concept, ``(scheme, value)`` against a primary code and an
  optional legacy code (``code_value_match``);
* by concept meaning text (``code_meaning_equals``).  Several producers
  only fill in the meaning for Tracking Identifier, Tracking Unique
  Identifier, Imaging Measurements and Measurement Group, so those roles
  are looked up this way.  Callers go through ``find_by_meaning`` so the
  lookup strategy can change in one place.

Every finder returns the *first* matching child in document order.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

from srmeasure.tree.nodes import Code, ContentNode, ValueType

NodePredicate = Callable[[ContentNode], bool]


def code_value_match(node: ContentNode, code: Code, legacy_code: Code | None = None) -> bool:
    """Return True if ``node``'s concept name is ``code`` or ``legacy_code``.

    Parameters
    ----------
    node:
        The content item to test.
    code:
        Current concept code.
    legacy_code:
        Retired code for the same concept, consulted only when supplied.

    Returns
    -------
    bool
        ``False`` when the node has no concept name.
    """
    concept = node.concept
    if concept is None:
        return False
    if code.same_concept(concept):
        return True
    return legacy_code is not None and legacy_code.same_concept(concept)


def code_meaning_equals(meaning: str) -> NodePredicate:
    """Return a predicate matching nodes whose concept meaning is ``meaning``."""

    def predicate(node: ContentNode) -> bool:
        return node.concept is not None and node.concept.meaning == meaning

    return predicate


def matches_code(code: Code, legacy_code: Code | None = None) -> NodePredicate:
    """Return ``code_value_match`` bound to ``code`` as a predicate."""
    return lambda node: code_value_match(node, code, legacy_code)


def has_value_type(value_type: ValueType) -> NodePredicate:
    return lambda node: node.value_type is value_type


def find_first(nodes: Iterable[ContentNode], predicate: NodePredicate) -> ContentNode | None:
    for node in nodes:
        if predicate(node):
            return node
    return None


def find_child(node: ContentNode, predicate: NodePredicate) -> ContentNode | None:
    """Return the first child of ``node`` accepted by ``predicate``."""
    return find_first(node.children, predicate)


def filter_children(node: ContentNode, predicate: NodePredicate) -> list[ContentNode]:
    """Return every child of ``node`` accepted by ``predicate``, in order."""
    return [child for child in node.children if predicate(child)]


def find_value_type(node: ContentNode, value_type: ValueType) -> ContentNode | None:
    return find_child(node, has_value_type(value_type))


def find_by_meaning(nodes: Iterable[ContentNode], concept: Code) -> ContentNode | None:
    """Find the first node whose concept meaning equals ``concept.meaning``."""
    if concept.meaning is None:
        raise ValueError(f"{concept!r} has no meaning to match on")
    return find_first(nodes, code_meaning_equals(concept.meaning))
