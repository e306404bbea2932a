"""
Field locators.

A locator resolves a field path inside a document to a value, or reports
that nothing is there by returning :data:`~condexpr.expression.values.MISSING`.
A stored Null is a value (``None``), not an absence.

:class:`DocumentPathLocator` understands the path syntax used in condition
expressions::

    name                 top-level field
    address.city         nested map field
    tags[0]              list element
    orders[2].items[0].sku

An exact top-level key always wins, so a field literally named ``"a.b"`` is
found before the nested path ``a`` → ``b`` is tried.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Union

from .values import MISSING, is_set

_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


class FieldLocator(ABC):
    """Interface for resolving field paths in documents."""

    @abstractmethod
    def locate(self, document: Mapping[str, Any], path: str) -> Any:
        """
        Resolve ``path`` in ``document``.

        Returns:
            The value at the path, or MISSING
        """
        pass


class TopLevelLocator(FieldLocator):
    """Looks up top-level keys only."""

    def locate(self, document: Mapping[str, Any], path: str) -> Any:
        return document.get(path, MISSING)


class DocumentPathLocator(FieldLocator):
    """Resolves dotted and indexed paths through maps and lists."""

    def locate(self, document: Mapping[str, Any], path: str) -> Any:
        if path in document:
            return document[path]

        segments = split_path(path)
        if segments is None:
            return MISSING

        current: Any = document
        for segment in segments:
            if isinstance(segment, int):
                if is_set(current) or not isinstance(current, (list, tuple)):
                    return MISSING
                if segment >= len(current):
                    return MISSING
                current = current[segment]
            else:
                if not isinstance(current, Mapping) or segment not in current:
                    return MISSING
                current = current[segment]
        return current


def split_path(path: str) -> Union[List[Union[str, int]], None]:
    """
    Split a field path into map keys and list indexes.

    Returns:
        Segments in order, or None if the path is malformed

    Example:
        >>> split_path("orders[2].sku")
        ['orders', 2, 'sku']
    """
    segments: List[Union[str, int]] = []
    position = 0
    expect_name = True

    while position < len(path):
        if path[position] == "." and not expect_name:
            position += 1
            expect_name = True
            continue

        match = _SEGMENT.match(path, position)
        if match is None:
            return None

        name, index = match.groups()
        if name is not None:
            if not expect_name:
                return None
            segments.append(name)
        else:
            if expect_name:
                return None
            segments.append(int(index))
        expect_name = False
        position = match.end()

    if expect_name:
        return None
    return segments
