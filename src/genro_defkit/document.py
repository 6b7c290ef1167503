# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Document - the output tree that helpers and collections feed into.

A Document records assignments while a template is assembled and replays
them when it is rendered:

    >>> doc = Document(base={'apiVersion': 'apps/v1', 'kind': 'Deployment'})
    >>> doc.set('spec.template.spec.containers[0].image', tpl.param('image'))
    >>> doc.set_if(IsSet(mounts), 'spec.template.spec.containers[0].volumeMounts',
    ...            container_mounts)
    >>> doc.render({'image': 'nginx'})

Values are resolved at render time: Deferred objects (Value, HelperVar,
CollectionOp) are evaluated against the snapshot, anything else is copied
as is. An assignment whose value resolves to ABSENT is skipped, so absent
parameters never produce null placeholders.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .exceptions import DefinitionError
from .rules import Condition, IsSet
from .values import ABSENT, Deferred, Value, ValueTree, as_tree, parse_path


def condition_holds(
    condition: Condition | Value | bool, context: Value, root: ValueTree | None = None
) -> bool:
    """Evaluate a set_if condition.

    Args:
        condition: A bool, a Condition, or a Value (meaning "is set").
        context: Root Value of the render snapshot.
        root: The render snapshot itself, or None when rendering without one.
    """
    if isinstance(condition, bool):
        return condition
    if isinstance(condition, Value):
        condition = IsSet(condition)
    return condition.holds(context, root)


def _check_condition(condition: Any) -> None:
    if not isinstance(condition, (bool, Condition, Value)):
        raise DefinitionError(
            f"set_if condition must be a bool, Condition or Value, "
            f"not {type(condition).__name__}"
        )


def _output_segments(path: str) -> tuple[str | int, ...]:
    segments = parse_path(path)
    if not segments or isinstance(segments[0], int):
        raise DefinitionError(f"Invalid output path {path!r}")
    if any(isinstance(s, int) and s < 0 for s in segments):
        raise DefinitionError(f"Output path {path!r} cannot use negative indexes")
    return segments


def _container_for(segment: str | int) -> dict | list:
    return [] if isinstance(segment, int) else {}


def _child(container: dict | list, segment: str | int, next_segment: str | int) -> Any:
    """Return the child container at segment, creating or replacing it as needed."""
    if isinstance(container, list):
        while len(container) <= segment:
            container.append(None)
        child = container[segment]
        if not isinstance(child, (dict, list)) or isinstance(child, list) != isinstance(
            next_segment, int
        ):
            # leaf (or wrong kind) is converted to a branch
            child = _container_for(next_segment)
            container[segment] = child
        return child

    child = container.get(segment)
    if not isinstance(child, (dict, list)) or isinstance(child, list) != isinstance(
        next_segment, int
    ):
        child = _container_for(next_segment)
        container[segment] = child
    return child


def assign(target: dict, path: str, value: Any) -> None:
    """Set value at path inside target, creating intermediate nodes.

    Args:
        target: Root dict, modified in place.
        path: Dotted/bracketed path; '[N]' creates or extends lists.
        value: Value to store. Later assignments overwrite earlier ones.

    Raises:
        DefinitionError: If the path is empty, malformed, starts with an
            index or uses a negative index.
    """
    segments = _output_segments(path)

    current: dict | list = target
    for segment, next_segment in zip(segments, segments[1:]):
        current = _child(current, segment, next_segment)

    last = segments[-1]
    if isinstance(current, list):
        while len(current) <= last:
            current.append(None)
    current[last] = value


class Document:
    """An output tree assembled from deferred assignments.

    Args:
        name: Document name (used by Template for auxiliary outputs).
        base: Static content the rendered tree starts from (deep-copied).
    """

    __slots__ = ('_name', '_base', '_assignments')

    def __init__(self, name: str = 'output', base: Mapping[str, Any] | None = None) -> None:
        self._name = name
        self._base: dict[str, Any] = copy.deepcopy(dict(base)) if base else {}
        self._assignments: list[tuple[str, Any, Any]] = []

    def __repr__(self) -> str:
        return f"Document({self._name!r}, assignments={len(self._assignments)})"

    @property
    def name(self) -> str:
        return self._name

    def set(self, path: str, value: Any) -> Document:
        """Assign value at path when the document is rendered."""
        return self.set_if(True, path, value)

    def set_if(
        self, condition: Condition | Value | bool, path: str, value: Any
    ) -> Document:
        """Assign value at path only if condition holds at render time.

        Raises:
            DefinitionError: If path is malformed or condition has an
                unsupported type.
        """
        _output_segments(path)
        _check_condition(condition)
        self._assignments.append((path, value, condition))
        return self

    def render(self, values: Any = None) -> dict[str, Any]:
        """Build the output tree against a configuration snapshot.

        Args:
            values: ValueTree or plain configuration data. If None, bound
                Values are read from their own trees and unbound ones are
                absent.

        Returns:
            A new plain dict; rendering twice gives equal results.
        """
        return self._render(as_tree(values))

    def _render(self, tree: ValueTree | None) -> dict[str, Any]:
        context = tree.root if tree is not None else Value()
        result = copy.deepcopy(self._base)
        for path, value, condition in self._assignments:
            if not condition_holds(condition, context, tree):
                continue
            if isinstance(value, Deferred):
                value = value.evaluate(tree)
            else:
                value = copy.deepcopy(value)
            if value is ABSENT:
                continue
            assign(result, path, value)
        return result
