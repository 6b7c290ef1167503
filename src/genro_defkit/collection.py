# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Collection operations - item-wise reshaping of a single sequence.

each() is the lightweight sibling of a helper: no buckets, no source
tags, no registration on a template. Each call to map() or wrap() returns
a new CollectionOp, so partial definitions can be shared safely.

Example:
    >>> pull_secrets = each(tpl.param('imagePullSecrets')).wrap('name')
    >>> pull_secrets.evaluate({'imagePullSecrets': ['reg-a', 'reg-b']})
    [{'name': 'reg-a'}, {'name': 'reg-b'}]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .exceptions import DefinitionError
from .rules import FieldMap, Ref
from .values import Deferred, Value, ValueTree, as_tree

logger = logging.getLogger(__name__)


class CollectionOp(Deferred):
    """A deferred per-item transformation of one sequence Value."""

    __slots__ = ('_source', '_steps')

    def __init__(self, source: Value, steps: tuple[FieldMap, ...] = ()) -> None:
        if not isinstance(source, Value):
            raise DefinitionError(
                f"each() expects a Value, got {type(source).__name__}"
            )
        self._source = source
        self._steps = steps

    def __repr__(self) -> str:
        return f"CollectionOp({self._source.path!r}, steps={len(self._steps)})"

    @property
    def source(self) -> Value:
        return self._source

    @property
    def steps(self) -> tuple[FieldMap, ...]:
        return self._steps

    def map(self, field_map: FieldMap | Mapping[str, Any]) -> CollectionOp:
        """Reshape every item with field_map."""
        if not isinstance(field_map, FieldMap):
            field_map = FieldMap(field_map)
        return CollectionOp(self._source, self._steps + (field_map,))

    def wrap(self, name: str) -> CollectionOp:
        """Embed every item as {name: item}."""
        if not isinstance(name, str) or not name:
            raise DefinitionError(f"wrap() expects a field name, got {name!r}")
        return self.map(FieldMap({name: Ref('.')}))

    def evaluate(self, values: Any = None) -> list[Any]:
        """Apply the steps to every item of the sequence.

        Args:
            values: Configuration snapshot. If None, the source Value is
                read from the tree it is bound to.

        Returns:
            A new list; empty if the source is unset.
        """
        tree = as_tree(values)
        source = self._source if tree is None else self._source.rebind(tree)
        if not source.is_set():
            return []
        if not source.is_sequence:
            logger.warning(
                "Collection source '%s' is not a sequence: nothing to transform",
                source.path,
            )
            return []

        items: list[Any] = []
        for item in source:
            for field_map in self._steps:
                item = ValueTree({'item': field_map.apply(item)}).get('item')
            items.append(item.to_python())
        return items


def each(source: Value) -> CollectionOp:
    """Start a collection operation over the sequence at source."""
    return CollectionOp(source)
