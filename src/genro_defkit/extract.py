# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Source bucket extraction.

A configuration value often groups same-purpose items by kind, e.g.::

    volumeMounts:
      pvc:       [{name: data, mountPath: /data, claimName: data-pvc}]
      configMap: [{name: conf, mountPath: /etc/app, cmName: app-conf}]

from_fields() flattens such buckets into one ordered list of Records, each
tagged with the bucket it came from. Order is bucket order as given by the
caller, then item order inside each bucket. Nothing is sorted or
deduplicated here.
"""

from __future__ import annotations

import logging
from typing import Any

from .values import Value

logger = logging.getLogger(__name__)


class Record:
    """One extracted item together with the bucket it came from.

    Attributes:
        source: The bucket name, or None for items that did not come
            from a bucket extraction (e.g. a chained helper's output).
        value: Value handle pointing at the item.
        index: Position of the item inside its bucket.
    """

    __slots__ = ('source', 'value', 'index')

    def __init__(self, source: str | None, value: Value, index: int = 0) -> None:
        self.source = source
        self.value = value
        self.index = index

    def __repr__(self) -> str:
        return f"Record({self.source!r}, {self.value.path!r})"

    def get(self, path: str) -> Value:
        """Shortcut for record.value.get(path)."""
        return self.value.get(path)

    def to_python(self) -> Any:
        return self.value.to_python()


def iter_bucket(bucket: Value) -> list[Value]:
    """Return the items of a bucket in declared order.

    Sequences yield their items, mappings yield their values (named
    items). Unset buckets yield nothing; scalars are skipped with a
    warning.
    """
    if not bucket.is_set():
        return []
    if bucket.is_sequence or bucket.is_mapping:
        return bucket.values()
    logger.warning(
        "Bucket '%s' is a scalar, not a sequence or mapping: skipped", bucket.path
    )
    return []


def from_fields(root: Value, *buckets: str) -> list[Record]:
    """Flatten named buckets under root into an ordered list of Records.

    Args:
        root: The Value holding the buckets.
        *buckets: Bucket names, in the order their items must appear.

    Returns:
        Records in bucket order, then item order.

    Example:
        >>> tree = ValueTree({'b1': ['a', 'b'], 'b2': ['c']})
        >>> [r.value.resolve() for r in from_fields(tree.root, 'b1', 'b2')]
        ['a', 'b', 'c']
    """
    records: list[Record] = []
    for name in buckets:
        for index, item in enumerate(iter_bucket(root.get(name))):
            records.append(Record(name, item, index))
    return records
