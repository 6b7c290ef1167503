# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""ValueTree - A read-only, addressable view over configuration data.

This module provides the configuration side of defkit: a ValueTree holds a
frozen snapshot of user-supplied parameters, and Value is a lightweight
handle pointing at one path inside it.

Key Features:
    - **Total access**: get() never fails; missing or malformed paths give
      an absent Value instead of raising
    - **Presence testing**: is_set() treats absent, null, empty maps and
      empty sequences as unset
    - **Snapshots**: data is deep-frozen when the tree is bound, so later
      changes to the caller's dicts never leak into a render
    - **Rebinding**: a Value obtained from a template parameter is a pure
      path and can be resolved against any snapshot

Path Syntax:
    - Dotted paths: 'spec.template.spec'
    - Sequence index: 'containers[0]', negative 'containers[-1]'
    - Positional: '#0' (first child of a map or sequence), '#-1' (last)
    - Combined: 'spec.containers[0].image'
    - Self: '' or '.'

Example:
    >>> tree = ValueTree({'ports': [{'port': 80}, {'port': 443}]})
    >>> tree.get('ports[1].port').resolve()
    443
    >>> tree.is_set('ports[2]')
    False
    >>> [p['port'] for p in tree.get('ports')]
    [80, 443]
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterator

from .loading import freeze, thaw


class _Absent:
    """Type of the ABSENT marker returned for unresolvable paths."""

    __slots__ = ()
    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> tuple[type, tuple]:
        return (_Absent, ())


ABSENT = _Absent()

# Segment that never resolves; stands in for an unparseable path.
_INVALID = object()

_SEGMENT = re.compile(r'(?P<dot>\.)?(?P<name>[^.\[\]]+)|\[(?P<index>-?\d+)\]')


def parse_path(path: str) -> tuple[str | int, ...] | None:
    """Split a path into segments.

    Args:
        path: Dotted/bracketed path, e.g. 'spec.containers[0].image'.

    Returns:
        Tuple of segments (str for names, int for bracket indexes),
        an empty tuple for '' or '.', or None if the path is malformed.

    Examples:
        >>> parse_path('spec.containers[0].image')
        ('spec', 'containers', 0, 'image')
        >>> parse_path('a..b') is None
        True
    """
    if not isinstance(path, str):
        return None
    if path in ('', '.'):
        return ()

    segments: list[str | int] = []
    pos = 0
    while pos < len(path):
        match = _SEGMENT.match(path, pos)
        if match is None:
            return None
        name = match.group('name')
        if name is not None:
            # names need a leading dot except at the very start
            has_dot = match.group('dot') is not None
            if has_dot == (pos == 0):
                return None
            segments.append(name)
        else:
            segments.append(int(match.group('index')))
        pos = match.end()
    return tuple(segments)


def format_path(segments: tuple[Any, ...]) -> str:
    """Join segments back into a path string (inverse of parse_path)."""
    parts: list[str] = []
    for segment in segments:
        if segment is _INVALID:
            parts.append('.<invalid>' if parts else '<invalid>')
        elif isinstance(segment, int):
            parts.append(f"[{segment}]")
        else:
            parts.append(f".{segment}" if parts else str(segment))
    return ''.join(parts)


def _parse_path_segment(segment: str) -> tuple[bool, int | str]:
    """Parse a path segment, detecting positional index (#N) syntax.

    Returns:
        Tuple of (is_positional, index_or_label).
    """
    if segment.startswith('#'):
        rest = segment[1:]
        if rest.lstrip('-').isdigit():
            return True, int(rest)
    return False, segment


def _step(data: Any, segment: Any) -> Any:
    """Resolve one segment against frozen data, returning ABSENT on any miss."""
    if segment is _INVALID:
        return ABSENT

    if isinstance(segment, int):
        if isinstance(data, tuple):
            try:
                return data[segment]
            except IndexError:
                return ABSENT
        if isinstance(data, Mapping):
            return data.get(segment, ABSENT)
        return ABSENT

    is_pos, key = _parse_path_segment(segment)
    if is_pos:
        if isinstance(data, Mapping):
            children = tuple(data.values())
        elif isinstance(data, tuple):
            children = data
        else:
            return ABSENT
        try:
            return children[key]
        except IndexError:
            return ABSENT

    if isinstance(data, Mapping):
        return data.get(key, ABSENT)
    return ABSENT


def _is_set(data: Any) -> bool:
    if data is ABSENT or data is None:
        return False
    if isinstance(data, (Mapping, tuple)) and len(data) == 0:
        return False
    return True


class Deferred(ABC):
    """Something whose value is only known once a value tree is supplied.

    Values, helpers and collection operations are all deferred: they are
    declared while a template is assembled and evaluated when it is
    rendered.
    """

    __slots__ = ()

    @abstractmethod
    def evaluate(self, values: Any = None) -> Any:
        """Compute the value against a configuration snapshot.

        Args:
            values: A ValueTree, or any source accepted by ValueTree.
                If None, the object's own binding is used.
        """


def as_tree(values: Any) -> ValueTree | None:
    """Coerce a render source into a ValueTree (None stays None)."""
    if values is None or isinstance(values, ValueTree):
        return values
    return ValueTree(values)


class Value(Deferred):
    """An immutable handle pointing at a path in a ValueTree.

    A Value never holds data of its own: every access walks the tree it
    is bound to. An unbound Value (tree is None) is a pure path reference,
    used for template parameters, and resolves to ABSENT until rebound.

    Example:
        >>> tree = ValueTree({'volumeMounts': {'pvc': [{'name': 'data'}]}})
        >>> mounts = tree.get('volumeMounts')
        >>> mounts.is_set('pvc')
        True
        >>> mounts.get('pvc[0].name').resolve()
        'data'
        >>> mounts.is_set('secret')
        False
    """

    __slots__ = ('_tree', '_segments')

    def __init__(self, tree: ValueTree | None = None, path: str = '') -> None:
        """Initialize a Value.

        Args:
            tree: The ValueTree to read from, or None for an unbound reference.
            path: Path inside the tree. A malformed path gives a Value that
                is always absent.
        """
        segments = parse_path(path)
        self._tree = tree
        self._segments: tuple[Any, ...] = segments if segments is not None else (_INVALID,)

    @classmethod
    def _at(cls, tree: ValueTree | None, segments: tuple[Any, ...]) -> Value:
        value = cls.__new__(cls)
        value._tree = tree
        value._segments = segments
        return value

    def __repr__(self) -> str:
        state = 'unbound' if self._tree is None else (
            'absent' if self.resolve() is ABSENT else 'set'
        )
        return f"Value({self.path!r}, {state})"

    def __eq__(self, other: object) -> bool:
        """Two handles are equal when they point at the same path of the same tree."""
        if not isinstance(other, Value):
            return NotImplemented
        return self._tree is other._tree and self._segments == other._segments

    def __hash__(self) -> int:
        return hash((id(self._tree), self._segments))

    # ==================== Identity ====================

    @property
    def tree(self) -> ValueTree | None:
        """The ValueTree this handle reads from (None if unbound)."""
        return self._tree

    @property
    def is_bound(self) -> bool:
        return self._tree is not None

    @property
    def path(self) -> str:
        """The path of this handle, relative to the tree root."""
        return format_path(self._segments)

    @property
    def segments(self) -> tuple[Any, ...]:
        return self._segments

    def rebind(self, tree: ValueTree | None) -> Value:
        """Return a handle with the same path on another tree."""
        return Value._at(tree, self._segments)

    # ==================== Access ====================

    def get(self, path: str) -> Value:
        """Return the Value at path, relative to this one. Never raises."""
        segments = parse_path(path)
        if segments is None:
            segments = (_INVALID,)
        return Value._at(self._tree, self._segments + segments)

    def resolve(self) -> Any:
        """Return the frozen data at this path, or ABSENT.

        Explicit nulls resolve to ABSENT as well.
        """
        if self._tree is None:
            return ABSENT
        data = self._tree.data
        for segment in self._segments:
            data = _step(data, segment)
            if data is ABSENT:
                return ABSENT
        if data is None:
            return ABSENT
        return data

    def to_python(self, default: Any = None) -> Any:
        """Return a mutable copy of the data at this path, or default."""
        data = self.resolve()
        if data is ABSENT:
            return default
        return thaw(data)

    def evaluate(self, values: Any = None) -> Any:
        """Resolve against a snapshot, returning plain data or ABSENT."""
        tree = as_tree(values)
        target = self if tree is None else self.rebind(tree)
        data = target.resolve()
        if data is ABSENT:
            return ABSENT
        return thaw(data)

    def is_set(self, path: str = '') -> bool:
        """True if path resolves to something non-null and non-empty.

        Empty mappings and empty sequences count as unset.
        """
        target = self.get(path) if path else self
        return _is_set(target.resolve())

    def exists(self, path: str = '') -> bool:
        """True if path resolves to a non-null value (possibly empty)."""
        target = self.get(path) if path else self
        return target.resolve() is not ABSENT

    @property
    def is_mapping(self) -> bool:
        return isinstance(self.resolve(), Mapping)

    @property
    def is_sequence(self) -> bool:
        return isinstance(self.resolve(), tuple)

    @property
    def is_scalar(self) -> bool:
        data = self.resolve()
        return data is not ABSENT and not isinstance(data, (Mapping, tuple))

    def __getitem__(self, path: str) -> Any:
        """Return a mutable copy of the data at path.

        Raises:
            KeyError: If the path does not resolve.
        """
        data = self.get(path).resolve()
        if data is ABSENT:
            raise KeyError(f"Path '{path}' not found under '{self.path}'")
        return thaw(data)

    def __contains__(self, path: str) -> bool:
        return self.exists(path)

    def __bool__(self) -> bool:
        return self.is_set()

    # ==================== Iteration ====================

    def iter_keys(self) -> Iterator[str | int]:
        """Yield map keys, or sequence indexes, in declared order."""
        data = self.resolve()
        if isinstance(data, Mapping):
            yield from data.keys()
        elif isinstance(data, tuple):
            yield from range(len(data))

    def iter_values(self) -> Iterator[Value]:
        """Yield a child Value for each item, in declared order."""
        for key in self.iter_keys():
            yield Value._at(self._tree, self._segments + (key,))

    def iter_items(self) -> Iterator[tuple[str | int, Value]]:
        """Yield (key, child Value) pairs in declared order."""
        for key in self.iter_keys():
            yield key, Value._at(self._tree, self._segments + (key,))

    def keys(self) -> list[str | int]:
        return list(self.iter_keys())

    def values(self) -> list[Value]:
        return list(self.iter_values())

    def items(self) -> list[tuple[str | int, Value]]:
        return list(self.iter_items())

    def __iter__(self) -> Iterator[Value]:
        return self.iter_values()

    def __len__(self) -> int:
        data = self.resolve()
        if isinstance(data, (Mapping, tuple)):
            return len(data)
        return 0


class ValueTree:
    """A frozen snapshot of configuration data.

    Args:
        source: Optional initial data. Can be:
            - dict/Mapping or list/tuple: deep-frozen copy
            - ValueTree: shares the other tree's snapshot
            - Value: snapshot of whatever the Value resolves to
            - None: empty mapping

    Example:
        >>> tree = ValueTree({'image': 'nginx', 'ports': [{'port': 80}]})
        >>> tree['image']
        'nginx'
        >>> tree.is_set('cpu')
        False
    """

    __slots__ = ('_data',)

    def __init__(self, source: Any = None) -> None:
        self._data = self._load_source(source)

    def _load_source(self, source: Any) -> Any:
        """Freeze source data.

        Raises:
            TypeError: If source is not a supported type.
        """
        if source is None:
            return MappingProxyType({})
        if isinstance(source, ValueTree):
            return source._data
        if isinstance(source, Value):
            data = source.resolve()
            return MappingProxyType({}) if data is ABSENT else data
        if isinstance(source, (Mapping, list, tuple)):
            return freeze(source)
        raise TypeError(
            f"source must be dict, list, ValueTree or Value, not {type(source).__name__}"
        )

    def __repr__(self) -> str:
        if isinstance(self._data, Mapping):
            return f"ValueTree({list(self._data.keys())})"
        return f"ValueTree(<{len(self._data)} items>)"

    @property
    def data(self) -> Any:
        """The frozen root data."""
        return self._data

    @property
    def root(self) -> Value:
        return Value._at(self, ())

    def get(self, path: str) -> Value:
        return self.root.get(path)

    def is_set(self, path: str = '') -> bool:
        return self.root.is_set(path)

    def exists(self, path: str = '') -> bool:
        return self.root.exists(path)

    def __getitem__(self, path: str) -> Any:
        return self.root[path]

    def __contains__(self, path: str) -> bool:
        return self.root.exists(path)

    def to_python(self) -> Any:
        """Return a mutable deep copy of the whole snapshot."""
        return thaw(self._data)
