# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Helper pipelines - named, deferred output collections.

A helper is declared with a fluent builder and finalized with build():

    >>> mounts = (
    ...     tpl.helper('containerMountsArray')
    ...     .from_fields(volume_mounts, 'pvc', 'configMap', 'secret')
    ...     .pick('name', 'mountPath')
    ...     .pick_if(IsSet('subPath'), 'subPath')
    ...     .build()
    ... )
    >>> deduped = tpl.helper('deDup').from_helper(mounts).dedupe('name').build()

Stages, in evaluation order:

1. input: from_fields() (bucket extraction) or from_helper() (chaining)
2. mapping: pick()/pick_if(), map() or map_by_source(), at most one kind
3. dedupe(): stable, first occurrence of a key wins

Every structural mistake is reported by build(), never at render time.
The resulting HelperVar is immutable and evaluating it is a pure function
of the configuration snapshot.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TYPE_CHECKING

from .exceptions import (
    DefinitionError,
    FrozenHelperError,
    HelperSourceError,
    InvalidRuleError,
    MissingSourceMappingError,
)
from .extract import Record, from_fields
from .rules import Condition, FieldMap, Ref
from .values import ABSENT, Deferred, Value, ValueTree, as_tree

if TYPE_CHECKING:
    from .template import Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Pick:
    """One uniform-mode output field: key <- path, optionally conditional."""

    key: str
    rule: Ref
    condition: Condition | None = None


@dataclass(frozen=True)
class Pipeline:
    """Immutable description of a helper, produced by HelperBuilder.build()."""

    name: str
    root: Value | None = None
    buckets: tuple[str, ...] = ()
    upstream: HelperVar | None = None
    picks: tuple[_Pick, ...] = ()
    field_map: FieldMap | None = None
    source_maps: Mapping[str, FieldMap] | None = None
    dedupe_key: str | None = None


def _dedupe_token(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=repr)


def _signature(p: Pipeline) -> tuple:
    source_maps = None if p.source_maps is None else dict(p.source_maps)
    return (
        p.name, p.root, p.buckets, p.upstream, p.picks,
        p.field_map, source_maps, p.dedupe_key,
    )


class HelperVar(Deferred):
    """A built helper: a named, reusable, lazily evaluated collection.

    A HelperVar has no value of its own. evaluate() runs the pipeline
    against a configuration snapshot and returns a fresh list of plain
    dicts every time; nothing is cached between calls.
    """

    __slots__ = ('_pipeline',)

    def __init__(self, pipeline: Pipeline) -> None:
        self._pipeline = pipeline

    def __repr__(self) -> str:
        return f"HelperVar({self._pipeline.name!r})"

    def __eq__(self, other: object) -> bool:
        """Helpers are equal when their definitions are, whatever the instance."""
        if not isinstance(other, HelperVar):
            return NotImplemented
        return _signature(self._pipeline) == _signature(other._pipeline)

    def __hash__(self) -> int:
        return hash(self._pipeline.name)

    @property
    def name(self) -> str:
        return self._pipeline.name

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def evaluate(self, values: Any = None) -> list[Any]:
        """Run the pipeline.

        Args:
            values: Configuration snapshot (ValueTree or plain data). If
                None, the input Value is read from the tree it is bound to.

        Returns:
            The output records, in extraction order.
        """
        return self._evaluate(as_tree(values))

    def _evaluate(self, tree: ValueTree | None) -> list[Any]:
        p = self._pipeline
        records = self._records(tree)

        if p.picks:
            scope = tree if tree is not None else self._bound_tree()
            output = [self._apply_picks(record, scope) for record in records]
        elif p.field_map is not None:
            output = [p.field_map.apply(record.value) for record in records]
        elif p.source_maps is not None:
            output = [p.source_maps[record.source].apply(record.value) for record in records]
        else:
            output = [record.to_python() for record in records]

        if p.dedupe_key is not None:
            output = self._dedupe(output, p.dedupe_key)

        logger.debug("Helper '%s' evaluated: %d record(s)", p.name, len(output))
        return output

    def _records(self, tree: ValueTree | None) -> list[Record]:
        p = self._pipeline
        if p.upstream is not None:
            return [
                Record(None, ValueTree({'item': item}).get('item'), index)
                for index, item in enumerate(p.upstream._evaluate(tree))
            ]
        root = p.root if tree is None else p.root.rebind(tree)
        return from_fields(root, *p.buckets)

    def _bound_tree(self) -> ValueTree | None:
        """The tree the input is bound to, followed through chained helpers."""
        p = self._pipeline
        if p.upstream is not None:
            return p.upstream._bound_tree()
        return p.root.tree

    def _apply_picks(self, record: Record, scope: ValueTree | None) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for pick in self._pipeline.picks:
            if pick.condition is not None and not pick.condition.holds(record.value, scope):
                continue
            value = pick.rule.resolve(record.value)
            if value is not ABSENT:
                result[pick.key] = value
        return result

    @staticmethod
    def _dedupe(output: list[Any], key: str) -> list[Any]:
        """Keep the first record for every key value, preserving order.

        Records without the key are always kept.
        """
        seen: set[str] = set()
        result = []
        for item in output:
            if not isinstance(item, dict) or item.get(key) is None:
                result.append(item)
                continue
            token = _dedupe_token(item[key])
            if token in seen:
                continue
            seen.add(token)
            result.append(item)
        return result


class HelperBuilder:
    """Fluent builder for a HelperVar.

    Obtained from Template.helper(name), or created standalone. Every
    method returns the builder itself for chaining; build() validates the
    definition, registers it on the owning template (if any) and returns
    the HelperVar. The builder cannot be used after build().
    """

    __slots__ = (
        '_template', '_name', '_root', '_buckets', '_upstream',
        '_picks', '_field_map', '_source_maps', '_dedupe_key', '_built',
    )

    def __init__(self, name: str, template: Template | None = None) -> None:
        if not isinstance(name, str) or not name:
            raise DefinitionError(f"Invalid helper name {name!r}")
        self._template = template
        self._name = name
        self._root: Value | None = None
        self._buckets: tuple[str, ...] = ()
        self._upstream: HelperVar | None = None
        self._picks: list[_Pick] = []
        self._field_map: FieldMap | None = None
        self._source_maps: dict[str, FieldMap] | None = None
        self._dedupe_key: str | None = None
        self._built = False

    def __repr__(self) -> str:
        return f"HelperBuilder({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    def _check_open(self) -> None:
        if self._built:
            raise FrozenHelperError(f"Helper '{self._name}' is already built")

    # ==================== Input ====================

    def from_fields(self, root: Value, *buckets: str) -> HelperBuilder:
        """Read records from the named buckets under root.

        Args:
            root: Value holding the buckets (usually a template parameter).
            *buckets: Bucket names in output order.
        """
        self._check_open()
        if self._root is not None or self._upstream is not None:
            raise HelperSourceError(f"Helper '{self._name}' already has an input")
        if not isinstance(root, Value):
            raise HelperSourceError(
                f"Helper '{self._name}': from_fields expects a Value, "
                f"got {type(root).__name__}"
            )
        if not buckets:
            raise HelperSourceError(f"Helper '{self._name}': no bucket names given")
        for bucket in buckets:
            if not isinstance(bucket, str) or not bucket:
                raise HelperSourceError(
                    f"Helper '{self._name}': invalid bucket name {bucket!r}"
                )
        duplicates = sorted({b for b in buckets if buckets.count(b) > 1})
        if duplicates:
            raise HelperSourceError(
                f"Helper '{self._name}': duplicate bucket name(s) {', '.join(duplicates)}"
            )
        self._root = root
        self._buckets = tuple(buckets)
        return self

    def from_helper(self, upstream: HelperVar) -> HelperBuilder:
        """Read records from the output of another built helper."""
        self._check_open()
        if self._root is not None or self._upstream is not None:
            raise HelperSourceError(f"Helper '{self._name}' already has an input")
        if not isinstance(upstream, HelperVar):
            raise HelperSourceError(
                f"Helper '{self._name}': from_helper expects a built HelperVar, "
                f"got {type(upstream).__name__}"
            )
        self._upstream = upstream
        return self

    # ==================== Mapping ====================

    def pick(self, *fields: str, **renamed: str) -> HelperBuilder:
        """Copy fields unchanged into every output record.

        Args:
            *fields: Field names, used both as source path and output key.
            **renamed: output_key=source_path pairs.

        Absent fields are left out of the output record.
        """
        self._check_open()
        for field_name in fields:
            self._add_pick(field_name, field_name, None)
        for key, path in renamed.items():
            self._add_pick(key, path, None)
        return self

    def pick_if(self, condition: Condition, field_name: str) -> HelperBuilder:
        """Copy field_name only for records where condition holds."""
        self._check_open()
        if not isinstance(condition, Condition):
            raise InvalidRuleError(
                f"Helper '{self._name}': pick_if expects a Condition, "
                f"got {type(condition).__name__}"
            )
        self._add_pick(field_name, field_name, condition)
        return self

    def _add_pick(self, key: str, path: str, condition: Condition | None) -> None:
        if not isinstance(key, str) or not key:
            raise InvalidRuleError(f"Helper '{self._name}': invalid field name {key!r}")
        self._picks.append(_Pick(key, Ref(path), condition))

    def map(self, field_map: FieldMap | Mapping[str, Any]) -> HelperBuilder:
        """Apply one FieldMap to every record, whatever its bucket."""
        self._check_open()
        self._field_map = field_map if isinstance(field_map, FieldMap) else FieldMap(field_map)
        return self

    def map_by_source(
        self, mappings: Mapping[str, FieldMap | Mapping[str, Any]]
    ) -> HelperBuilder:
        """Apply a different FieldMap to each bucket.

        Args:
            mappings: bucket name -> FieldMap. Every bucket declared in
                from_fields() must have an entry; this is checked by build().
        """
        self._check_open()
        if not isinstance(mappings, Mapping):
            raise InvalidRuleError(
                f"Helper '{self._name}': map_by_source expects a mapping, "
                f"got {type(mappings).__name__}"
            )
        self._source_maps = {
            source: fm if isinstance(fm, FieldMap) else FieldMap(fm)
            for source, fm in mappings.items()
        }
        return self

    # ==================== Dedupe ====================

    def dedupe(self, key: str) -> HelperBuilder:
        """Drop later output records whose key field repeats an earlier one."""
        self._check_open()
        if not isinstance(key, str) or not key:
            raise DefinitionError(f"Helper '{self._name}': invalid dedupe key {key!r}")
        self._dedupe_key = key
        return self

    # ==================== Build ====================

    def validate(self) -> None:
        """Check the definition without building it.

        Raises:
            HelperSourceError: If there is no input.
            DefinitionError: If more than one mapping stage is declared.
            MissingSourceMappingError: If map_by_source misses a bucket.

        A dedupe key that the mapping stage never outputs is logged as a
        warning.
        """
        if self._root is None and self._upstream is None:
            raise HelperSourceError(
                f"Helper '{self._name}' needs from_fields() or from_helper()"
            )

        stages = [
            stage for stage, declared in (
                ('pick', bool(self._picks)),
                ('map', self._field_map is not None),
                ('map_by_source', self._source_maps is not None),
            ) if declared
        ]
        if len(stages) > 1:
            raise DefinitionError(
                f"Helper '{self._name}' declares more than one mapping stage: "
                f"{', '.join(stages)}"
            )

        if self._source_maps is not None:
            if self._upstream is not None:
                raise HelperSourceError(
                    f"Helper '{self._name}': map_by_source needs bucket-tagged "
                    f"records, use from_fields()"
                )
            missing = [b for b in self._buckets if b not in self._source_maps]
            if missing:
                raise MissingSourceMappingError(self._name, missing)
            unused = [s for s in self._source_maps if s not in self._buckets]
            if unused:
                logger.debug(
                    "Helper '%s': mappings for undeclared bucket(s) ignored: %s",
                    self._name, ', '.join(unused),
                )

        if self._dedupe_key is not None:
            self._check_dedupe_key(self._dedupe_key)

    def _check_dedupe_key(self, key: str) -> None:
        """Warn when the mapping stage never outputs the dedupe key."""
        if self._picks:
            produced = [{pick.key for pick in self._picks}]
        elif self._field_map is not None:
            produced = [set(self._field_map)]
        elif self._source_maps is not None:
            produced = [set(self._source_maps[b]) for b in self._buckets]
        else:
            return
        if any(key not in keys for keys in produced):
            logger.warning(
                "Helper '%s': dedupe key '%s' is not produced by its mapping, "
                "records without it are never deduplicated",
                self._name, key,
            )

    def build(self) -> HelperVar:
        """Validate, freeze and register the helper.

        Returns:
            The HelperVar registered on the owning template. If the template
            already holds an identical helper under the same name, that one
            is returned.

        Raises:
            DuplicateHelperError: If the name is taken by a different helper.
        """
        self._check_open()
        self.validate()

        source_maps = None
        if self._source_maps is not None:
            source_maps = MappingProxyType(
                {b: self._source_maps[b] for b in self._buckets}
            )

        helper = HelperVar(Pipeline(
            name=self._name,
            root=self._root,
            buckets=self._buckets,
            upstream=self._upstream,
            picks=tuple(self._picks),
            field_map=self._field_map,
            source_maps=source_maps,
            dedupe_key=self._dedupe_key,
        ))
        if self._template is not None:
            helper = self._template._register_helper(helper)
        self._built = True

        logger.debug(
            "Helper '%s' built from %s",
            self._name,
            f"helper '{self._upstream.name}'" if self._upstream is not None
            else f"buckets {', '.join(self._buckets)}",
        )
        return helper
