# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Field rules - declarative description of how output fields are built.

A FieldMap maps output field names to FieldRule objects. Each rule is a
small expression evaluated against the current record (a Value):

    - Ref(path): copy the value at path
    - Or(rule, fallback, ...): first rule that is not absent
    - Format(template, rule, ...): %-interpolation of sub-rule results
    - Nested(field_map): build a sub-object from the same record
    - OptionalRef(path): like Ref, but always omitted when absent

Rules never raise on missing data: an unresolvable path gives ABSENT,
which propagates through Or and Format. Structural mistakes (a bad path,
a value that is not a rule) raise InvalidRuleError as soon as the rule
or map is constructed.

Example:
    >>> ports = FieldMap({
    ...     'containerPort': Ref('port'),
    ...     'name': Ref('name') | Format('port-%v', Ref('port')),
    ... })
    >>> ports.apply(ValueTree({'port': 80}).root)
    {'containerPort': 80, 'name': 'port-80'}
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Iterator

from .exceptions import InvalidRuleError
from .values import ABSENT, Value, ValueTree, parse_path

logger = logging.getLogger(__name__)

MISSING_POLICIES = ('omit', 'null')

_PLACEHOLDER = re.compile(r'%(%|v)?')


def _check_path(path: Any, owner: str) -> str:
    if parse_path(path) is None:
        raise InvalidRuleError(f"{owner}: invalid path {path!r}")
    return path


def _check_rule(rule: Any, owner: str) -> FieldRule:
    if not isinstance(rule, FieldRule):
        raise InvalidRuleError(
            f"{owner}: expected a FieldRule, got {type(rule).__name__}"
        )
    return rule


class FieldRule(ABC):
    """Base class of all field rules."""

    __slots__ = ()

    #: Optional rules are left out of the output when absent, whatever
    #: the FieldMap's missing-value policy.
    optional: bool = False

    @abstractmethod
    def resolve(self, record: Value) -> Any:
        """Return the field value for record, or ABSENT."""

    def _key(self) -> tuple:
        return ()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._key()))

    def or_(self, *fallbacks: FieldRule) -> Or:
        """Return a rule falling back to fallbacks when this one is absent."""
        return Or(self, *fallbacks)

    def __or__(self, other: Any) -> Or:
        if not isinstance(other, FieldRule):
            return NotImplemented
        return Or(self, other)


class Ref(FieldRule):
    """Copy the value found at path in the current record.

    The path '.' refers to the record itself.
    """

    __slots__ = ('path',)

    def __init__(self, path: str) -> None:
        self.path = _check_path(path, type(self).__name__)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    def _key(self) -> tuple:
        return (self.path,)

    def resolve(self, record: Value) -> Any:
        return record.get(self.path).evaluate()


class OptionalRef(Ref):
    """A Ref whose field is omitted entirely when the path is absent."""

    __slots__ = ()

    optional = True


class Or(FieldRule):
    """Fallback chain: the first rule that resolves wins.

    Nested Or rules are flattened, so Or(Or(a, b), c) == Or(a, b, c).
    """

    __slots__ = ('rules',)

    def __init__(self, first: FieldRule, *fallbacks: FieldRule) -> None:
        if not fallbacks:
            raise InvalidRuleError("Or: at least one fallback rule is required")
        rules: list[FieldRule] = []
        for rule in (first, *fallbacks):
            _check_rule(rule, 'Or')
            if isinstance(rule, Or):
                rules.extend(rule.rules)
            else:
                rules.append(rule)
        self.rules: tuple[FieldRule, ...] = tuple(rules)

    def __repr__(self) -> str:
        return f"Or({', '.join(repr(rule) for rule in self.rules)})"

    def _key(self) -> tuple:
        return self.rules

    def resolve(self, record: Value) -> Any:
        for rule in self.rules:
            value = rule.resolve(record)
            if value is not ABSENT:
                return value
        return ABSENT


class Format(FieldRule):
    """Derive a string by %-interpolating sub-rule results.

    '%v' is accepted as a generic placeholder: it behaves like '%s',
    except that booleans render as 'true' and 'false'.
    If any sub-rule is absent the whole Format is absent.

    Example:
        >>> Format('port-%v', Ref('port')).resolve(ValueTree({'port': 80}).root)
        'port-80'
    """

    __slots__ = ('template', 'rules', '_pattern', '_generic')

    def __init__(self, template: str, *rules: FieldRule) -> None:
        if not isinstance(template, str):
            raise InvalidRuleError(
                f"Format: template must be a string, got {type(template).__name__}"
            )
        # one flag per placeholder, True for %v
        generic = [
            m.group(1) == 'v' for m in _PLACEHOLDER.finditer(template) if m.group(1) != '%'
        ]
        pattern = _PLACEHOLDER.sub(
            lambda m: {'%': '%%', 'v': '%s'}.get(m.group(1), '%'), template
        )
        placeholders = len(generic)
        if placeholders != len(rules):
            raise InvalidRuleError(
                f"Format: template {template!r} has {placeholders} placeholder(s) "
                f"but {len(rules)} rule(s) were given"
            )
        self.template = template
        self.rules: tuple[FieldRule, ...] = tuple(_check_rule(r, 'Format') for r in rules)
        self._pattern = pattern
        self._generic: tuple[bool, ...] = tuple(generic)

    def __repr__(self) -> str:
        args = ''.join(f", {rule!r}" for rule in self.rules)
        return f"Format({self.template!r}{args})"

    def _key(self) -> tuple:
        return (self.template, self.rules)

    def resolve(self, record: Value) -> Any:
        values = []
        for rule, generic in zip(self.rules, self._generic):
            value = rule.resolve(record)
            if value is ABSENT:
                return ABSENT
            if generic and isinstance(value, bool):
                value = 'true' if value else 'false'
            values.append(value)
        try:
            return self._pattern % tuple(values)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Format %r cannot render %r at '%s': %s",
                self.template, values, record.path, exc,
            )
            return ABSENT


class Nested(FieldRule):
    """Build a sub-object by applying a FieldMap to the same record.

    A Nested rule always yields a mapping, possibly empty.
    """

    __slots__ = ('field_map',)

    def __init__(self, field_map: FieldMap | Mapping[str, FieldRule]) -> None:
        if not isinstance(field_map, FieldMap):
            field_map = FieldMap(field_map)
        self.field_map = field_map

    def __repr__(self) -> str:
        return f"Nested({self.field_map!r})"

    def _key(self) -> tuple:
        return (self.field_map,)

    def resolve(self, record: Value) -> Any:
        return self.field_map.apply(record)


class FieldMap(Mapping):
    """An immutable mapping from output field name to FieldRule.

    Args:
        rules: Mapping of field name -> FieldRule, in output order.
        missing: What to do with a non-optional field whose rule is absent:
            'omit' (default) leaves the key out, 'null' emits None.

    Raises:
        InvalidRuleError: If a name is not a non-empty string, a value is
            not a FieldRule, or the policy is unknown.
    """

    __slots__ = ('_rules', '_missing')

    def __init__(
        self,
        rules: Mapping[str, FieldRule] | None = None,
        missing: str = 'omit',
    ) -> None:
        if rules is None:
            rules = {}
        if not isinstance(rules, Mapping):
            raise InvalidRuleError(
                f"FieldMap: rules must be a mapping, got {type(rules).__name__}"
            )
        if missing not in MISSING_POLICIES:
            raise InvalidRuleError(
                f"FieldMap: unknown missing policy {missing!r}, "
                f"expected one of {', '.join(MISSING_POLICIES)}"
            )
        checked: dict[str, FieldRule] = {}
        for name, rule in rules.items():
            if not isinstance(name, str) or not name:
                raise InvalidRuleError(f"FieldMap: invalid field name {name!r}")
            checked[name] = _check_rule(rule, f"FieldMap field '{name}'")
        self._rules = checked
        self._missing = missing

    def __repr__(self) -> str:
        return f"FieldMap({self._rules!r})"

    def __getitem__(self, name: str) -> FieldRule:
        return self._rules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldMap):
            return NotImplemented
        return self._missing == other._missing and self._rules == other._rules

    def __hash__(self) -> int:
        return hash((tuple(self._rules.items()), self._missing))

    @property
    def missing(self) -> str:
        return self._missing

    def apply(self, record: Value) -> dict[str, Any]:
        """Build one output object from record.

        Fields appear in declaration order. Absent optional fields are
        always omitted; other absent fields follow the missing policy.
        """
        result: dict[str, Any] = {}
        for name, rule in self._rules.items():
            value = rule.resolve(record)
            if value is ABSENT:
                if self._missing == 'null' and not rule.optional:
                    result[name] = None
                continue
            result[name] = value
        return result


# ==================== Conditions ====================


class Condition(ABC):
    """A predicate evaluated against a record or a render context."""

    __slots__ = ()

    @abstractmethod
    def holds(self, context: Value, root: ValueTree | None = None) -> bool:
        """Return True if the condition is satisfied.

        Args:
            context: The current record, or the root of the render snapshot.
            root: The render snapshot, when there is one. Conditions on
                template parameters read from it rather than from context.
        """

    def _key(self) -> tuple:
        return ()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._key()))

    def __invert__(self) -> Not:
        return Not(self)


class IsSet(Condition):
    """True when a path (or a parameter Value) is set.

    Args:
        target: A path relative to the context (e.g. a record field such
            as 'subPath'), or a Value. A Value is re-read from the render
            snapshot, so template parameters work as conditions. Without a
            snapshot a bound Value uses its own tree and an unbound one
            reads from the context's tree.

    Example:
        >>> IsSet('subPath').holds(ValueTree({'subPath': 'conf'}).root)
        True
    """

    __slots__ = ('target',)

    def __init__(self, target: str | Value) -> None:
        if isinstance(target, str):
            _check_path(target, 'IsSet')
        elif not isinstance(target, Value):
            raise InvalidRuleError(
                f"IsSet: expected a path or a Value, got {type(target).__name__}"
            )
        self.target = target

    def __repr__(self) -> str:
        target = self.target.path if isinstance(self.target, Value) else self.target
        return f"IsSet({target!r})"

    def _key(self) -> tuple:
        return (self.target,)

    def holds(self, context: Value, root: ValueTree | None = None) -> bool:
        if isinstance(self.target, str):
            return context.is_set(self.target)
        if root is not None:
            return self.target.rebind(root).is_set()
        if self.target.is_bound:
            return self.target.is_set()
        return self.target.rebind(context.tree).is_set()


class Not(Condition):
    """Negation of another condition."""

    __slots__ = ('condition',)

    def __init__(self, condition: Condition) -> None:
        if not isinstance(condition, Condition):
            raise InvalidRuleError(
                f"Not: expected a Condition, got {type(condition).__name__}"
            )
        self.condition = condition

    def __repr__(self) -> str:
        return f"Not({self.condition!r})"

    def _key(self) -> tuple:
        return (self.condition,)

    def holds(self, context: Value, root: ValueTree | None = None) -> bool:
        return not self.condition.holds(context, root)
