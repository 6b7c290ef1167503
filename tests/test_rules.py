# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for field rules, FieldMap and conditions."""

import logging

import pytest

from genro_defkit import (
    ABSENT,
    FieldMap,
    Format,
    InvalidRuleError,
    IsSet,
    Nested,
    Not,
    OptionalRef,
    Or,
    Ref,
    Value,
    ValueTree,
)


def record(data):
    """Return a Value over data, the way rules see a record."""
    return ValueTree(data).root


class TestRef:
    """Tests for Ref."""

    def test_copies_value(self):
        """Test Ref copies the value at its path."""
        assert Ref('name').resolve(record({'name': 'data'})) == 'data'

    def test_nested_path(self):
        """Test Ref follows dotted paths."""
        assert Ref('backend.port').resolve(record({'backend': {'port': 80}})) == 80

    def test_absent(self):
        """Test a missing path resolves to ABSENT."""
        assert Ref('name').resolve(record({})) is ABSENT

    def test_self_reference(self):
        """Test '.' refers to the record itself."""
        item = ValueTree(['reg-a']).get('[0]')
        assert Ref('.').resolve(item) == 'reg-a'

    def test_containers_are_plain_copies(self):
        """Test containers come back as plain lists and dicts."""
        value = Ref('items').resolve(record({'items': [{'key': 'a'}]}))
        assert value == [{'key': 'a'}]
        assert isinstance(value, list)
        assert isinstance(value[0], dict)

    def test_invalid_path_raises(self):
        """Test a malformed path is rejected at construction."""
        with pytest.raises(InvalidRuleError, match='invalid path'):
            Ref('a..b')

    def test_repr(self):
        """Test string representation."""
        assert repr(Ref('name')) == "Ref('name')"

    def test_equality(self):
        """Test rules with the same path compare equal."""
        assert Ref('name') == Ref('name')
        assert Ref('name') != Ref('other')
        assert Ref('name') != OptionalRef('name')
        assert hash(Ref('name')) == hash(Ref('name'))


class TestOr:
    """Tests for Or fallback chains."""

    def test_fallback_used_when_first_absent(self):
        """Test the fallback is used when the first rule is absent."""
        rule = Or(Ref('port'), Ref('containerPort'))
        assert rule.resolve(record({'containerPort': 8080})) == 8080

    def test_first_wins_when_present(self):
        """Test the first present rule wins."""
        rule = Or(Ref('port'), Ref('containerPort'))
        assert rule.resolve(record({'port': 80, 'containerPort': 8080})) == 80

    def test_all_absent(self):
        """Test the chain is absent when every rule is."""
        rule = Or(Ref('a'), Ref('b'), Ref('c'))
        assert rule.resolve(record({})) is ABSENT

    def test_long_chain(self):
        """Test chains built with the | operator."""
        rule = Ref('a') | Ref('b') | Ref('c')
        assert rule.resolve(record({'c': 3})) == 3

    def test_nested_or_flattened(self):
        """Test nested Or rules are flattened."""
        a, b, c = Ref('a'), Ref('b'), Ref('c')
        assert Or(Or(a, b), c).rules == (a, b, c)
        assert Or(Or(a, b), c) == Or(a, b, c)

    def test_or_method(self):
        """Test the or_() method."""
        rule = Ref('a').or_(Ref('b'))
        assert isinstance(rule, Or)
        assert rule.resolve(record({'b': 'x'})) == 'x'

    def test_null_falls_through(self):
        """Test an explicit null counts as absent."""
        rule = Ref('a') | Ref('b')
        assert rule.resolve(record({'a': None, 'b': 2})) == 2

    def test_falsy_values_do_not_fall_through(self):
        """Test 0 is a value, not an absence."""
        rule = Ref('a') | Ref('b')
        assert rule.resolve(record({'a': 0, 'b': 2})) == 0

    def test_needs_fallback(self):
        """Test Or needs at least two rules."""
        with pytest.raises(InvalidRuleError, match='at least one fallback'):
            Or(Ref('a'))

    def test_rejects_non_rules(self):
        """Test Or rejects values that are not rules."""
        with pytest.raises(InvalidRuleError, match='expected a FieldRule'):
            Or(Ref('a'), 'b')

    def test_pipe_with_non_rule(self):
        """Test | with a non-rule operand raises TypeError."""
        with pytest.raises(TypeError):
            Ref('a') | 'b'


class TestFormat:
    """Tests for Format."""

    def test_generic_placeholder(self):
        """Test %v interpolates the sub-rule result."""
        assert Format('port-%v', Ref('port')).resolve(record({'port': 80})) == 'port-80'

    def test_default_name_chain(self):
        """Test Format as the fallback of a name chain."""
        rule = Ref('name') | Format('port-%v', Ref('port'))
        assert rule.resolve(record({'port': 80})) == 'port-80'
        assert rule.resolve(record({'port': 80, 'name': 'http'})) == 'http'

    def test_several_rules(self):
        """Test templates with several placeholders."""
        rule = Format('%v/%s', Ref('a'), Ref('b'))
        assert rule.resolve(record({'a': 'x', 'b': 'y'})) == 'x/y'

    def test_literal_percent(self):
        """Test %% stays a literal percent sign."""
        rule = Format('100%% %v', Ref('a'))
        assert rule.resolve(record({'a': 'done'})) == '100% done'

    def test_generic_placeholder_lowercases_booleans(self):
        """Test %v renders booleans as true/false."""
        rule = Format('tls=%v,debug=%v', Ref('tls'), Ref('debug'))
        assert rule.resolve(record({'tls': True, 'debug': False})) == 'tls=true,debug=false'

    def test_explicit_placeholder_keeps_python_booleans(self):
        """Test %s leaves booleans to Python formatting."""
        assert Format('%s', Ref('a')).resolve(record({'a': True})) == 'True'

    def test_absent_sub_rule(self):
        """Test an absent sub-rule makes the Format absent."""
        assert Format('port-%v', Ref('port')).resolve(record({})) is ABSENT

    def test_sub_rule_can_be_a_chain(self):
        """Test sub-rules may be Or chains."""
        rule = Format('port-%v', Ref('port') | Ref('containerPort'))
        assert rule.resolve(record({'containerPort': 8080})) == 'port-8080'

    def test_placeholder_count_checked(self):
        """Test the placeholder count must match the rules."""
        with pytest.raises(InvalidRuleError, match='placeholder'):
            Format('%v-%v', Ref('a'))

    def test_template_must_be_string(self):
        """Test a non-string template is rejected."""
        with pytest.raises(InvalidRuleError, match='template must be a string'):
            Format(42)

    def test_type_mismatch_is_absent(self, caplog):
        """Test a formatting error logs a warning and yields ABSENT."""
        rule = Format('%d', Ref('a'))
        with caplog.at_level(logging.WARNING):
            assert rule.resolve(record({'a': 'x'})) is ABSENT
        assert 'cannot render' in caplog.text

    def test_equality(self):
        """Test Formats with the same template and rules compare equal."""
        assert Format('port-%v', Ref('port')) == Format('port-%v', Ref('port'))
        assert Format('port-%v', Ref('port')) != Format('p-%v', Ref('port'))


class TestNested:
    """Tests for Nested."""

    def test_builds_sub_object(self):
        """Test Nested applies its FieldMap to the same record."""
        rule = Nested(FieldMap({'claimName': Ref('claimName')}))
        assert rule.resolve(record({'claimName': 'pvc-1'})) == {'claimName': 'pvc-1'}

    def test_accepts_plain_dict(self):
        """Test Nested accepts a plain dict of rules."""
        rule = Nested({'path': Ref('path')})
        assert rule.resolve(record({'path': '/var'})) == {'path': '/var'}

    def test_empty_when_everything_absent(self):
        """Test Nested yields an empty mapping when nothing resolves."""
        rule = Nested({'medium': Ref('medium')})
        assert rule.resolve(record({})) == {}

    def test_deep_nesting(self):
        """Test Nested inside Nested."""
        rule = Nested({'backend': Nested({'service': Nested({'name': Ref('svc')})})})
        assert rule.resolve(record({'svc': 'api'})) == {'backend': {'service': {'name': 'api'}}}

    def test_invalid_content_raises(self):
        """Test invalid rules inside Nested are rejected."""
        with pytest.raises(InvalidRuleError):
            Nested({'name': 'not a rule'})


class TestOptionalRef:
    """Tests for OptionalRef."""

    def test_included_when_present(self):
        """Test the field is copied when present."""
        fm = FieldMap({'items': OptionalRef('items')})
        data = {'items': [{'key': 'a', 'path': 'a.txt'}]}
        assert fm.apply(record(data)) == data

    def test_omitted_when_absent(self):
        """Test the field is left out when absent."""
        fm = FieldMap({'name': Ref('name'), 'items': OptionalRef('items')})
        assert fm.apply(record({'name': 'cm'})) == {'name': 'cm'}

    def test_omitted_even_with_null_policy(self):
        """Test the null policy does not apply to optional fields."""
        fm = FieldMap({'name': Ref('name'), 'items': OptionalRef('items')}, missing='null')
        assert fm.apply(record({})) == {'name': None}

    def test_empty_list_is_present(self):
        """Test an explicitly empty list is still copied."""
        fm = FieldMap({'items': OptionalRef('items')})
        assert fm.apply(record({'items': []})) == {'items': []}


class TestFieldMap:
    """Tests for FieldMap."""

    def test_apply_keeps_declaration_order(self):
        """Test output keys follow declaration order."""
        fm = FieldMap({'b': Ref('b'), 'a': Ref('a')})
        assert list(fm.apply(record({'a': 1, 'b': 2}))) == ['b', 'a']

    def test_absent_fields_omitted_by_default(self):
        """Test the default policy omits absent fields."""
        fm = FieldMap({'name': Ref('name'), 'protocol': Ref('protocol')})
        assert fm.apply(record({'name': 'http'})) == {'name': 'http'}
        assert fm.missing == 'omit'

    def test_null_policy(self):
        """Test the null policy emits None for absent fields."""
        fm = FieldMap({'name': Ref('name'), 'protocol': Ref('protocol')}, missing='null')
        assert fm.apply(record({'name': 'http'})) == {'name': 'http', 'protocol': None}

    def test_unknown_policy(self):
        """Test unknown missing policies are rejected."""
        with pytest.raises(InvalidRuleError, match='unknown missing policy'):
            FieldMap({}, missing='drop')

    def test_rejects_non_rules(self):
        """Test values must be rules."""
        with pytest.raises(InvalidRuleError, match="field 'name'"):
            FieldMap({'name': 'name'})

    def test_rejects_bad_names(self):
        """Test field names must be non-empty strings."""
        with pytest.raises(InvalidRuleError, match='invalid field name'):
            FieldMap({'': Ref('a')})

    def test_rejects_non_mapping(self):
        """Test rules must be given as a mapping."""
        with pytest.raises(InvalidRuleError, match='must be a mapping'):
            FieldMap([('name', Ref('name'))])

    def test_mapping_interface(self):
        """Test len, membership, lookup and iteration."""
        rule = Ref('name')
        fm = FieldMap({'name': rule})
        assert len(fm) == 1
        assert 'name' in fm
        assert fm['name'] is rule
        assert list(fm) == ['name']

    def test_empty_map(self):
        """Test an empty FieldMap yields an empty dict."""
        assert FieldMap().apply(record({'a': 1})) == {}

    def test_equality(self):
        """Test FieldMaps compare by rules and policy."""
        assert FieldMap({'name': Ref('name')}) == FieldMap({'name': Ref('name')})
        assert FieldMap({'name': Ref('name')}) != FieldMap({'name': Ref('name')}, missing='null')
        assert hash(FieldMap({'a': Ref('a')})) == hash(FieldMap({'a': Ref('a')}))


class TestConditions:
    """Tests for IsSet and Not."""

    def test_is_set_on_record(self):
        """Test IsSet with a record path."""
        cond = IsSet('subPath')
        assert cond.holds(record({'subPath': 'conf'}))
        assert not cond.holds(record({}))
        assert not cond.holds(record({'subPath': None}))

    def test_not(self):
        """Test ~ negates a condition."""
        cond = ~IsSet('subPath')
        assert isinstance(cond, Not)
        assert cond.holds(record({}))
        assert not cond.holds(record({'subPath': 'conf'}))

    def test_value_target_rebinds_to_context(self):
        """Test an unbound Value target reads the context's tree."""
        cond = IsSet(Value(path='ports'))
        assert cond.holds(record({'ports': [{'port': 80}]}))
        assert not cond.holds(record({'ports': []}))

    def test_value_target_reads_root(self):
        """Test a Value target reads the render snapshot when given."""
        cond = IsSet(Value(path='withPaths'))
        item = record({'name': 'data'})
        assert cond.holds(item, ValueTree({'withPaths': True}))
        assert not cond.holds(item, ValueTree({}))

    def test_root_overrides_bound_value(self):
        """Test the render snapshot wins over a Value's own tree."""
        bound = ValueTree({'debug': True}).get('debug')
        assert not IsSet(bound).holds(Value(), ValueTree({}))

    def test_path_target_ignores_root(self):
        """Test path targets always read the context."""
        cond = IsSet('subPath')
        assert not cond.holds(record({}), ValueTree({'subPath': 'conf'}))

    def test_not_passes_root(self):
        """Test Not forwards the render snapshot."""
        cond = ~IsSet(Value(path='withPaths'))
        assert not cond.holds(record({}), ValueTree({'withPaths': True}))

    def test_value_target_uses_own_binding_without_context(self):
        """Test a bound Value target uses its own tree without a snapshot."""
        tree = ValueTree({'ports': [{'port': 80}]})
        assert IsSet(tree.get('ports')).holds(Value())

    def test_equality(self):
        """Test conditions compare by target."""
        assert IsSet('subPath') == IsSet('subPath')
        assert IsSet(Value(path='a')) == IsSet(Value(path='a'))
        assert ~IsSet('a') == Not(IsSet('a'))
        assert IsSet('a') != Not(IsSet('a'))

    def test_invalid_target(self):
        """Test IsSet rejects bad targets."""
        with pytest.raises(InvalidRuleError, match='expected a path or a Value'):
            IsSet(3)
        with pytest.raises(InvalidRuleError, match='invalid path'):
            IsSet('a..b')

    def test_not_requires_condition(self):
        """Test Not only wraps conditions."""
        with pytest.raises(InvalidRuleError, match='expected a Condition'):
            Not(True)
