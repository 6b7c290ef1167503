# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for each()/map()/wrap() collection operations."""

import logging

import pytest

from genro_defkit import (
    CollectionOp,
    DefinitionError,
    FieldMap,
    Format,
    Nested,
    Ref,
    Value,
    ValueTree,
    each,
)


class TestWrap:
    """Tests for wrap()."""

    def test_image_pull_secrets(self):
        """Test wrapping secret names."""
        op = each(Value(path='imagePullSecrets')).wrap('name')
        assert op.evaluate({'imagePullSecrets': ['reg-a', 'reg-b']}) == [
            {'name': 'reg-a'},
            {'name': 'reg-b'},
        ]

    def test_wraps_structured_items(self):
        """Test wrapping mapping items."""
        op = each(Value(path='items')).wrap('item')
        assert op.evaluate({'items': [{'a': 1}]}) == [{'item': {'a': 1}}]

    def test_invalid_name(self):
        """Test wrap() needs a field name."""
        with pytest.raises(DefinitionError, match='field name'):
            each(Value(path='items')).wrap('')


class TestMap:
    """Tests for map()."""

    def test_container_ports(self):
        """Test reshaping ports with a FieldMap."""
        op = each(Value(path='ports')).map(FieldMap({
            'containerPort': Ref('port'),
            'name': Ref('name') | Format('port-%v', Ref('port')),
            'protocol': Ref('protocol'),
        }))
        values = {'ports': [
            {'port': 80, 'protocol': 'TCP'},
            {'port': 443, 'name': 'https', 'protocol': 'TCP'},
        ]}
        assert op.evaluate(values) == [
            {'containerPort': 80, 'name': 'port-80', 'protocol': 'TCP'},
            {'containerPort': 443, 'name': 'https', 'protocol': 'TCP'},
        ]

    def test_plain_dict_field_map(self):
        """Test map() accepts a plain dict."""
        op = each(Value(path='ports')).map({'port': Ref('port')})
        assert op.evaluate({'ports': [{'port': 80, 'extra': True}]}) == [{'port': 80}]

    def test_nested_fields(self):
        """Test Nested rules inside map()."""
        op = each(Value(path='rules')).map({
            'host': Ref('host'),
            'backend': Nested({'service': Nested({'name': Ref('svc')})}),
        })
        assert op.evaluate({'rules': [{'host': 'a.example', 'svc': 'api'}]}) == [
            {'host': 'a.example', 'backend': {'service': {'name': 'api'}}},
        ]

    def test_steps_compose(self):
        """Test map() and wrap() chain."""
        op = each(Value(path='ports')).map({'containerPort': Ref('port')}).wrap('spec')
        assert op.evaluate({'ports': [{'port': 80}]}) == [{'spec': {'containerPort': 80}}]

    def test_each_call_returns_new_op(self):
        """Test operations are immutable."""
        base = each(Value(path='items'))
        wrapped = base.wrap('name')
        assert wrapped is not base
        assert base.steps == ()
        assert len(wrapped.steps) == 1
        assert base.evaluate({'items': ['a']}) == ['a']


class TestEvaluate:
    """Tests for evaluation edge cases."""

    def test_unset_source(self):
        """Test unset sources give an empty list."""
        op = each(Value(path='items')).wrap('name')
        assert op.evaluate({}) == []
        assert op.evaluate({'items': []}) == []
        assert op.evaluate({'items': None}) == []

    def test_unbound_without_snapshot(self):
        """Test an unbound source without a snapshot."""
        assert each(Value(path='items')).evaluate() == []

    def test_bound_source(self):
        """Test a bound source reads its own tree."""
        tree = ValueTree({'items': ['a']})
        assert each(tree.get('items')).wrap('name').evaluate() == [{'name': 'a'}]

    def test_non_sequence_source(self, caplog):
        """Test a mapping source is skipped with a warning."""
        op = each(Value(path='items')).wrap('name')
        with caplog.at_level(logging.WARNING):
            assert op.evaluate({'items': {'a': 1}}) == []
        assert 'not a sequence' in caplog.text

    def test_result_is_fresh(self):
        """Test results are not shared between calls."""
        op = each(Value(path='items')).wrap('name')
        values = ValueTree({'items': ['a']})
        first = op.evaluate(values)
        first[0]['name'] = 'changed'
        assert op.evaluate(values) == [{'name': 'a'}]

    def test_source_must_be_value(self):
        """Test each() needs a Value."""
        with pytest.raises(DefinitionError, match='expects a Value'):
            each(['a', 'b'])

    def test_is_collection_op(self):
        """Test each() returns a CollectionOp."""
        assert isinstance(each(Value(path='items')), CollectionOp)
