"""
Tests for MockRules rule targets

Tests body decoding and target extraction:
- Form-encoded bodies with bracket notation
- JSON bodies
- Unknown content types and malformed bodies
"""

import pytest

from mockrules.mock.models import RuleTarget
from mockrules.mock.request import RequestSnapshot
from mockrules.mock.targets import (
    ExtractedTargets,
    decode_body,
    extract_targets,
    parse_query_string
)


class TestParseQueryString:
    """Test form / query string decoding."""

    def test_flat_pairs(self):
        assert parse_query_string('a=1&b=two') == {'a': '1', 'b': 'two'}

    def test_percent_and_plus_decoding(self):
        assert parse_query_string('name=Ann+Lee&city=S%C3%A3o%20Paulo') == {
            'name': 'Ann Lee',
            'city': 'São Paulo'
        }

    def test_blank_values_kept(self):
        assert parse_query_string('flag&empty=') == {'flag': '', 'empty': ''}

    def test_repeated_keys_become_list(self):
        assert parse_query_string('a=1&a=2&a=3') == {'a': ['1', '2', '3']}

    def test_nested_objects(self):
        result = parse_query_string('user[name]=Ann&user[address][city]=Oslo')

        assert result == {'user': {'name': 'Ann', 'address': {'city': 'Oslo'}}}

    def test_empty_brackets_build_list(self):
        assert parse_query_string('tags[]=a&tags[]=b') == {'tags': ['a', 'b']}

    def test_indexed_list(self):
        assert parse_query_string('ids[0]=x&ids[1]=y') == {'ids': ['x', 'y']}

    def test_list_of_objects(self):
        result = parse_query_string('items[0][sku]=A1&items[0][qty]=2')

        assert result == {'items': [{'sku': 'A1', 'qty': '2'}]}

    def test_list_of_several_objects(self):
        result = parse_query_string(
            'items[0][name]=a&items[0][qty]=1&items[1][name]=b&items[2][name]=c'
        )

        assert result == {'items': [{'name': 'a', 'qty': '1'}, {'name': 'b'}, {'name': 'c'}]}

    def test_indices_decide_order(self):
        assert parse_query_string('a[1]=x&a[0]=y') == {'a': ['y', 'x']}

    def test_sparse_indices_are_compacted(self):
        assert parse_query_string('a[5]=x&a[2]=y') == {'a': ['y', 'x']}

    def test_repeated_index_appends(self):
        assert parse_query_string('a[0]=x&a[0]=y') == {'a': ['x', 'y']}

    def test_large_index_becomes_key(self):
        assert parse_query_string('ids[25]=x') == {'ids': {'25': 'x'}}

    def test_depth_limit(self):
        result = parse_query_string('a[b][c][d][e][f][g]=1')

        assert result == {'a': {'b': {'c': {'d': {'e': {'f': {'[g]': '1'}}}}}}}

    def test_bytes_input(self):
        assert parse_query_string(b'a=1') == {'a': '1'}

    def test_empty_input(self):
        assert parse_query_string('') == {}
        assert parse_query_string(None) == {}


class TestDecodeBody:
    """Test body decoding by content type."""

    def test_json(self):
        assert decode_body(b'{"a": [1, 2]}', 'application/json') == {'a': [1, 2]}

    def test_json_with_charset(self):
        assert decode_body('{"a": 1}', 'application/json; charset=utf-8') == {'a': 1}

    def test_json_array(self):
        assert decode_body('[1, 2]', 'application/json') == [1, 2]

    def test_form(self):
        assert decode_body(b'a[b]=1', 'application/x-www-form-urlencoded') == {'a': {'b': '1'}}

    @pytest.mark.parametrize('body,content_type', [
        (b'{"a": ', 'application/json'),
        (b'', 'application/json'),
        (b'not json', 'application/json'),
        (b'\xff\xfe{', 'application/json'),
        (b'a=\xff', 'application/x-www-form-urlencoded'),
        (b'{"a": 1}', 'text/plain'),
        (b'{"a": 1}', ''),
        (None, 'application/json'),
    ])
    def test_undecodable_bodies_are_empty(self, body, content_type):
        assert decode_body(body, content_type) == {}


class TestExtractTargets:
    """Test target extraction from a request snapshot."""

    def test_extracts_all_targets(self):
        request = RequestSnapshot(
            body=b'{"user": {"id": "42"}}',
            headers={'CONTENT-TYPE': 'Application/JSON'},
            query={'page': '1'},
            params={'id': '7'}
        )

        targets = extract_targets(request)

        assert targets.body == {'user': {'id': '42'}}
        assert targets[RuleTarget.QUERY] == {'page': '1'}
        assert targets[RuleTarget.PARAMS] == {'id': '7'}

    def test_missing_content_type(self):
        targets = extract_targets(RequestSnapshot(body=b'{"a": 1}'))

        assert targets.body == {}

    def test_headers_not_extracted(self):
        targets = ExtractedTargets()

        with pytest.raises(KeyError):
            targets[RuleTarget.HEADER]
