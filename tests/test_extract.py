"""Tests for YAML fragment extraction helpers."""

from __future__ import annotations

import pytest
import yaml

from confgetter.exceptions import (
    DocumentParseError,
    PathQueryError,
    ResultArityError,
)
from confgetter.extract import (
    ExtractionRequest,
    extract_yaml,
    load_document,
    rekey,
    select_nodes,
    serialize_node,
    split_extraction_params,
)

from conftest import LIST_BODY, YAML_BODY


class TestSplitExtractionParams:
    def test_no_query_is_forwarded_unchanged(self):
        request, url = split_extraction_params("https://cfg.test/app.yaml")
        assert request == ExtractionRequest()
        assert url == "https://cfg.test/app.yaml"

    def test_reserved_params_are_removed(self):
        request, url = split_extraction_params(
            "https://cfg.test/app.yaml?xpath=a.b&format=yaml&type=list&newkey=svc"
        )
        assert request == ExtractionRequest(
            xpath="a.b", format="yaml", result_type="list", new_key="svc",
        )
        assert url == "https://cfg.test/app.yaml"

    def test_other_params_keep_order_and_encoding(self):
        _, url = split_extraction_params(
            "https://cfg.test/app.yaml?z=1&xpath=a&label=hello%20world&a=b%2Fc"
        )
        assert url == "https://cfg.test/app.yaml?z=1&label=hello%20world&a=b%2Fc"

    def test_values_are_decoded(self):
        request, _ = split_extraction_params("https://cfg.test/?xpath=a%5B0%5D&newkey=my+key")
        assert request.xpath == "a[0]"
        assert request.new_key == "my key"

    def test_first_value_wins(self):
        request, _ = split_extraction_params("https://cfg.test/?xpath=a&xpath=b")
        assert request.xpath == "a"

    def test_fragment_and_userinfo_preserved(self):
        _, url = split_extraction_params("https://u:p@cfg.test/x?xpath=a&k=v#frag")
        assert url == "https://u:p@cfg.test/x?k=v#frag"


class TestEffectiveFormat:
    def test_xpath_implies_yaml(self):
        assert ExtractionRequest(xpath="a").effective_format == "yaml"

    def test_explicit_format_kept(self):
        assert ExtractionRequest(xpath="a", format="json").effective_format == "json"

    def test_nothing_requested(self):
        assert ExtractionRequest().effective_format == ""

    def test_list_hint_is_exact(self):
        assert ExtractionRequest(result_type="list").allows_list
        assert not ExtractionRequest(result_type="List").allows_list


class TestSerializeNode:
    def test_root_scalar_has_no_document_end(self):
        assert serialize_node(yaml.compose("value1")) == "value1\n"

    def test_nested_mapping_two_space_indent(self):
        assert serialize_node(yaml.compose("a:\n    b: 1\n")) == "a:\n  b: 1\n"

    def test_sequence_indented_under_key(self):
        assert serialize_node(yaml.compose("a:\n- x\n- y\n")) == "a:\n  - x\n  - y\n"

    def test_key_order_preserved(self):
        assert serialize_node(yaml.compose("z: 1\na: 2\n")) == "z: 1\na: 2\n"

    def test_quoting_style_kept(self):
        assert serialize_node(yaml.compose("a: 'NO'\nb: \"1.10\"\n")) == "a: 'NO'\nb: \"1.10\"\n"

    def test_rekey_wraps_node(self):
        assert serialize_node(rekey(yaml.compose("value1"), "k")) == "k: value1\n"


class TestExtractYaml:
    def test_selects_submapping(self):
        out = extract_yaml(YAML_BODY.encode(), ExtractionRequest(xpath="yaml.key3"))
        assert out == b"subkey3_1: subvalue3_1\nsubkey3_2: subvalue3_2\n"

    def test_scalar_text_survives_rewrite(self):
        content = b"yaml:\n  version: 1.10\n  country: NO\n  mode: 0755\n  flag: on\n"
        out = extract_yaml(content, ExtractionRequest(xpath="yaml"))
        assert out == b"version: 1.10\ncountry: NO\nmode: 0755\nflag: on\n"

    def test_first_document_is_used(self):
        assert extract_yaml(b"a: 1\n---\nb: 2\n", ExtractionRequest(xpath="a")) == b"1\n"

    def test_later_documents_are_not_queried(self):
        assert extract_yaml(b"a: 1\n---\nb: 2\n", ExtractionRequest(xpath="b")) == b""

    def test_filter_expression(self):
        out = extract_yaml(LIST_BODY.encode(), ExtractionRequest(xpath='$.items[?(@.name=="b")]'))
        assert out == b"name: b\n"

    def test_index_into_string_selects_nothing(self):
        assert extract_yaml(YAML_BODY.encode(), ExtractionRequest(xpath="yaml.key1[0]")) == b""

    def test_index_into_mapping_selects_nothing(self):
        assert extract_yaml(YAML_BODY.encode(), ExtractionRequest(xpath="yaml[0]")) == b""

    def test_root_path_on_scalar_document(self):
        assert extract_yaml(b"value1\n", ExtractionRequest(xpath="$")) == b"value1\n"

    def test_empty_path_selects_whole_document(self):
        out = extract_yaml(YAML_BODY.encode(), ExtractionRequest(format="yaml"))
        assert out == YAML_BODY.encode()

    def test_empty_path_with_new_key(self):
        out = extract_yaml(b"a: 1\n", ExtractionRequest(format="yaml", new_key="root"))
        assert out == b"root:\n  a: 1\n"

    def test_no_match_is_empty(self):
        assert extract_yaml(YAML_BODY.encode(), ExtractionRequest(xpath="missing")) == b""

    def test_empty_document_is_empty(self):
        assert extract_yaml(b"", ExtractionRequest(xpath="a")) == b""
        assert extract_yaml(b"", ExtractionRequest(format="yaml")) == b""

    def test_new_key_wraps_scalar(self):
        out = extract_yaml(
            YAML_BODY.encode(), ExtractionRequest(xpath="yaml.key2", new_key="second"),
        )
        assert out == b"second: value2\n"

    def test_new_key_wraps_list_results(self):
        out = extract_yaml(
            b"items: [1, 2]\n",
            ExtractionRequest(xpath="items[*]", result_type="list", new_key="nums"),
        )
        assert out == b"nums:\n  - 1\n  - 2\n"

    def test_single_match_with_list_hint_is_not_wrapped(self):
        out = extract_yaml(
            YAML_BODY.encode(), ExtractionRequest(xpath="yaml.key1", result_type="list"),
        )
        assert out == b"value1\n"

    def test_parse_error_names_source(self):
        with pytest.raises(DocumentParseError, match="cfg.yaml"):
            extract_yaml(b"a: b: c\n", ExtractionRequest(xpath="a"), source="cfg.yaml")

    def test_invalid_expression(self):
        with pytest.raises(PathQueryError) as exc_info:
            extract_yaml(YAML_BODY.encode(), ExtractionRequest(xpath="yaml.key1]"))
        assert exc_info.value.xpath == "yaml.key1]"


class TestLoadDocument:
    def test_empty_stream(self):
        assert load_document(b"") is None

    def test_first_of_many(self):
        root = load_document(b"a: 1\n---\nb: 2\n")
        assert [key.value for key, _ in root.value] == ["a"]


class TestSelectNodes:
    def test_matches_are_nodes_of_document(self):
        root = yaml.compose("a:\n  b: [1, 2]\n")
        (node,) = select_nodes(root, ExtractionRequest(xpath="a.b"))
        assert node is root.value[0][1].value[0][1]

    def test_arity_error_reports_count(self):
        with pytest.raises(ResultArityError) as exc_info:
            select_nodes(yaml.compose("a: [1, 2, 3]\n"), ExtractionRequest(xpath="a[*]"))
        assert exc_info.value.count == 3

    def test_list_hint_allows_many(self):
        matches = select_nodes(
            yaml.compose("a: [1, 2, 3]\n"), ExtractionRequest(xpath="a[*]", result_type="list"),
        )
        assert [node.value for node in matches] == ["1", "2", "3"]

    def test_descendants(self):
        matches = select_nodes(
            yaml.compose(LIST_BODY), ExtractionRequest(xpath="$..name", result_type="list"),
        )
        assert [node.value for node in matches] == ["a", "b"]
