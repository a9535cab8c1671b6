import json

import pytest
import yaml

from mermaid_openapi.generator.serializer import render, to_json, to_yaml, yaml_key


class TestToYaml:
    def test_nested_mapping(self):
        assert to_yaml({"user": {"name": "John", "age": 30}}) == 'user:\n  name: "John"\n  age: 30\n'

    def test_scalars_are_json_quoted(self):
        text = to_yaml({"s": "yes", "n": None, "b": True, "f": 1.5, "e": "a\nb"})
        assert text == 's: "yes"\nn: null\nb: true\nf: 1.5\ne: "a\\nb"\n'

    def test_list_of_scalars(self):
        assert to_yaml({"items": ["a", "b"]}) == 'items:\n  - "a"\n  - "b"\n'

    def test_list_of_mappings(self):
        text = to_yaml({"users": [{"id": 1, "name": "John"}, {"id": 2}]})
        assert text == 'users:\n  - id: 1\n    name: "John"\n  - id: 2\n'

    def test_nested_lists(self):
        assert to_yaml({"grid": [[1, 2], [3]]}) == "grid:\n  - - 1\n    - 2\n  - - 3\n"

    def test_empty_containers(self):
        assert to_yaml({"a": {}, "b": [], "c": [{}, []]}) == "a: {}\nb: []\nc:\n  - {}\n  - []\n"

    def test_top_level_values(self):
        assert to_yaml({}) == "{}\n"
        assert to_yaml([1]) == "- 1\n"
        assert to_yaml("x") == '"x"\n'

    def test_status_and_ref_keys(self):
        doc = {"responses": {"200": {"$ref": "#/components/schemas/User"}}}
        assert to_yaml(doc) == 'responses:\n  200:\n    $ref: "#/components/schemas/User"\n'

    def test_reads_back(self):
        doc = {
            "openapi": "3.0.0",
            "paths": {"/users/{id}": {"get": {"parameters": [{"name": "id", "required": True}]}}},
            "weird": {"key: value": 1, "#hash": 2, "true": 3, " pad": 4, "a\tb": 5},
            "unicode": "café ☃",
        }
        assert yaml.safe_load(to_yaml(doc)) == doc

    def test_awkward_values_read_back(self):
        doc = {"<<": "merge", "=": "value", "2024-01-01": "date", "del\x7f": "x\x85y\u2028z", "big": 1e16}
        text = to_yaml(doc)
        assert "\\u2028" in text
        assert "big: 1.0e+16" in text
        assert yaml.safe_load(text) == doc

    def test_deep_nesting(self):
        doc: dict = {}
        node = doc
        for _ in range(3000):
            node["a"] = {}
            node = node["a"]
        text = to_yaml(doc)
        assert text.count("\n") == 3000
        assert text.endswith("a: {}\n")


class TestYamlKey:
    @pytest.mark.parametrize("key", ["name", "/users/{id}", "200", "$ref", "oauth2:read,write", "application/json"])
    def test_plain_keys(self, key):
        assert yaml_key(key) == key

    @pytest.mark.parametrize("key", ["", "null", "Yes", "- x", "a: b", "end:", "a #b", "*alias", " x"])
    def test_quoted_keys(self, key):
        assert yaml_key(key) == json.dumps(key)


class TestToJson:
    @pytest.mark.parametrize("value", [
        {},
        [],
        {"a": 1, "b": [1, 2, {"c": None}], "d": {}, "e": []},
        [{"x": "café"}, [[]], "s", 1.5, True],
        {1: "int key", "s": False},
        "scalar",
    ])
    def test_matches_json_dumps(self, value):
        assert to_json(value) == json.dumps(value, indent=2, ensure_ascii=False)

    def test_deep_nesting(self):
        doc: list = []
        node = doc
        for _ in range(3000):
            child: list = []
            node.append(child)
            node = child
        text = to_json(doc)
        assert text.count("[") == 3001
        assert text.count("]") == 3001
        assert text.startswith("[\n  [\n    [")

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    def test_rejects_non_finite_floats(self, value):
        with pytest.raises(ValueError):
            to_json({"n": value})
        with pytest.raises(ValueError):
            to_yaml({"n": [value]})


class TestRender:
    def test_dispatch(self):
        doc = {"a": [1]}
        assert render(doc, "yaml") == to_yaml(doc)
        assert render(doc, "json") == to_json(doc)
        assert render(doc) == to_yaml(doc)

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unknown output format"):
            render({}, "xml")
