import pytest

from mermaid_openapi import convert
from mermaid_openapi.generator.serializer import to_json, to_yaml
from mermaid_openapi.generator.validator import (
    ValidationIssue,
    ValidationResult,
    validate_diagram,
    validate_documents,
    validate_rendered,
)

VALID_DIAGRAM = """sequenceDiagram
    participant Client
    participant API
    Client->>API: POST /users/{id}
    Note over API: Body: {"name": "John"}
    API-->>Client: 201 Created
"""


def _messages(issues: list[ValidationIssue]) -> list[str]:
    return [issue.message for issue in issues]


class TestValidationResult:
    def test_from_issues_splits_by_severity(self):
        issues = [
            ValidationIssue(source="mermaid", severity="error", line=1, message="bad"),
            ValidationIssue(source="mermaid", severity="warning", line=2, message="odd"),
            ValidationIssue(source="openapi", severity="info", message="fyi"),
        ]
        result = ValidationResult.from_issues(issues)
        assert result.valid is False
        assert _messages(result.errors) == ["bad"]
        assert _messages(result.warnings) == ["odd", "fyi"]

    def test_empty_is_valid(self):
        assert ValidationResult.from_issues([]).valid is True


class TestValidateDiagram:
    def test_valid_diagram(self):
        result = validate_diagram(VALID_DIAGRAM)
        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_empty_input(self):
        for text in ("", "   \n  "):
            result = validate_diagram(text)
            assert result.valid is False
            assert _messages(result.errors) == ["Empty input"]

    def test_diagram_keywords_are_not_reported(self):
        text = "sequenceDiagram\nautonumber\nloop Every minute\nA->>B: GET /x\nend\n"
        assert validate_diagram(text).warnings == []

    def test_unmatched_line_warning(self):
        result = validate_diagram("A->>B: GET /x\nthis is not mermaid")
        assert result.valid is True
        assert result.warnings[0].line == 2
        assert result.warnings[0].message == "Line does not match any known Mermaid pattern"

    def test_invalid_http_method(self):
        result = validate_diagram("A->>B: FETCH /users")
        assert result.valid is False
        issue = result.errors[0]
        assert issue.message == 'Invalid HTTP method: "FETCH"'
        assert "GET" in issue.suggestion
        assert issue.line == 1

    def test_invalid_participant_characters(self):
        result = validate_diagram("participant User<Admin>\nparticipant Pipe|Name")
        assert len(result.errors) == 2
        assert all("Invalid character" in message for message in _messages(result.errors))

    def test_participant_starting_with_digit(self):
        result = validate_diagram("participant 1User")
        assert result.valid is True
        assert "starts with a number" in result.warnings[0].message

    def test_double_braces(self):
        result = validate_diagram("A->>B: GET /users/{{id}}")
        assert _messages(result.errors) == ["Double braces detected in path"]

    def test_unclosed_braces(self):
        assert _messages(validate_diagram("A->>B: GET /users/{id").errors) == ["Unclosed braces in path"]
        assert _messages(validate_diagram("A->>B: GET /users/id}").errors) == ["Unclosed braces in path"]

    def test_adjacent_parameters(self):
        result = validate_diagram("A->>B: GET /users/{id}{name}")
        assert _messages(result.errors) == ["Adjacent path parameters detected"]

    def test_query_string_braces_are_ignored(self):
        assert validate_diagram("A->>B: GET /search?q={").valid is True

    def test_status_out_of_range(self):
        text = "A->>B: GET /x\nB-->>A: 600 Nope"
        result = validate_diagram(text)
        assert _messages(result.errors) == ['Invalid HTTP status code: "600"']
        assert result.errors[0].line == 2

    def test_valid_status_ranges(self):
        for status in ("100", "204", "302", "404", "503", "599"):
            assert validate_diagram(f"A->>B: GET /x\nB-->>A: {status}").valid is True

    def test_undeclared_participant(self):
        result = validate_diagram("participant Client\nClient->>API: GET /x\nAPI-->>Client: 200")
        assert result.valid is True
        assert _messages(result.warnings) == ['Participant "API" is used but never declared']
        assert result.warnings[0].suggestion == 'Declare it with "participant API"'

    def test_implicit_participants_are_allowed(self):
        assert validate_diagram("Client->>API: GET /x\nAPI-->>Client: 200").warnings == []

    def test_note_before_request(self):
        result = validate_diagram("Note over API: Summary: Early\nClient->>API: GET /x")
        assert result.warnings[0].line == 1
        assert "orphaned" in result.warnings[0].message

    def test_orphaned_response(self):
        result = validate_diagram("API-->>Client: 200 OK")
        assert result.valid is True
        assert "orphaned response" in result.warnings[0].message

    def test_invalid_json_body(self):
        result = validate_diagram("Client->>API: POST /x\nNote over API: Body: {invalid}")
        assert result.valid is False
        assert result.errors[0].line == 2
        assert result.errors[0].message.startswith("Invalid JSON in body note at line 2")

    def test_issue_source(self):
        result = validate_diagram("A->>B: FETCH /x")
        assert result.errors[0].source == "mermaid"


def _document(**operation):
    operation.setdefault("responses", {"200": {"description": "OK"}})
    return {
        "openapi": "3.0.0",
        "info": {"title": "API", "version": "1.0.0"},
        "paths": {"/users": {"get": operation}},
    }


class TestValidateDocuments:
    def test_generated_documents_are_valid(self):
        result = validate_documents(convert(VALID_DIAGRAM).specs)
        assert result.valid is True
        assert result.warnings == []

    def test_missing_required_fields(self):
        result = validate_documents({"API": {"info": {"title": "API"}}})
        messages = _messages(result.errors)
        assert 'Missing required field: "openapi"' in messages
        assert 'Missing required field: "paths"' in messages
        assert 'Missing required field: "info.version"' in messages

    def test_unsupported_version(self):
        doc = _document()
        doc["openapi"] = "2.0"
        assert _messages(validate_documents({"API": doc}).errors) == ['Unsupported OpenAPI version: "2.0"']

    def test_empty_responses_warning(self):
        result = validate_documents({"API": _document(responses={})})
        assert result.valid is True
        assert _messages(result.warnings) == ["Operation has no responses"]
        assert result.warnings[0].context == "API GET /users"

    def test_missing_responses_error(self):
        doc = _document()
        del doc["paths"]["/users"]["get"]["responses"]
        assert _messages(validate_documents({"API": doc}).errors) == ['Operation missing "responses" field']

    def test_invalid_status_code(self):
        result = validate_documents({"API": _document(responses={"abc": {}, "700": {}, "default": {}})})
        assert _messages(result.errors) == ['Invalid status code: "abc"', 'Invalid status code: "700"']

    def test_undeclared_path_parameter(self):
        doc = _document()
        doc["paths"] = {"/users/{id}": {"get": {"responses": {"200": {}}}}}
        assert _messages(validate_documents({"API": doc}).errors) == ['Path parameter "id" is not declared']

    def test_optional_path_parameter(self):
        doc = _document()
        doc["paths"] = {"/users/{id}": {"get": {
            "parameters": [{"name": "id", "in": "path", "required": False}],
            "responses": {"200": {}},
        }}}
        assert _messages(validate_documents({"API": doc}).errors) == [
            'Path parameter "id" is not marked as required'
        ]

    def test_references(self):
        doc = _document(responses={"200": {"content": {"application/json": {"schema": {
            "type": "object",
            "properties": {
                "a": {"$ref": "#/components/schemas/Missing"},
                "b": {"$ref": "other.yaml#/User"},
                "c": {"$ref": "#/components/schemas/User"},
            },
        }}}}})
        doc["components"] = {"schemas": {"User": {"type": "object"}}}
        messages = sorted(_messages(validate_documents({"API": doc}).errors))
        assert messages == [
            'Invalid reference format: "other.yaml#/User"',
            'Invalid reference: "#/components/schemas/Missing" does not exist',
        ]

    def test_refs_inside_examples_are_not_checked(self):
        doc = _document(responses={"200": {"content": {"application/json": {"schema": {
            "type": "object", "example": {"$ref": "nowhere"},
        }}}}})
        assert validate_documents({"API": doc}).valid is True

    def test_undeclared_security_scheme(self):
        doc = _document(security=[{"bearerAuth": []}])
        assert _messages(validate_documents({"API": doc}).errors) == ['Security scheme "bearerAuth" is not defined']

    def test_duplicate_operation_id_across_services(self):
        result = validate_documents({
            "Users": _document(operationId="list"),
            "Orders": _document(operationId="list"),
        })
        assert _messages(result.errors) == ['Duplicate operationId "list"']
        assert result.errors[0].context == "Users GET /users; Orders GET /users"

    def test_service_without_operations(self):
        doc = _document()
        doc["paths"] = {}
        result = validate_documents({"Empty": doc})
        assert result.valid is True
        assert _messages(result.warnings) == ['Service "Empty" has no operations defined']

    def test_non_dict_document(self):
        assert validate_documents({"API": "oops"}).valid is False


class TestValidateRendered:
    def test_valid_yaml(self):
        doc = convert(VALID_DIAGRAM).specs["API"]
        assert validate_rendered(to_yaml(doc)).valid is True

    def test_valid_json(self):
        doc = convert(VALID_DIAGRAM).specs["API"]
        assert validate_rendered(to_json(doc), "json").valid is True

    def test_invalid_yaml(self):
        result = validate_rendered("key: [invalid\n")
        assert result.valid is False
        assert result.errors[0].source == "openapi"

    def test_invalid_json(self):
        assert validate_rendered("{", "json").valid is False

    @pytest.mark.parametrize("text", ['{"a": Infinity}', "[NaN]", "-Infinity"])
    def test_non_finite_json_is_invalid(self, text):
        result = validate_rendered(text, "json")
        assert result.valid is False
        assert "does not load back" in result.errors[0].message

    def test_deep_json_loads_back(self):
        text = "[" * 3000 + "]" * 3000
        assert validate_rendered(text, "json").valid is True

    def test_yaml_too_deep_to_read_is_a_warning(self):
        doc: dict = {}
        node = doc
        for _ in range(3000):
            node["a"] = {}
            node = node["a"]
        result = validate_rendered(to_yaml(doc))
        assert result.valid is True
        assert "nested too deeply" in result.warnings[0].message
