"""Tests for JSON schema validation."""

import json

import pytest

from crtool.core.errors import SchemaUnavailable
from crtool.core.validator import (
    default_schema_path,
    json_pointer,
    load_validator,
    validate_json_file,
    validate_json_value,
)


@pytest.fixture(scope="module")
def validator():
    """Validator compiled from the bundled schema."""
    return load_validator()


def valid_document() -> dict:
    return {
        "@context": {"@vocab": "https://jpeg.org/jpegtrust"},
        "asset_info": {"alg": "sha256", "hash": "abc="},
        "manifests": [
            {
                "label": "urn:uuid:1",
                "claim_generator_info": [{"name": "crtool"}],
                "assertions": {"c2pa.actions": {"actions": []}},
                "ingredients": [{"title": "a.jpg", "relationship": "parentOf"}],
            }
        ],
    }


class TestLoadValidator:
    """Test schema loading."""

    def test_bundled_schema_compiles(self) -> None:
        """Test that the bundled schema exists and compiles."""
        assert default_schema_path().exists()
        load_validator()

    def test_missing_schema(self, tmp_path) -> None:
        """Test that a missing schema is unavailable."""
        with pytest.raises(SchemaUnavailable, match="not found"):
            load_validator(tmp_path / "missing.json")

    def test_invalid_schema_json(self, tmp_path) -> None:
        """Test that a schema that is not JSON is unavailable."""
        path = tmp_path / "schema.json"
        path.write_text("{nope")
        with pytest.raises(SchemaUnavailable, match="invalid schema JSON"):
            load_validator(path)

    def test_schema_that_does_not_compile(self, tmp_path) -> None:
        """Test that a malformed schema is unavailable."""
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({"type": 12}))
        with pytest.raises(SchemaUnavailable, match="compile"):
            load_validator(path)


class TestValidateJsonValue:
    """Test document validation."""

    def test_valid_document(self, validator) -> None:
        """Test that a conforming document passes."""
        report = validate_json_value(valid_document(), validator)
        assert report.is_valid
        assert report.errors == []

    def test_missing_required_field_pointer(self, validator) -> None:
        """Test that a missing required field is pointed at directly."""
        document = valid_document()
        del document["manifests"][0]["label"]

        report = validate_json_value(document, validator)

        assert not report.is_valid
        assert "/manifests/0/label" in [issue.pointer for issue in report.errors]

    def test_root_level_missing_field(self, validator) -> None:
        """Test that a missing top-level field points below the root."""
        document = valid_document()
        del document["@context"]

        report = validate_json_value(document, validator)

        assert [issue.pointer for issue in report.errors] == ["/@context"]

    def test_issues_sorted(self, validator) -> None:
        """Test that issues are ordered by pointer."""
        document = valid_document()
        document["manifests"][0]["ingredients"][0]["relationship"] = "siblingOf"
        document["asset_info"]["hash"] = ""

        report = validate_json_value(document, validator)

        pointers = [issue.pointer for issue in report.errors]
        assert pointers == sorted(pointers)
        assert "/manifests/0/ingredients/0/relationship" in pointers

    def test_wrong_root_type(self, validator) -> None:
        """Test that a non-object document fails at the root."""
        report = validate_json_value([], validator)
        assert report.errors[0].pointer == ""
        assert report.errors[0].location == "root"


class TestValidateJsonFile:
    """Test file validation."""

    def test_invalid_json_is_report(self, tmp_path, validator) -> None:
        """Test that invalid JSON yields a failing report, not an exception."""
        path = tmp_path / "doc.json"
        path.write_text("{broken")

        report = validate_json_file(path, validator)

        assert not report.is_valid
        assert report.errors[0].location == "root"
        assert report.errors[0].message.startswith("Invalid JSON")

    def test_missing_file_is_report(self, tmp_path, validator) -> None:
        """Test that an unreadable file yields a failing report."""
        report = validate_json_file(tmp_path / "missing.json", validator)
        assert report.errors[0].message.startswith("Failed to read file")

    def test_valid_file(self, tmp_path, validator) -> None:
        """Test that a conforming file passes and records its path."""
        path = tmp_path / "doc.json"
        path.write_text(json.dumps(valid_document()))

        report = validate_json_file(path, validator)

        assert report.is_valid
        assert report.file_path == str(path)


class TestJsonPointer:
    """Test JSON pointer construction."""

    def test_escapes(self) -> None:
        """Test that ~ and / are escaped."""
        assert json_pointer(["a/b", "c~d", 0]) == "/a~1b/c~0d/0"

    def test_root(self) -> None:
        """Test that the root is the empty pointer."""
        assert json_pointer([]) == ""
