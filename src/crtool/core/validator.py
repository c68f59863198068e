"""JSON Schema validation for manifest documents.

This module loads the indicators schema, compiles it once, and checks
arbitrary JSON documents against it. A failing document is reported, not
raised; only an unusable schema is an error.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import ValidationError
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator

from .errors import SchemaUnavailable
from .types import ValidationIssue, ValidationReport

# Path to the bundled schema file (relative to this module)
# src/crtool/core/validator.py -> src/crtool/schemas/
SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "indicators.schema.json"


def default_schema_path() -> Path:
    """Return the path of the bundled indicators schema."""
    return SCHEMA_PATH


def load_schema(schema_path: Path | None = None) -> dict[str, Any]:
    """Load a JSON schema from disk.

    Args:
        schema_path: Schema to load (defaults to the bundled one)

    Returns:
        Dictionary containing the JSON Schema.

    Raises:
        SchemaUnavailable: If the file is missing, unreadable or not JSON
    """
    path = schema_path or SCHEMA_PATH
    if not path.exists():
        raise SchemaUnavailable(path, "schema file not found")

    try:
        with path.open("r", encoding="utf-8") as f:
            schema = json.load(f)
    except OSError as e:
        raise SchemaUnavailable(path, f"failed to read schema: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SchemaUnavailable(path, f"invalid schema JSON: {e}") from e

    if not isinstance(schema, dict):
        raise SchemaUnavailable(path, "schema must be a JSON object")
    return schema


def load_validator(schema_path: Path | None = None) -> Validator:
    """Load and compile a schema into a reusable validator.

    The returned validator holds no per-document state and can be shared
    across threads.

    Raises:
        SchemaUnavailable: If the schema cannot be loaded or does not compile
    """
    path = schema_path or SCHEMA_PATH
    schema = load_schema(path)
    validator_cls = jsonschema.validators.validator_for(schema)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as e:
        raise SchemaUnavailable(path, f"failed to compile schema: {e.message}") from e
    return validator_cls(schema, format_checker=jsonschema.FormatChecker())


def json_pointer(parts: Any) -> str:
    """Build an RFC 6901 JSON pointer from a sequence of path elements."""
    return "".join(
        "/" + str(part).replace("~", "~0").replace("/", "~1") for part in parts
    )


def _issue_from_error(error: ValidationError) -> ValidationIssue:
    path = list(error.absolute_path)
    # Point at the missing property rather than at the object lacking it
    if error.validator == "required" and isinstance(error.instance, dict):
        for name in error.validator_value:
            if name not in error.instance and repr(name) in error.message:
                path.append(name)
                break
    return ValidationIssue(pointer=json_pointer(path), message=error.message)


def validate_json_value(
    value: Any, validator: Validator, file_path: str = ""
) -> ValidationReport:
    """Validate a decoded JSON document.

    Args:
        value: The document to validate
        validator: Compiled validator from ``load_validator``
        file_path: Path recorded on the report

    Returns:
        ValidationReport with issues ordered by pointer, then message
    """
    issues = [_issue_from_error(e) for e in validator.iter_errors(value)]
    issues.sort(key=lambda issue: (issue.pointer, issue.message))
    return ValidationReport(file_path=file_path, errors=issues)


def validate_json_file(path: Path, validator: Validator) -> ValidationReport:
    """Validate a JSON file.

    Unreadable files and invalid JSON produce a failing report with a
    single root-level issue.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            value = json.load(f)
    except OSError as e:
        return ValidationReport(
            file_path=str(path),
            errors=[ValidationIssue(pointer="", message=f"Failed to read file: {e}")],
        )
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return ValidationReport(
            file_path=str(path),
            errors=[ValidationIssue(pointer="", message=f"Invalid JSON: {e}")],
        )

    return validate_json_value(value, validator, file_path=str(path))
