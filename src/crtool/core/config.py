"""Parsing of manifest descriptions.

A manifest description is a JSON document in the C2PA manifest definition
format, extended with an ``ingredients_from_files`` list that names
ingredient assets on disk.
"""

import json
from pathlib import Path
from typing import Any

from .errors import MalformedConfiguration
from .metadata import check_field_type
from .types import RELATIONSHIPS, RESERVED_KEYS, AssertionSpec, IngredientSpec, ManifestSpec

_CONSUMED_KEYS = ("title", "format", "claim_generator_info", "assertions", "ingredients")


def load_manifest_spec(path: Path) -> ManifestSpec:
    """Read and parse a manifest description file.

    Args:
        path: Path to the JSON manifest description

    Returns:
        Parsed ManifestSpec with ``source_path`` set

    Raises:
        MalformedConfiguration: If the file is unreadable, not JSON, or has the wrong shape
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise MalformedConfiguration("", f"Failed to read manifest file {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedConfiguration("", f"Invalid JSON in manifest file {path}: {e}") from e

    return parse_manifest_spec(document, source_path=path)


def parse_manifest_spec(document: Any, source_path: Path | None = None) -> ManifestSpec:
    """Parse a decoded manifest description.

    Args:
        document: Decoded JSON document
        source_path: File the document came from, if any

    Returns:
        ManifestSpec

    Raises:
        MalformedConfiguration: On any type mismatch, naming the offending key path
    """
    if not isinstance(document, dict):
        raise MalformedConfiguration("", "manifest description must be a JSON object")

    title = _optional_str(document, "title", "title")
    fmt = _optional_str(document, "format", "format")
    if title is None and fmt is None:
        raise MalformedConfiguration("", "manifest description must define 'title' or 'format'")

    claim_generator_info = document.get("claim_generator_info")
    if claim_generator_info is not None and not isinstance(claim_generator_info, (dict, list)):
        raise MalformedConfiguration("claim_generator_info", "must be an object or an array")

    inline_ingredients = _list(document, "ingredients", "ingredients")
    for i, ingredient in enumerate(inline_ingredients):
        if not isinstance(ingredient, dict):
            raise MalformedConfiguration(f"ingredients[{i}]", "must be an object")

    extra = {
        key: value
        for key, value in document.items()
        if key not in _CONSUMED_KEYS and key not in RESERVED_KEYS
    }

    return ManifestSpec(
        title=title,
        format=fmt,
        claim_generator_info=claim_generator_info,
        assertions=[
            _parse_assertion(item, f"assertions[{i}]")
            for i, item in enumerate(_list(document, "assertions", "assertions"))
        ],
        ingredients_from_files=[
            _parse_ingredient(item, f"ingredients_from_files[{i}]")
            for i, item in enumerate(
                _list(document, "ingredients_from_files", "ingredients_from_files")
            )
        ],
        ingredients=inline_ingredients,
        extra=extra,
        source_path=source_path,
    )


def normalize_relationship(value: str, key_path: str) -> str:
    """Match a relationship case-insensitively against the allowed values."""
    for allowed in RELATIONSHIPS:
        if value.lower() == allowed.lower():
            return allowed
    raise MalformedConfiguration(
        key_path,
        f"invalid relationship '{value}' (expected one of: {', '.join(RELATIONSHIPS)})",
    )


def _parse_assertion(item: Any, key_path: str) -> AssertionSpec:
    if not isinstance(item, dict):
        raise MalformedConfiguration(key_path, "must be an object")
    label = item.get("label")
    if not isinstance(label, str) or not label:
        raise MalformedConfiguration(f"{key_path}.label", "must be a non-empty string")
    return AssertionSpec(label=label, data=item.get("data"))


def _parse_ingredient(item: Any, key_path: str) -> IngredientSpec:
    if not isinstance(item, dict):
        raise MalformedConfiguration(key_path, "must be an object")

    file_path = item.get("file_path")
    if not isinstance(file_path, str) or not file_path:
        raise MalformedConfiguration(
            f"{key_path}.file_path", "is required and must be a non-empty string"
        )

    relationship = _optional_str(item, "relationship", f"{key_path}.relationship")
    if relationship is not None:
        relationship = normalize_relationship(relationship, f"{key_path}.relationship")

    label = _optional_str(item, "label", f"{key_path}.label")
    if label == "":
        raise MalformedConfiguration(f"{key_path}.label", "must not be empty")

    metadata = item.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            raise MalformedConfiguration(f"{key_path}.metadata", "must be an object")
        for key, value in metadata.items():
            check_field_type(key, value, f"{key_path}.metadata.{key}")

    return IngredientSpec(
        file_path=file_path,
        title=_optional_str(item, "title", f"{key_path}.title"),
        relationship=relationship,
        label=label,
        metadata=metadata,
        key_path=key_path,
    )


def _optional_str(obj: dict[str, Any], key: str, key_path: str) -> str | None:
    value = obj.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedConfiguration(key_path, "must be a string")
    return value


def _list(obj: dict[str, Any], key: str, key_path: str) -> list[Any]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedConfiguration(key_path, "must be an array")
    return value
