"""Core utilities for manifest assembly.

This package contains the manifest description model, metadata merging,
label cross-referencing, media type lookup and schema validation used by
every operating mode.
"""

from .config import load_manifest_spec, parse_manifest_spec
from .formats import SUPPORTED_ASSET_EXTENSIONS, is_supported_asset_path, mime_type_for
from .labels import build_label_index, resolve_references
from .metadata import MetadataBlock, merge_metadata
from .types import (
    AssertionSpec,
    BatchResult,
    BatchUnit,
    CertificateInfo,
    IngredientSpec,
    ManifestSpec,
    ResolvedIngredient,
    ResolvedManifest,
    ValidationIssue,
    ValidationReport,
)
from .validator import default_schema_path, load_validator, validate_json_file, validate_json_value

__all__ = [
    "AssertionSpec",
    "BatchResult",
    "BatchUnit",
    "CertificateInfo",
    "IngredientSpec",
    "ManifestSpec",
    "MetadataBlock",
    "ResolvedIngredient",
    "ResolvedManifest",
    "SUPPORTED_ASSET_EXTENSIONS",
    "ValidationIssue",
    "ValidationReport",
    "build_label_index",
    "default_schema_path",
    "is_supported_asset_path",
    "load_manifest_spec",
    "load_validator",
    "merge_metadata",
    "mime_type_for",
    "parse_manifest_spec",
    "resolve_references",
    "validate_json_file",
    "validate_json_value",
]
