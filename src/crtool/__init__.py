"""crtool - C2PA manifest assembly, signing, extraction and validation.

This package turns a JSON manifest description into signed C2PA
manifests embedded in media assets, extracts embedded manifests back out
(native or JPEG Trust form), and validates extracted documents against a
JSON schema, one file or a whole batch at a time.
"""

# Core library interface
from .algorithms import SigningAlgorithm, select_signing_algorithm
from .backends import ManifestBackend, SigningCredentials, default_backend
from .batch import (
    BatchOptions,
    BatchOrchestrator,
    SignOptions,
    expand_input_patterns,
    extract_files,
    sign_files,
    validate_files,
)
from .extraction import ManifestExtractionResult, extract_manifest, write_extraction
from .pipeline import ManifestAssembler

# Core utilities
from .core import ManifestSpec, ResolvedManifest, load_manifest_spec, parse_manifest_spec
from .core import load_validator, validate_json_file, validate_json_value
from .core.errors import CrToolError

# CLI
from .cli import main

__version__ = "0.1.0"

__all__ = [
    # Primary library interface
    "ManifestAssembler",
    "ManifestBackend",
    "SigningCredentials",
    "SigningAlgorithm",
    "select_signing_algorithm",
    "default_backend",
    "BatchOptions",
    "BatchOrchestrator",
    "SignOptions",
    "expand_input_patterns",
    "sign_files",
    "extract_files",
    "validate_files",
    "ManifestExtractionResult",
    "extract_manifest",
    "write_extraction",
    # Core utilities
    "CrToolError",
    "ManifestSpec",
    "ResolvedManifest",
    "load_manifest_spec",
    "parse_manifest_spec",
    "load_validator",
    "validate_json_file",
    "validate_json_value",
    # CLI
    "main",
]
