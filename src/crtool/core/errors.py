"""Error taxonomy for manifest assembly, batch processing and validation.

Pre-flight errors abort a run before any input is touched. Per-file errors
are recorded against the failing unit and never abort sibling units.
"""

from pathlib import Path


class CrToolError(Exception):
    """Base exception for all crtool failures."""


# ============================================================================
# Pre-flight errors
# ============================================================================


class UsageError(CrToolError):
    """Raised when a mode is invoked without the options it requires."""


class MalformedConfiguration(CrToolError):
    """Raised when the manifest description has the wrong shape.

    Attributes:
        key_path: Dotted/indexed path of the offending key
            (e.g. ``ingredients_from_files[1].relationship``)
    """

    def __init__(self, key_path: str, message: str):
        self.key_path = key_path
        super().__init__(f"{key_path}: {message}" if key_path else message)


class NoMatchingFiles(CrToolError):
    """Raised when an input pattern expands to nothing."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"No files match pattern: {pattern}")


class MultiFileOutputMustBeDirectory(CrToolError):
    """Raised when several inputs are given but the output is not a directory."""

    def __init__(self, output: Path):
        self.output = output
        super().__init__(
            f"Output must be an existing directory when processing multiple input files. Got: {output}"
        )


class DuplicateOutputPath(CrToolError):
    """Raised when two inputs would be written to the same output file."""

    def __init__(self, output: Path, inputs: list[Path]):
        self.output = output
        self.inputs = inputs
        joined = ", ".join(str(p) for p in inputs)
        super().__init__(f"Inputs {joined} all map to the same output file: {output}")


class UnsupportedAssetFormat(CrToolError):
    """Raised when inputs carry extensions the signer cannot handle."""

    def __init__(self, paths: list[Path], supported: list[str]):
        self.paths = paths
        super().__init__(
            "Unsupported file format(s): "
            + ", ".join(str(p) for p in paths)
            + ". Supported extensions: "
            + ", ".join(supported)
        )


class UnsupportedSigningAlgorithm(CrToolError):
    """Raised when an explicit algorithm token is not recognized."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unsupported signing algorithm: {token}")


class UnsupportedCertificateCurve(CrToolError):
    """Raised when an EC certificate uses a curve with no algorithm."""

    def __init__(self, curve: str, key_size: int):
        self.curve = curve
        self.key_size = key_size
        super().__init__(f"Unsupported EC curve: {curve} ({key_size}-bit)")


class UnsupportedCertificateKey(CrToolError):
    """Raised when a certificate's public key family has no algorithm."""

    def __init__(self, key_type: str):
        self.key_type = key_type
        super().__init__(f"Unsupported public key algorithm: {key_type}")


class CertificateUnreadable(CrToolError):
    """Raised when the certificate file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Failed to read certificate {path}: {reason}")


class SchemaUnavailable(CrToolError):
    """Raised when the validation schema cannot be loaded or compiled."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Schema unavailable at {path}: {reason}")


# ============================================================================
# Per-file errors
# ============================================================================


class InputNotFound(CrToolError):
    """Raised when an input asset disappears or never existed."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Input file does not exist: {path}")


class IngredientNotFound(CrToolError):
    """Raised when a declared ingredient file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Ingredient file not found: {path}")


class UnsupportedIngredientFormat(CrToolError):
    """Raised when an ingredient's extension has no known media type."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Unsupported ingredient file format: {path}")


class UnresolvedIngredientReference(CrToolError):
    """Raised when an action references a label no ingredient carries."""

    def __init__(self, label: str, assertion_label: str, action_index: int, reason: str | None = None):
        self.label = label
        self.assertion_label = assertion_label
        self.action_index = action_index
        super().__init__(
            reason
            or f"Action {action_index} in assertion '{assertion_label}' references "
            f"unknown ingredient label '{label}'"
        )


class AmbiguousIngredientReference(UnresolvedIngredientReference):
    """Raised when a referenced label is carried by several ingredients."""

    def __init__(self, label: str, assertion_label: str, action_index: int, paths: list[str]):
        self.paths = paths
        super().__init__(
            label,
            assertion_label,
            action_index,
            reason=(
                f"Action {action_index} in assertion '{assertion_label}' references "
                f"ingredient label '{label}', which is carried by {len(paths)} ingredients "
                f"({', '.join(paths)}); give each one an explicit 'label'"
            ),
        )


class MetadataFieldCollision(CrToolError):
    """Raised when a custom metadata field would shadow a recognized one."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(
            f"Custom metadata field '{key}' collides with a recognized metadata field"
        )


class NoEmbeddedManifest(CrToolError):
    """Raised when an asset carries no C2PA manifest."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f"No C2PA manifest found in {path}. The file may not contain a C2PA manifest."
        )


class BackendError(CrToolError):
    """Wraps a failure raised by the signing/embedding library."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")
