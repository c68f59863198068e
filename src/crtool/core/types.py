"""Type definitions for manifest descriptions and processing results.

This module mirrors the JSON structures consumed from manifest
descriptions and produced for the signing library, plus the records the
batch orchestrator reports back.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypedDict

from .metadata import MetadataBlock

PARENT_OF = "parentOf"
COMPONENT_OF = "componentOf"
RELATIONSHIPS = (PARENT_OF, COMPONENT_OF)

# Top-level keys consumed by the assembly pipeline and never handed to the signer
RESERVED_KEYS = ("ingredients_from_files",)


class ResourceRef(TypedDict):
    """Reference to a binary resource stored alongside a manifest."""

    format: str  # MIME type (e.g. 'image/jpeg')
    identifier: str  # Resource name the signer resolves


class IngredientDefinition(TypedDict, total=False):
    """Ingredient JSON handed to the signing library."""

    title: str
    format: str
    relationship: str  # 'parentOf' or 'componentOf'
    instance_id: str  # Identifier actions reference in 'ingredientIds'
    label: str
    metadata: dict[str, Any]  # Flat: recognized and custom fields as siblings
    thumbnail: ResourceRef


# ============================================================================
# Manifest description
# ============================================================================


@dataclass
class AssertionSpec:
    """One labeled assertion payload."""

    label: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "data": copy.deepcopy(self.data)}


@dataclass
class IngredientSpec:
    """A declared file-based ingredient.

    Attributes:
        file_path: Path to the ingredient, relative to the base directory or absolute
        title: Optional display title (defaults to the file name)
        relationship: 'parentOf' or 'componentOf' (defaults to 'componentOf')
        label: Optional stable label actions use to reference this ingredient
        metadata: Optional sparse metadata object
        key_path: Location of this entry in the description, for error messages
    """

    file_path: str
    title: str | None = None
    relationship: str | None = None
    label: str | None = None
    metadata: dict[str, Any] | None = None
    key_path: str = ""


@dataclass
class ManifestSpec:
    """User-authored manifest description.

    Unknown top-level keys are kept in ``extra`` and passed through to the
    signer untouched.
    """

    title: str | None = None
    format: str | None = None
    claim_generator_info: Any = None
    assertions: list[AssertionSpec] = field(default_factory=list)
    ingredients_from_files: list[IngredientSpec] = field(default_factory=list)
    ingredients: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    source_path: Path | None = None

    def definition(self) -> dict[str, Any]:
        """Build the signer-facing manifest definition.

        Reserved pipeline keys are excluded; file-based ingredients are
        added separately once resolved.
        """
        result = copy.deepcopy(self.extra)
        if self.title is not None:
            result["title"] = self.title
        if self.format is not None:
            result["format"] = self.format
        if self.claim_generator_info is not None:
            result["claim_generator_info"] = copy.deepcopy(self.claim_generator_info)
        if self.assertions:
            result["assertions"] = [a.to_dict() for a in self.assertions]
        if self.ingredients:
            result["ingredients"] = copy.deepcopy(self.ingredients)
        return result


# ============================================================================
# Resolved manifest
# ============================================================================


@dataclass(frozen=True)
class Thumbnail:
    """A generated preview image."""

    format: str
    data: bytes
    identifier: str

    def ref(self) -> ResourceRef:
        return ResourceRef(format=self.format, identifier=self.identifier)


@dataclass(frozen=True)
class ResolvedIngredient:
    """An ingredient after its file has been loaded.

    The instance identifier is fixed at creation; actions reference it by
    value.
    """

    path: Path
    title: str
    relationship: str
    instance_id: str
    explicit_label: bool
    format: str
    data: bytes
    metadata: MetadataBlock | None = None
    thumbnail: Thumbnail | None = None
    warnings: tuple[str, ...] = ()

    def to_definition(self) -> IngredientDefinition:
        """Serialize to the ingredient JSON the signer expects."""
        definition = IngredientDefinition(
            title=self.title,
            format=self.format,
            relationship=self.relationship,
            instance_id=self.instance_id,
            label=self.instance_id,
        )
        if self.metadata is not None:
            definition["metadata"] = self.metadata.to_dict()
        if self.thumbnail is not None:
            definition["thumbnail"] = self.thumbnail.ref()
        return definition


@dataclass(frozen=True)
class ResolvedManifest:
    """A closed, referentially consistent manifest ready for signing.

    Attributes:
        definition: Manifest definition without file-based ingredients
        ingredients: Resolved file-based ingredients, in declaration order
        resources: Named binary resources referenced by the definition
        thumbnail: Optional preview of the asset being signed
        warnings: Non-fatal problems found during assembly
    """

    definition: dict[str, Any]
    ingredients: tuple[ResolvedIngredient, ...] = ()
    resources: dict[str, bytes] = field(default_factory=dict)
    thumbnail: Thumbnail | None = None
    warnings: tuple[str, ...] = ()

    def to_definition(self, include_ingredients: bool = False) -> dict[str, Any]:
        """Return a private copy of the definition.

        Args:
            include_ingredients: Append the resolved ingredients to
                ``ingredients`` (for inspection; signers add them one by one)
        """
        result = copy.deepcopy(self.definition)
        if self.thumbnail is not None:
            result["thumbnail"] = self.thumbnail.ref()
        if include_ingredients and self.ingredients:
            result.setdefault("ingredients", [])
            result["ingredients"].extend(i.to_definition() for i in self.ingredients)
        return result


# ============================================================================
# Certificates, validation and batch results
# ============================================================================


@dataclass(frozen=True)
class CertificateInfo:
    """Public key facts used to pick a signing algorithm."""

    key_family: str  # 'ec', 'rsa', 'ed25519' or the key class name
    key_size: int
    curve: str | None = None


@dataclass(frozen=True)
class ValidationIssue:
    """One schema violation.

    Attributes:
        pointer: RFC 6901 JSON pointer to the offending location ('' = root)
        message: Human-readable description
    """

    pointer: str
    message: str

    @property
    def location(self) -> str:
        return self.pointer or "root"


@dataclass
class ValidationReport:
    """Result of schema-checking one document."""

    file_path: str
    errors: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class BatchUnit:
    """One input file and its outcome.

    ``succeeded`` stays None until the unit has been processed.
    """

    index: int
    input_path: Path
    output_path: Path | None = None
    succeeded: bool | None = None
    error: Exception | None = None
    warnings: list[str] = field(default_factory=list)
    report: ValidationReport | None = None


@dataclass
class BatchResult:
    """Aggregated outcome of a batch run, in input order."""

    mode: str
    units: list[BatchUnit] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchUnit]:
        return [u for u in self.units if u.succeeded]

    @property
    def failed(self) -> list[BatchUnit]:
        return [u for u in self.units if u.succeeded is False]

    @property
    def skipped(self) -> list[BatchUnit]:
        return [u for u in self.units if u.succeeded is None]

    @property
    def ok(self) -> bool:
        return all(u.succeeded for u in self.units)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
