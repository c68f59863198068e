"""Manifest assembly pipeline.

This module turns a parsed manifest description into a resolved manifest:
ingredient files are loaded, action references are checked against
ingredient labels, metadata is merged, and resources referenced by the
description are collected. The result is handed read-only to a backend.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Any, Callable

from .core.labels import build_label_index, resolve_references
from .core.metadata import current_timestamp
from .core.types import ManifestSpec, ResolvedManifest
from .ingredients import IngredientResolver
from .thumbnails import THUMBNAIL_ERRORS, make_thumbnail

logger = logging.getLogger(__name__)

ASSET_THUMBNAIL_IDENTIFIER = "thumbnail.jpg"


def default_ingredients_dir(manifest_path: Path | None, override: Path | None = None) -> Path:
    """Pick the directory ingredient paths are resolved against.

    Args:
        manifest_path: Manifest description file, if any
        override: Explicit directory from the caller

    Returns:
        ``override`` if given, else the manifest's directory, else the
        current directory
    """
    if override is not None:
        return override
    if manifest_path is not None:
        return manifest_path.parent
    return Path(".")


def collect_resource_identifiers(definition: dict[str, Any]) -> list[str]:
    """List the resource identifiers a manifest definition refers to.

    Covers claim generator icons, the manifest thumbnail, inline
    ingredient thumbnails and data, and action template icons.
    """
    found: list[str] = []

    def add(ref: Any) -> None:
        if isinstance(ref, dict):
            identifier = ref.get("identifier")
            if isinstance(identifier, str) and identifier not in found:
                found.append(identifier)

    generator_info = definition.get("claim_generator_info")
    entries = generator_info if isinstance(generator_info, list) else [generator_info]
    for entry in entries:
        if isinstance(entry, dict):
            add(entry.get("icon"))

    add(definition.get("thumbnail"))

    for ingredient in definition.get("ingredients") or []:
        if isinstance(ingredient, dict):
            add(ingredient.get("thumbnail"))
            add(ingredient.get("data"))

    for assertion in definition.get("assertions") or []:
        data = assertion.get("data") if isinstance(assertion, dict) else None
        templates = data.get("templates") if isinstance(data, dict) else None
        for template in templates or []:
            if isinstance(template, dict):
                add(template.get("icon"))

    return found


def load_resources(identifiers: list[str], base_dir: Path) -> dict[str, bytes]:
    """Read the resources that exist as files under ``base_dir``.

    Identifiers with no matching file are skipped; the backend may still
    know them.
    """
    resources = {}
    for identifier in identifiers:
        path = base_dir / identifier
        if path.is_file():
            resources[identifier] = path.read_bytes()
        else:
            logger.debug("Resource %s not found under %s", identifier, base_dir)
    return resources


class ManifestAssembler:
    """Builds resolved manifests from one manifest description.

    The description is parsed once per run; ``assemble`` is called once
    per input asset and is safe to call from several threads.

    Example:
        >>> spec = load_manifest_spec(Path('manifest.json'))
        >>> assembler = ManifestAssembler(spec, Path('.'), thumbnail_ingredients=True)
        >>> manifest = assembler.assemble(Path('photo.jpg'))
    """

    def __init__(
        self,
        spec: ManifestSpec,
        base_dir: Path,
        thumbnail_asset: bool = False,
        thumbnail_ingredients: bool = False,
        clock: Callable[[], str] = current_timestamp,
    ):
        """Initialize the assembler.

        Args:
            spec: Parsed manifest description
            base_dir: Directory ingredient and resource paths are resolved against
            thumbnail_asset: Attach a preview of the signed asset
            thumbnail_ingredients: Attach previews of ingredients
            clock: Timestamp source for auto-generated metadata ``dateTime``
        """
        self.spec = spec
        self.base_dir = base_dir
        self.thumbnail_asset = thumbnail_asset
        self.assertion_warnings = self._duplicate_assertion_warnings()
        self.resolver = IngredientResolver(
            base_dir, generate_thumbnails=thumbnail_ingredients, clock=clock
        )

    def assemble(self, asset_path: Path | None = None) -> ResolvedManifest:
        """Resolve the description into a manifest.

        Args:
            asset_path: Asset the manifest will be embedded into (used for
                its thumbnail)

        Returns:
            ResolvedManifest

        Raises:
            IngredientNotFound: If a declared ingredient file is missing
            UnsupportedIngredientFormat: If an ingredient has no known media type
            UnresolvedIngredientReference: If an action references an unknown label
            MetadataFieldCollision: If ingredient metadata would shadow a recognized field
        """
        ingredients = self.resolver.resolve(self.spec.ingredients_from_files)

        warnings = [w for ingredient in ingredients for w in ingredient.warnings]

        index = build_label_index(ingredients, self.spec.ingredients)
        warnings.extend(resolve_references(self.spec.assertions, index))
        warnings.extend(self.assertion_warnings)

        definition = self.spec.definition()
        resources = load_resources(collect_resource_identifiers(definition), self.base_dir)

        thumbnail = None
        if self.thumbnail_asset and asset_path is not None:
            try:
                thumbnail = make_thumbnail(asset_path, identifier=ASSET_THUMBNAIL_IDENTIFIER)
            except THUMBNAIL_ERRORS as e:
                message = f"Failed to generate thumbnail for {asset_path}: {e}"
                logger.warning(message)
                warnings.append(message)

        return ResolvedManifest(
            definition=definition,
            ingredients=tuple(ingredients),
            resources=resources,
            thumbnail=thumbnail,
            warnings=tuple(warnings),
        )

    def _duplicate_assertion_warnings(self) -> list[str]:
        counts = Counter(a.label for a in self.spec.assertions)
        warnings = []
        for label, count in counts.items():
            if count > 1:
                message = f"Assertion label '{label}' appears {count} times"
                logger.warning(message)
                warnings.append(message)
        return warnings
