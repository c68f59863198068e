"""Ingredient resolution.

This module turns ``ingredients_from_files`` declarations into loaded
ingredients: it resolves each file against a base directory, reads it,
and assigns title, relationship, instance identifier and metadata.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Callable

from .core.errors import IngredientNotFound, UnsupportedIngredientFormat
from .core.formats import mime_type_for
from .core.labels import default_label
from .core.metadata import current_timestamp, merge_metadata
from .core.types import COMPONENT_OF, IngredientSpec, ResolvedIngredient
from .thumbnails import THUMBNAIL_ERRORS, make_thumbnail

logger = logging.getLogger(__name__)


def resolve_ingredient_path(file_path: str, base_dir: Path) -> Path:
    """Resolve a declared ingredient path.

    Relative paths are joined to ``base_dir``; absolute paths pass through.

    Args:
        file_path: Path as written in the manifest description
        base_dir: Directory relative paths are resolved against

    Returns:
        Absolute path to the ingredient file
    """
    path = Path(file_path)
    if not path.is_absolute():
        path = base_dir / path
    return path.absolute()


class IngredientResolver:
    """Loads declared ingredients from the filesystem.

    Ingredient files are only read, never modified.

    Example:
        >>> resolver = IngredientResolver(Path('/manifests'), generate_thumbnails=True)
        >>> ingredients = resolver.resolve(spec.ingredients_from_files)
    """

    def __init__(
        self,
        base_dir: Path,
        generate_thumbnails: bool = False,
        clock: Callable[[], str] = current_timestamp,
    ):
        """Initialize the resolver.

        Args:
            base_dir: Directory relative ingredient paths are resolved against
            generate_thumbnails: Attach a preview image to each ingredient
            clock: Timestamp source for auto-generated metadata ``dateTime``
        """
        self.base_dir = base_dir
        self.generate_thumbnails = generate_thumbnails
        self.clock = clock

    def resolve(self, specs: Sequence[IngredientSpec]) -> list[ResolvedIngredient]:
        """Resolve every declaration, preserving declaration order.

        Raises:
            IngredientNotFound: If a declared file does not exist
            UnsupportedIngredientFormat: If a file has no known media type
            MetadataFieldCollision: If merged metadata would shadow a recognized field
        """
        return [self.load(spec, index) for index, spec in enumerate(specs)]

    def load(self, spec: IngredientSpec, index: int = 0) -> ResolvedIngredient:
        """Load one ingredient.

        Args:
            spec: The ingredient declaration
            index: Position in the declaration list (names the thumbnail resource)

        Returns:
            ResolvedIngredient owning the file's bytes
        """
        path = resolve_ingredient_path(spec.file_path, self.base_dir)
        if not path.is_file():
            raise IngredientNotFound(path)

        fmt = mime_type_for(path)
        if fmt is None:
            raise UnsupportedIngredientFormat(path)

        logger.info("Loading ingredient: %s", path)
        data = path.read_bytes()

        metadata = None
        if spec.metadata is not None:
            metadata = merge_metadata(
                spec.metadata,
                key_path=f"{spec.key_path}.metadata" if spec.key_path else "metadata",
                clock=self.clock,
            )

        thumbnail = None
        warnings: list[str] = []
        if self.generate_thumbnails:
            try:
                thumbnail = make_thumbnail(path, identifier=f"ingredient-{index}.thumbnail.jpg")
            except THUMBNAIL_ERRORS as e:
                message = f"Failed to generate thumbnail for ingredient {path}: {e}"
                logger.warning(message)
                warnings.append(message)

        return ResolvedIngredient(
            path=path,
            title=spec.title or path.name,
            relationship=spec.relationship or COMPONENT_OF,
            instance_id=spec.label or default_label(path),
            explicit_label=spec.label is not None,
            format=fmt,
            data=data,
            metadata=metadata,
            thumbnail=thumbnail,
            warnings=tuple(warnings),
        )
