"""Preview image generation for assets and ingredients."""

import io
from pathlib import Path

from PIL import Image

from .core.types import Thumbnail

THUMBNAIL_SIZE = 256
THUMBNAIL_FORMAT = "image/jpeg"


def make_thumbnail(path: Path, identifier: str | None = None) -> Thumbnail:
    """Render a JPEG preview that fits in a THUMBNAIL_SIZE square.

    Aspect ratio is preserved; images already smaller are not enlarged.

    Args:
        path: Image file to preview
        identifier: Resource name for the thumbnail (defaults to
            ``<file name>.thumbnail.jpg``)

    Returns:
        Thumbnail with JPEG bytes

    Raises:
        OSError: If the file cannot be opened or decoded as an image
    """
    with Image.open(path) as img:
        img.thumbnail((THUMBNAIL_SIZE, THUMBNAIL_SIZE))
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="JPEG")

    return Thumbnail(
        format=THUMBNAIL_FORMAT,
        data=buf.getvalue(),
        identifier=identifier or f"{path.name}.thumbnail.jpg",
    )


# Failures that degrade to "no thumbnail" rather than aborting
THUMBNAIL_ERRORS = (OSError, ValueError, Image.DecompressionBombError)
