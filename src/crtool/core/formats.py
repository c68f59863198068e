"""Media type lookup for assets and ingredients."""

from pathlib import Path

# Extension (lowercase, no dot) -> MIME type understood by the C2PA library
EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "psd": "image/vnd.adobe.photoshop",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "dng": "image/x-adobe-dng",
    "heic": "image/heic",
    "heif": "image/heif",
    "avif": "image/avif",
    "avi": "video/avi",
    "c2pa": "application/c2pa",
    "mp2": "video/mpeg",
    "mpa": "video/mpeg",
    "mpe": "video/mpeg",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
    "mpv2": "video/mpeg",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "qt": "video/quicktime",
    "m4a": "audio/mp4",
    "mid": "audio/mid",
    "rmi": "audio/mid",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "aif": "audio/aiff",
    "aifc": "audio/aiff",
    "aiff": "audio/aiff",
    "ogg": "audio/ogg",
    "pdf": "application/pdf",
    "ai": "application/postscript",
}

# Extensions a manifest can be embedded into or read back from
SUPPORTED_ASSET_EXTENSIONS = [
    "avi",
    "avif",
    "c2pa",
    "dng",
    "gif",
    "heic",
    "heif",
    "jpg",
    "jpeg",
    "m4a",
    "mov",
    "mp3",
    "mp4",
    "pdf",
    "png",
    "svg",
    "tif",
    "tiff",
    "wav",
    "webp",
]


def file_extension(path: Path) -> str:
    """Return the lowercase extension of a path without the leading dot."""
    return path.suffix.lstrip(".").lower()


def mime_type_for(path: Path) -> str | None:
    """Look up the MIME type for a path by extension.

    Args:
        path: File path to inspect

    Returns:
        MIME type string, or None if the extension is unknown
    """
    return EXTENSION_MIME_TYPES.get(file_extension(path))


def is_supported_asset_path(path: Path) -> bool:
    """Check whether a manifest can be embedded into (or read from) a path."""
    return file_extension(path) in SUPPORTED_ASSET_EXTENSIONS
