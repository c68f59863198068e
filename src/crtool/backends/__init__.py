"""Signing/embedding backends.

The c2pa-python backend is imported on first use so that assembling and
validating manifests does not load the native library.
"""

from .base import ManifestBackend, SigningCredentials


def default_backend() -> ManifestBackend:
    """Create the c2pa-python backend."""
    from .c2pa_backend import C2paBackend

    return C2paBackend()


__all__ = [
    "ManifestBackend",
    "SigningCredentials",
    "default_backend",
]
