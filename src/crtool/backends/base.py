"""Base abstractions for manifest backends.

A backend is the library that actually signs a manifest and embeds it into
a media container, and reads embedded manifests back out. The assembly
pipeline only talks to this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..algorithms import SigningAlgorithm
from ..core.types import ResolvedManifest


@dataclass(frozen=True)
class SigningCredentials:
    """Certificate and key material for signing.

    Attributes:
        cert_path: PEM certificate chain, signing certificate first
        key_path: PEM private key
        algorithm: Signing algorithm matching the key
        allow_self_signed: Compute the signature locally through a callback signer
        tsa_url: Optional time-stamp authority URL
    """

    cert_path: Path
    key_path: Path
    algorithm: SigningAlgorithm
    allow_self_signed: bool = False
    tsa_url: str | None = None


class ManifestBackend(ABC):
    """Abstract base class for signing/embedding libraries.

    Implementations must be safe to call from several threads at once
    for different files.
    """

    @abstractmethod
    def sign_file(
        self,
        manifest: ResolvedManifest,
        credentials: SigningCredentials,
        source: Path,
        dest: Path,
        fmt: str,
    ) -> None:
        """Sign ``manifest`` and embed it into a copy of ``source`` at ``dest``.

        Args:
            manifest: Resolved manifest (read-only)
            credentials: Signing material
            source: Asset to sign
            dest: Output path; must not exist yet
            fmt: MIME type of the asset

        Raises:
            BackendError: If signing or embedding fails
        """

    @abstractmethod
    def read_manifest_json(self, path: Path) -> str:
        """Return the manifest store report of an asset as JSON text.

        The report has ``active_manifest`` and ``manifests`` keyed by label.

        Raises:
            NoEmbeddedManifest: If the asset carries no manifest
            BackendError: If reading fails for another reason
        """
