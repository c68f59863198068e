"""Manifest extraction.

Both output shapes read the same embedded manifest store; they differ only
in how it is serialized:

- native: the backend's report as is, manifests keyed by label
- jpt: JPEG Trust style, with a ``@context`` vocabulary marker, an asset
  hash, and manifests as a list with the active manifest first
"""

import base64
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .backends.base import ManifestBackend
from .core.errors import BackendError, InputNotFound, NoEmbeddedManifest

logger = logging.getLogger(__name__)

JPT_CONTEXT = {
    "@vocab": "https://jpeg.org/jpegtrust",
    "extras": "https://jpeg.org/jpegtrust/extras",
}

_HASH_CHUNK_SIZE = 1024 * 1024


def compute_asset_hash(path: Path) -> str:
    """Return the base64 SHA-256 digest of a file's bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


class ExtractionShape(ABC):
    """Serialization shape for extracted manifests."""

    name: str
    output_suffix: str
    needs_asset_hash: bool = False

    @abstractmethod
    def transform(self, report: dict[str, Any], asset_hash: str | None = None) -> dict[str, Any]:
        """Convert a backend report into this shape.

        Args:
            report: Decoded manifest store report (``active_manifest``, ``manifests``)
            asset_hash: Base64 SHA-256 of the asset, when computed

        Returns:
            The document to write
        """


class NativeShape(ExtractionShape):
    """The backend's own report, manifests keyed by label."""

    name = "native"
    output_suffix = "_manifest.json"

    def transform(self, report: dict[str, Any], asset_hash: str | None = None) -> dict[str, Any]:
        return report


class JpegTrustShape(ExtractionShape):
    """JPEG Trust document: context marker, asset info, ordered manifest list."""

    name = "jpt"
    output_suffix = "_manifest_jpt.json"
    needs_asset_hash = True

    def transform(self, report: dict[str, Any], asset_hash: str | None = None) -> dict[str, Any]:
        manifests = report.get("manifests") or {}
        active = report.get("active_manifest")
        order = [active] if active in manifests else []
        order.extend(label for label in manifests if label != active)

        document: dict[str, Any] = {"@context": dict(JPT_CONTEXT)}
        if asset_hash is not None:
            document["asset_info"] = {"alg": "sha256", "hash": asset_hash}
        document["manifests"] = [self._manifest_entry(label, manifests[label]) for label in order]

        for key in ("validation_status", "validation_results", "validation_state"):
            if key in report:
                document[f"extras:{key}"] = report[key]
        return document

    @staticmethod
    def _manifest_entry(label: str, manifest: dict[str, Any]) -> dict[str, Any]:
        entry = {"label": label}
        entry.update((k, v) for k, v in manifest.items() if k != "label")
        assertions = manifest.get("assertions")
        if isinstance(assertions, list):
            entry["assertions"] = keyed_assertions(assertions)
        return entry


def keyed_assertions(assertions: list[Any]) -> dict[str, Any]:
    """Re-key an assertion list by label; repeats get ``__1``, ``__2`` ... suffixes."""
    keyed: dict[str, Any] = {}
    seen: dict[str, int] = {}
    for assertion in assertions:
        if not isinstance(assertion, dict):
            continue
        label = str(assertion.get("label", "unlabeled"))
        count = seen.get(label, 0)
        seen[label] = count + 1
        key = label if count == 0 else f"{label}__{count}"
        keyed[key] = assertion.get("data")
    return keyed


SHAPES: dict[str, ExtractionShape] = {
    NativeShape.name: NativeShape(),
    JpegTrustShape.name: JpegTrustShape(),
}


@dataclass
class ManifestExtractionResult:
    """Result of extracting a manifest from a file.

    Attributes:
        input_path: The input file path that was processed
        active_label: The active manifest label
        asset_hash: Base64 SHA-256 of the asset (JPEG Trust shape only)
        manifest_json: The extracted document as pretty-printed JSON
        manifest_value: The extracted document
    """

    input_path: str
    active_label: str
    asset_hash: str | None
    manifest_json: str
    manifest_value: dict[str, Any]


def extract_manifest(
    input_path: Path, backend: ManifestBackend, shape: ExtractionShape | str = "native"
) -> ManifestExtractionResult:
    """Extract the manifest store of an asset in the requested shape.

    Args:
        input_path: Asset carrying a manifest
        backend: Backend used to read the manifest store
        shape: ExtractionShape instance or its name ('native' or 'jpt')

    Returns:
        ManifestExtractionResult

    Raises:
        InputNotFound: If the file does not exist
        NoEmbeddedManifest: If the file carries no manifest
        BackendError: If the backend's report cannot be decoded
    """
    if isinstance(shape, str):
        shape = SHAPES[shape]

    if not input_path.exists():
        raise InputNotFound(input_path)

    raw = backend.read_manifest_json(input_path)
    try:
        report = json.loads(raw)
    except json.JSONDecodeError as e:
        raise BackendError(input_path, f"Failed to parse extracted manifest JSON ({e})") from e

    active_label = report.get("active_manifest") if isinstance(report, dict) else None
    if not active_label:
        raise NoEmbeddedManifest(input_path)

    asset_hash = None
    if shape.needs_asset_hash:
        try:
            asset_hash = compute_asset_hash(input_path)
        except OSError as e:
            logger.warning("Failed to compute asset hash for %s: %s", input_path, e)

    document = shape.transform(report, asset_hash)
    return ManifestExtractionResult(
        input_path=str(input_path),
        active_label=active_label,
        asset_hash=asset_hash,
        manifest_json=json.dumps(document, indent=2),
        manifest_value=document,
    )


def extraction_output_path(input_path: Path, output: Path, shape: ExtractionShape) -> Path:
    """Map an input to its extraction output.

    A directory output gets ``<stem><suffix>`` inside it; anything else is
    used as the output file itself.
    """
    if output.is_dir():
        return output / f"{input_path.stem}{shape.output_suffix}"
    return output


def write_extraction(result: ManifestExtractionResult, output_path: Path) -> None:
    """Write an extracted manifest, creating parent directories as needed."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.manifest_json + "\n", encoding="utf-8")
