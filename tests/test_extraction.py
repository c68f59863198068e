"""Tests for manifest extraction."""

import base64
import hashlib
import json
from unittest.mock import Mock

import pytest

from crtool.algorithms import SigningAlgorithm
from crtool.backends.base import SigningCredentials
from crtool.core.config import load_manifest_spec
from crtool.core.errors import BackendError, InputNotFound, NoEmbeddedManifest
from crtool.extraction import (
    JPT_CONTEXT,
    SHAPES,
    compute_asset_hash,
    extract_manifest,
    extraction_output_path,
    keyed_assertions,
    write_extraction,
)
from crtool.pipeline import ManifestAssembler


@pytest.fixture
def signed_asset(workspace, backend):
    """A workspace input signed with the fake backend."""
    assembler = ManifestAssembler(load_manifest_spec(workspace / "manifest.json"), workspace)
    source = workspace / "inputs" / "a.jpg"
    dest = workspace / "out" / "a.jpg"
    credentials = SigningCredentials(
        cert_path=workspace / "c.pem", key_path=workspace / "k.pem", algorithm=SigningAlgorithm.ES256
    )
    backend.sign_file(assembler.assemble(source), credentials, source, dest, "image/jpeg")
    return dest


def report_backend(report) -> Mock:
    backend = Mock()
    backend.read_manifest_json.return_value = json.dumps(report)
    return backend


class TestNativeShape:
    """Test extraction in the library's own shape."""

    def test_round_trip_keeps_assertion_labels(self, signed_asset, backend, manifest_document) -> None:
        """Test that every authored assertion label comes back unchanged."""
        result = extract_manifest(signed_asset, backend)

        manifest = result.manifest_value["manifests"][result.active_label]
        labels = [a["label"] for a in manifest["assertions"]]
        assert labels == [a["label"] for a in manifest_document["assertions"]]
        assert result.asset_hash is None

    def test_round_trip_keeps_ingredient_metadata(self, signed_asset, backend) -> None:
        """Test that ingredient metadata survives embedding."""
        result = extract_manifest(signed_asset, backend)

        [ingredient] = result.manifest_value["manifests"][result.active_label]["ingredients"]
        assert ingredient["label"] == "original"
        assert ingredient["metadata"]["com.example.source"] == "camera"

    def test_json_text_matches_value(self, signed_asset, backend) -> None:
        """Test that the JSON text and parsed document agree."""
        result = extract_manifest(signed_asset, backend)
        assert json.loads(result.manifest_json) == result.manifest_value


class TestJpegTrustShape:
    """Test extraction in JPEG Trust shape."""

    def test_document_structure(self, signed_asset, backend) -> None:
        """Test context, asset hash and manifest list."""
        result = extract_manifest(signed_asset, backend, "jpt")
        document = result.manifest_value

        assert document["@context"] == JPT_CONTEXT
        assert document["asset_info"] == {"alg": "sha256", "hash": result.asset_hash}
        assert document["manifests"][0]["label"] == result.active_label
        assert set(document["manifests"][0]["assertions"]) == {"c2pa.actions", "com.example.review"}

    def test_active_manifest_first(self, tmp_path) -> None:
        """Test that the active manifest leads the list, others keep their order."""
        asset = tmp_path / "a.jpg"
        asset.write_bytes(b"data")
        backend = report_backend(
            {
                "active_manifest": "urn:b",
                "manifests": {"urn:a": {"assertions": []}, "urn:b": {}, "urn:c": {}},
                "validation_status": [{"code": "signingCredential.untrusted"}],
            }
        )

        document = extract_manifest(asset, backend, SHAPES["jpt"]).manifest_value

        assert [m["label"] for m in document["manifests"]] == ["urn:b", "urn:a", "urn:c"]
        assert document["extras:validation_status"] == [{"code": "signingCredential.untrusted"}]

    def test_asset_hash_is_sha256_of_file(self, tmp_path) -> None:
        """Test that the asset hash covers the whole file."""
        asset = tmp_path / "a.jpg"
        asset.write_bytes(b"some bytes" * 1000)
        expected = base64.b64encode(hashlib.sha256(b"some bytes" * 1000).digest()).decode()

        assert compute_asset_hash(asset) == expected

    def test_repeated_assertion_labels_suffixed(self) -> None:
        """Test that repeated assertion labels get numbered suffixes."""
        keyed = keyed_assertions(
            [
                {"label": "c2pa.hash.data", "data": 1},
                {"label": "c2pa.actions", "data": 2},
                {"label": "c2pa.hash.data", "data": 3},
                {"label": "c2pa.hash.data", "data": 4},
            ]
        )
        assert keyed == {
            "c2pa.hash.data": 1,
            "c2pa.actions": 2,
            "c2pa.hash.data__1": 3,
            "c2pa.hash.data__2": 4,
        }


class TestExtractionErrors:
    """Test extraction failures."""

    def test_missing_input(self, tmp_path, backend) -> None:
        """Test that a missing input is reported."""
        with pytest.raises(InputNotFound):
            extract_manifest(tmp_path / "missing.jpg", backend)

    def test_unsigned_input(self, workspace, backend) -> None:
        """Test that an asset without a manifest is reported."""
        with pytest.raises(NoEmbeddedManifest, match="a.jpg"):
            extract_manifest(workspace / "inputs" / "a.jpg", backend)

    def test_report_without_active_manifest(self, tmp_path) -> None:
        """Test that a report with no active manifest counts as no manifest."""
        asset = tmp_path / "a.jpg"
        asset.write_bytes(b"data")
        with pytest.raises(NoEmbeddedManifest):
            extract_manifest(asset, report_backend({"manifests": {}}))

    def test_undecodable_report(self, tmp_path) -> None:
        """Test that a report that is not JSON is a backend error."""
        asset = tmp_path / "a.jpg"
        asset.write_bytes(b"data")
        backend = Mock()
        backend.read_manifest_json.return_value = "{broken"

        with pytest.raises(BackendError, match="a.jpg"):
            extract_manifest(asset, backend)


class TestWriteExtraction:
    """Test writing extracted documents."""

    def test_output_paths(self, tmp_path) -> None:
        """Test directory and file output naming per shape."""
        asset = tmp_path / "photo.jpg"
        assert extraction_output_path(asset, tmp_path, SHAPES["native"]) == tmp_path / "photo_manifest.json"
        assert extraction_output_path(asset, tmp_path, SHAPES["jpt"]) == tmp_path / "photo_manifest_jpt.json"
        assert extraction_output_path(asset, tmp_path / "x.json", SHAPES["jpt"]) == tmp_path / "x.json"

    def test_writes_pretty_json(self, signed_asset, backend, tmp_path) -> None:
        """Test that the document is written indented, creating parents."""
        result = extract_manifest(signed_asset, backend)
        target = tmp_path / "nested" / "out.json"

        write_extraction(result, target)

        text = target.read_text(encoding="utf-8")
        assert text.startswith("{\n  ")
        assert json.loads(text) == result.manifest_value
