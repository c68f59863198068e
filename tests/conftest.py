"""Shared fixtures: an in-memory manifest backend, certificates and images."""

import datetime
import json
import threading
import uuid
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from PIL import Image

from crtool.backends.base import ManifestBackend, SigningCredentials
from crtool.core.errors import BackendError, NoEmbeddedManifest
from crtool.core.types import ResolvedManifest


# ============================================================================
# Fake backend
# ============================================================================


class FakeBackend(ManifestBackend):
    """Appends the manifest report to a copy of the asset.

    ``read_manifest_json`` returns the report in the same shape the real
    library produces: ``active_manifest`` plus ``manifests`` keyed by label.
    """

    MARKER = b"\n--crtool-fake-manifest--\n"

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.signed: list[tuple[Path, Path, ResolvedManifest, SigningCredentials]] = []
        self._lock = threading.Lock()

    def sign_file(self, manifest, credentials, source, dest, fmt):
        if source.name in self.fail_on:
            raise BackendError(source, "Signing refused")

        label = f"urn:uuid:{uuid.uuid4()}"
        entry = manifest.to_definition(include_ingredients=True)
        entry["label"] = label
        entry["format"] = fmt
        report = {"active_manifest": label, "manifests": {label: entry}}

        dest.write_bytes(source.read_bytes() + self.MARKER + json.dumps(report).encode("utf-8"))
        with self._lock:
            self.signed.append((source, dest, manifest, credentials))

    def read_manifest_json(self, path):
        data = path.read_bytes()
        if self.MARKER not in data:
            raise NoEmbeddedManifest(path)
        return data.split(self.MARKER, 1)[1].decode("utf-8")


@pytest.fixture
def backend():
    """In-memory manifest backend."""
    return FakeBackend()


# ============================================================================
# Certificates
# ============================================================================


def write_self_signed(directory: Path, private_key, name: str = "signer") -> tuple[Path, Path]:
    """Write a self-signed certificate and its key as PEM files."""
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "crtool test signer")])
    now = datetime.datetime.now(datetime.timezone.utc)
    digest = None if isinstance(private_key, ed25519.Ed25519PrivateKey) else hashes.SHA256()
    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(private_key, digest)
    )

    cert_path = directory / f"{name}.pem"
    key_path = directory / f"{name}.key"
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


def _key_usage(digital_signature: bool = False, key_cert_sign: bool = False) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=digital_signature,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=key_cert_sign,
        crl_sign=key_cert_sign,
        encipher_only=False,
        decipher_only=False,
    )


def write_signing_chain(directory: Path, leaf_key, name: str = "chain") -> tuple[Path, Path]:
    """Write a CA-issued signing certificate and its key as PEM files.

    The certificate file holds the leaf followed by the CA. The leaf carries
    the key usage, extended key usage and key identifiers the C2PA
    certificate profile requires, so the library accepts it for signing.
    """
    now = datetime.datetime.now(datetime.timezone.utc)
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "crtool"),
            x509.NameAttribute(NameOID.COMMON_NAME, "crtool test CA"),
        ]
    )
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=0), critical=True)
        .add_extension(_key_usage(key_cert_sign=True), critical=True)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()), critical=False)
        .sign(ca_key, hashes.SHA256())
    )

    leaf_name = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "crtool"),
            x509.NameAttribute(NameOID.COMMON_NAME, "crtool test signer"),
        ]
    )
    leaf_cert = (
        x509.CertificateBuilder()
        .subject_name(leaf_name)
        .issuer_name(ca_name)
        .public_key(leaf_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(_key_usage(digital_signature=True), critical=True)
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.EMAIL_PROTECTION]), critical=False)
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(leaf_key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()), critical=False
        )
        .sign(ca_key, hashes.SHA256())
    )

    cert_path = directory / f"{name}.pem"
    key_path = directory / f"{name}.key"
    cert_path.write_bytes(
        leaf_cert.public_bytes(serialization.Encoding.PEM) + ca_cert.public_bytes(serialization.Encoding.PEM)
    )
    key_path.write_bytes(
        leaf_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return cert_path, key_path


@pytest.fixture
def signing_chain(tmp_path):
    """CA-issued P-256 signing certificate chain and key paths."""
    return write_signing_chain(tmp_path, ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def ec_p256_cert(tmp_path):
    """P-256 certificate and key paths."""
    return write_self_signed(tmp_path, ec.generate_private_key(ec.SECP256R1()), "p256")


@pytest.fixture
def ec_p384_cert(tmp_path):
    """P-384 certificate and key paths."""
    return write_self_signed(tmp_path, ec.generate_private_key(ec.SECP384R1()), "p384")


@pytest.fixture
def ec_p521_cert(tmp_path):
    """P-521 certificate and key paths."""
    return write_self_signed(tmp_path, ec.generate_private_key(ec.SECP521R1()), "p521")


@pytest.fixture
def rsa_cert(tmp_path):
    """RSA-2048 certificate and key paths."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return write_self_signed(tmp_path, key, "rsa")


@pytest.fixture
def ed25519_cert(tmp_path):
    """Ed25519 certificate and key paths."""
    return write_self_signed(tmp_path, ed25519.Ed25519PrivateKey.generate(), "ed25519")


# ============================================================================
# Images and manifest descriptions
# ============================================================================


def make_image(path: Path, size: tuple[int, int] = (64, 48), color: str = "red") -> Path:
    """Write a small solid-color image; the format follows the extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


def write_json(path: Path, document) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


@pytest.fixture
def manifest_document():
    """Manifest description with one file-based ingredient referenced by an action."""
    return {
        "title": "Edited photo",
        "claim_generator_info": [{"name": "crtool-tests", "version": "1.0"}],
        "assertions": [
            {
                "label": "c2pa.actions",
                "data": {
                    "actions": [
                        {"action": "c2pa.opened", "parameters": {"ingredientIds": ["original"]}}
                    ]
                },
            },
            {"label": "com.example.review", "data": {"reviewer": "qa"}},
        ],
        "ingredients_from_files": [
            {
                "file_path": "ingredients/original.jpg",
                "relationship": "parentOf",
                "label": "original",
                "metadata": {"dateTime": "2024-01-01T00:00:00Z", "com.example.source": "camera"},
            }
        ],
    }


@pytest.fixture
def workspace(tmp_path, manifest_document):
    """Directory with a manifest description, its ingredient and two input images."""
    make_image(tmp_path / "ingredients" / "original.jpg", color="blue")
    make_image(tmp_path / "inputs" / "a.jpg", color="green")
    make_image(tmp_path / "inputs" / "b.jpg", color="yellow")
    write_json(tmp_path / "manifest.json", manifest_document)
    (tmp_path / "out").mkdir()
    return tmp_path
