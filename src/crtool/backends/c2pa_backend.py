"""Manifest backend built on the c2pa-python library.

Signing uses the library's own signer by default. With
``allow_self_signed`` the raw signature is computed locally with
``cryptography`` and handed to the library through a callback signer.
Either way the library still checks the certificate chain against the
C2PA certificate profile, so a bare self-signed certificate is refused.
"""

import io
import json
import logging
from collections.abc import Callable
from pathlib import Path

import c2pa
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from ..algorithms import SigningAlgorithm
from ..core.errors import BackendError, NoEmbeddedManifest
from ..core.types import ResolvedManifest
from .base import ManifestBackend, SigningCredentials

logger = logging.getLogger(__name__)

_HASHES: dict[SigningAlgorithm, Callable[[], hashes.HashAlgorithm]] = {
    SigningAlgorithm.ES256: hashes.SHA256,
    SigningAlgorithm.ES384: hashes.SHA384,
    SigningAlgorithm.ES512: hashes.SHA512,
    SigningAlgorithm.PS256: hashes.SHA256,
    SigningAlgorithm.PS384: hashes.SHA384,
    SigningAlgorithm.PS512: hashes.SHA512,
}


def c2pa_signing_alg(algorithm: SigningAlgorithm) -> "c2pa.C2paSigningAlg":
    """Map a SigningAlgorithm to the library's enum member."""
    return getattr(c2pa.C2paSigningAlg, algorithm.name)


def make_raw_signer(key_pem: bytes, algorithm: SigningAlgorithm) -> Callable[[bytes], bytes]:
    """Build a function producing raw C2PA signatures with a PEM private key.

    ECDSA signatures are returned in fixed-width ``r || s`` form, RSA
    signatures use PSS with a salt as long as the digest.

    Raises:
        ValueError: If the key does not match the algorithm
    """
    private_key = serialization.load_pem_private_key(key_pem, password=None)

    if algorithm is SigningAlgorithm.ED25519:
        if not isinstance(private_key, ed25519.Ed25519PrivateKey):
            raise ValueError("ed25519 signing requires an Ed25519 private key")
        return private_key.sign

    hash_cls = _HASHES[algorithm]

    if algorithm.name.startswith("ES"):
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise ValueError(f"{algorithm.value} signing requires an EC private key")
        width = (private_key.curve.key_size + 7) // 8

        def sign_ecdsa(data: bytes) -> bytes:
            r, s = decode_dss_signature(private_key.sign(data, ec.ECDSA(hash_cls())))
            return r.to_bytes(width, "big") + s.to_bytes(width, "big")

        return sign_ecdsa

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError(f"{algorithm.value} signing requires an RSA private key")

    def sign_pss(data: bytes) -> bytes:
        digest = hash_cls()
        return private_key.sign(
            data,
            padding.PSS(mgf=padding.MGF1(digest), salt_length=digest.digest_size),
            digest,
        )

    return sign_pss


class C2paBackend(ManifestBackend):
    """Signs, embeds and reads manifests with c2pa-python."""

    def create_signer(self, credentials: SigningCredentials) -> "c2pa.Signer":
        """Create a library signer from certificate and key files.

        Raises:
            OSError: If the certificate or key cannot be read
        """
        cert_pem = credentials.cert_path.read_bytes()
        key_pem = credentials.key_path.read_bytes()

        if credentials.allow_self_signed:
            return c2pa.Signer.from_callback(
                make_raw_signer(key_pem, credentials.algorithm),
                c2pa_signing_alg(credentials.algorithm),
                cert_pem.decode("utf-8"),
                credentials.tsa_url,
            )

        info = c2pa.C2paSignerInfo(
            credentials.algorithm.value.encode("utf-8"),
            cert_pem,
            key_pem,
            credentials.tsa_url.encode("utf-8") if credentials.tsa_url else None,
        )
        return c2pa.Signer.from_info(info)

    def sign_file(
        self,
        manifest: ResolvedManifest,
        credentials: SigningCredentials,
        source: Path,
        dest: Path,
        fmt: str,
    ) -> None:
        definition = manifest.to_definition()
        try:
            signer = self.create_signer(credentials)
        except (OSError, ValueError) as e:
            raise BackendError(source, f"Failed to create signer ({e})") from e
        except c2pa.C2paError as e:
            raise BackendError(source, f"Failed to create signer ({e})") from e

        try:
            with c2pa.Builder(json.dumps(definition)) as builder:
                for identifier, data in manifest.resources.items():
                    builder.add_resource(identifier, io.BytesIO(data))
                if manifest.thumbnail is not None:
                    builder.add_resource(
                        manifest.thumbnail.identifier, io.BytesIO(manifest.thumbnail.data)
                    )

                for ingredient in manifest.ingredients:
                    if ingredient.thumbnail is not None:
                        builder.add_resource(
                            ingredient.thumbnail.identifier,
                            io.BytesIO(ingredient.thumbnail.data),
                        )
                    builder.add_ingredient(
                        json.dumps(ingredient.to_definition()),
                        ingredient.format,
                        io.BytesIO(ingredient.data),
                    )

                with source.open("rb") as src, dest.open("w+b") as dst:
                    builder.sign(signer, fmt, src, dst)
        except c2pa.C2paError as e:
            if dest.exists():
                dest.unlink()
            raise BackendError(source, f"Failed to sign and embed manifest ({e})") from e
        finally:
            signer.close()

        logger.debug("Embedded manifest into %s", dest)

    def read_manifest_json(self, path: Path) -> str:
        try:
            with c2pa.Reader(str(path)) as reader:
                return reader.json()
        except c2pa.C2paError as e:
            not_found = getattr(c2pa.C2paError, "ManifestNotFound", ())
            if isinstance(e, not_found) or "ManifestNotFound" in f"{type(e).__name__} {e}":
                raise NoEmbeddedManifest(path) from e
            raise BackendError(path, f"Failed to read C2PA data ({e})") from e
