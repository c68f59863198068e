"""Signing algorithm selection.

The algorithm is taken from the caller when given; otherwise it is
inferred from the public key of the signing certificate. The certificate
is only inspected, never trust-checked.
"""

from enum import Enum
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from .core.errors import (
    CertificateUnreadable,
    UnsupportedCertificateCurve,
    UnsupportedCertificateKey,
    UnsupportedSigningAlgorithm,
)
from .core.types import CertificateInfo


class SigningAlgorithm(str, Enum):
    """Signing algorithms understood by the C2PA library."""

    ES256 = "es256"
    ES384 = "es384"
    ES512 = "es512"
    PS256 = "ps256"
    PS384 = "ps384"
    PS512 = "ps512"
    ED25519 = "ed25519"


# NIST curve name -> algorithm; other curves of the same size do not qualify
EC_ALGORITHMS = {
    "secp256r1": SigningAlgorithm.ES256,
    "secp384r1": SigningAlgorithm.ES384,
    "secp521r1": SigningAlgorithm.ES512,
}

# RSA keys always get the PS256 variant, whatever the modulus size
RSA_ALGORITHM = SigningAlgorithm.PS256


def parse_signing_algorithm(token: str) -> SigningAlgorithm:
    """Parse an algorithm token case-insensitively.

    Raises:
        UnsupportedSigningAlgorithm: If the token names no known algorithm
    """
    try:
        return SigningAlgorithm(token.strip().lower())
    except ValueError:
        raise UnsupportedSigningAlgorithm(token) from None


def load_certificate(cert_path: Path) -> x509.Certificate:
    """Load the first certificate from a PEM (or DER) file.

    Raises:
        CertificateUnreadable: If the file cannot be read or parsed
    """
    try:
        data = cert_path.read_bytes()
    except OSError as e:
        raise CertificateUnreadable(cert_path, str(e)) from e

    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificates(data)[0]
        return x509.load_der_x509_certificate(data)
    except (ValueError, IndexError) as e:
        raise CertificateUnreadable(cert_path, f"not a valid X.509 certificate ({e})") from e


def inspect_certificate(certificate: x509.Certificate) -> CertificateInfo:
    """Describe a certificate's public key."""
    public_key = certificate.public_key()
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return CertificateInfo(
            key_family="ec", key_size=public_key.curve.key_size, curve=public_key.curve.name
        )
    if isinstance(public_key, rsa.RSAPublicKey):
        return CertificateInfo(key_family="rsa", key_size=public_key.key_size)
    if isinstance(public_key, ed25519.Ed25519PublicKey):
        return CertificateInfo(key_family="ed25519", key_size=256)
    return CertificateInfo(key_family=type(public_key).__name__, key_size=0)


def algorithm_for_certificate(info: CertificateInfo) -> SigningAlgorithm:
    """Infer the signing algorithm from certificate facts.

    Raises:
        UnsupportedCertificateCurve: If the EC curve is not P-256, P-384 or P-521
        UnsupportedCertificateKey: If the key family has no algorithm
    """
    if info.key_family == "ec":
        algorithm = EC_ALGORITHMS.get(info.curve or "")
        if algorithm is None:
            raise UnsupportedCertificateCurve(info.curve or "unknown", info.key_size)
        return algorithm
    if info.key_family == "rsa":
        return RSA_ALGORITHM
    if info.key_family == "ed25519":
        return SigningAlgorithm.ED25519
    raise UnsupportedCertificateKey(info.key_family)


def select_signing_algorithm(
    cert_path: Path, explicit: str | SigningAlgorithm | None = None
) -> SigningAlgorithm:
    """Choose the signing algorithm for a run.

    An explicit algorithm always wins and the certificate is not read.

    Args:
        cert_path: Signing certificate (PEM)
        explicit: Algorithm requested by the caller, if any

    Returns:
        The algorithm to sign with
    """
    if explicit is not None:
        if isinstance(explicit, SigningAlgorithm):
            return explicit
        return parse_signing_algorithm(explicit)

    info = inspect_certificate(load_certificate(cert_path))
    return algorithm_for_certificate(info)
