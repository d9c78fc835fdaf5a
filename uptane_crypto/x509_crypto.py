"""X.509 certificates for device provisioning.

A device certificate goes through these states::

    generate_cert(self_sign=True)  -> SELF_SIGNED --.
    generate_cert(self_sign=False) -> PENDING_CA_SIGNATURE
                                        | sign_cert()
                                        v
                                      SIGNED --------> serialize_cert() -> SERIALIZED

Certificates always carry an RSA key generated alongside them and are
signed with SHA-256.
"""

import datetime
import logging
import secrets
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import NamedTuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519, rsa, x448, x25519
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes, PublicKeyTypes
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    load_pem_private_key,
    pkcs12,
)
from cryptography.x509.oid import NameOID

from uptane_crypto.backend import initialize
from uptane_crypto.defaults import CERT_SERIAL_BITS
from uptane_crypto.errors import CertificateError
from uptane_crypto.keygen import generate_rsa_private_key
from uptane_crypto.result import Failure, Result, Success
from uptane_crypto.utils import to_bytes

logger = logging.getLogger(__name__)


class CertificateState(StrEnum):
    """Lifecycle state of a :class:`DeviceCertificate`."""

    SELF_SIGNED = "self-signed"
    PENDING_CA_SIGNATURE = "pending-ca-signature"
    SIGNED = "signed"
    SERIALIZED = "serialized"


@dataclass
class DeviceCertificate:
    """A certificate being built, together with its embedded private key."""

    private_key: rsa.RSAPrivateKey
    builder: x509.CertificateBuilder
    certificate: x509.Certificate | None = None
    state: CertificateState = CertificateState.PENDING_CA_SIGNATURE


class Pkcs12Material(NamedTuple):
    """PEM texts extracted from a PKCS#12 bundle."""

    private_key: str
    certificate: str
    ca_chain: str


# Certificate Creation


def generate_cert(
    bits: int,
    validity_days: int,
    country: str,
    state: str,
    organization: str,
    common_name: str,
    self_sign: bool,
) -> DeviceCertificate:
    """Generate a certificate with a fresh RSA key.

    Args:
    ----
        bits: RSA key size
        validity_days: Validity period in days, starting now
        country: Subject country, omitted when empty
        state: Subject state or province, omitted when empty
        organization: Subject organization, omitted when empty
        common_name: Subject common name, mandatory
        self_sign: Sign with the embedded key instead of waiting for a CA

    Returns:
    -------
        The certificate, SELF_SIGNED or PENDING_CA_SIGNATURE

    Raises:
    ------
        CertificateError: If the common name is empty or the certificate cannot be built
        InvalidKeySizeError: If ``bits`` is not a usable RSA key size

    """
    if not common_name:
        raise CertificateError("Certificate common name must not be empty")

    subject_result = _create_subject_name(country, state, organization, common_name)
    if isinstance(subject_result, Failure):
        raise CertificateError(subject_result.error)
    subject = subject_result.unwrap()

    private_key = generate_rsa_private_key(bits)

    builder_result = _create_certificate_builder(subject, private_key.public_key(), validity_days)
    if isinstance(builder_result, Failure):
        raise CertificateError(builder_result.error)
    device_cert = DeviceCertificate(private_key=private_key, builder=builder_result.unwrap())

    if self_sign:
        device_cert.builder = device_cert.builder.issuer_name(subject)
        signed_result = _sign_certificate(device_cert.builder, private_key)
        if isinstance(signed_result, Failure):
            raise CertificateError(signed_result.error)
        device_cert.certificate = signed_result.unwrap()
        device_cert.state = CertificateState.SELF_SIGNED
        logger.info("Successfully self-signed the generated certificate. This should not be used in production!")

    return device_cert


def sign_cert(ca_cert_path: Path | str, ca_key_path: Path | str, certificate: DeviceCertificate) -> None:
    """Sign ``certificate`` with a CA certificate and key read from PEM files.

    The issuer becomes the CA's subject and the certificate moves to SIGNED.

    Raises
    ------
        CertificateError: If either file is not valid PEM, or signing fails

    """
    initialize()

    ca_cert_result = deserialize_certificate(Path(ca_cert_path).read_bytes())
    if isinstance(ca_cert_result, Failure):
        raise CertificateError(f"Reading CA certificate failed: {ca_cert_result.error}")
    ca_cert = ca_cert_result.unwrap()

    ca_key_result = deserialize_private_key(Path(ca_key_path).read_bytes())
    if isinstance(ca_key_result, Failure):
        raise CertificateError(f"Reading CA private key failed: {ca_key_result.error}")

    builder = certificate.builder.issuer_name(ca_cert.subject)
    signed_result = _sign_certificate(builder, ca_key_result.unwrap())
    if isinstance(signed_result, Failure):
        raise CertificateError(signed_result.error)

    certificate.builder = builder
    certificate.certificate = signed_result.unwrap()
    certificate.state = CertificateState.SIGNED


# Certificate Serialization


def serialize_cert(certificate: DeviceCertificate) -> tuple[str, str]:
    """Serialize the embedded private key and the certificate to PEM.

    Returns
    -------
        Tuple of (private key PEM, certificate PEM)

    Raises
    ------
        CertificateError: If the certificate has not been signed yet

    """
    if certificate.certificate is None:
        raise CertificateError("Certificate has not been signed")

    key_result = serialize_private_key(certificate.private_key)
    if isinstance(key_result, Failure):
        raise CertificateError(key_result.error)
    cert_result = serialize_certificate(certificate.certificate)
    if isinstance(cert_result, Failure):
        raise CertificateError(cert_result.error)

    certificate.state = CertificateState.SERIALIZED
    return key_result.unwrap().decode("ascii"), cert_result.unwrap().decode("ascii")


def serialize_private_key(private_key: rsa.RSAPrivateKey) -> Result[bytes, str]:
    """Serialize an RSA private key to unencrypted traditional PEM."""
    try:
        return Success(private_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption()))
    except (ValueError, TypeError) as e:
        return Failure(f"Error serializing private key: {e!s}")


def deserialize_private_key(key_data: bytes) -> Result[PrivateKeyTypes, str]:
    """Deserialize an unencrypted PEM private key."""
    try:
        return Success(load_pem_private_key(key_data, password=None))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        return Failure(f"Error deserializing private key: {e!s}")


def serialize_certificate(cert: x509.Certificate) -> Result[bytes, str]:
    """Serialize a certificate to PEM."""
    try:
        return Success(cert.public_bytes(encoding=Encoding.PEM))
    except ValueError as e:
        return Failure(f"Error serializing certificate: {e!s}")


def deserialize_certificate(cert_data: bytes) -> Result[x509.Certificate, str]:
    """Deserialize a PEM certificate."""
    try:
        return Success(x509.load_pem_x509_certificate(cert_data))
    except ValueError as e:
        return Failure(f"Error deserializing certificate: {e!s}")


# Certificate Examination


def extract_from_pkcs12(bundle: bytes, password: str) -> Result[Pkcs12Material, str]:
    """Extract private key, certificate and CA chain from a PKCS#12 bundle.

    The returned certificate PEM is the leaf certificate followed by the
    CA chain; ``ca_chain`` holds the CA certificates alone.

    Args:
    ----
        bundle: DER encoded PKCS#12 data
        password: Bundle password, may be empty

    Returns:
    -------
        Result containing the PEM material or error message

    """
    initialize()

    # An empty password may mean either "no password" or an empty one
    candidates = [password.encode("utf-8")] if password else [None, b""]
    loaded = None
    error: Exception | None = None
    for candidate in candidates:
        try:
            loaded = pkcs12.load_key_and_certificates(bundle, candidate)
            break
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            error = e
    if loaded is None:
        logger.error(f"Could not parse PKCS#12 bundle: {error!s}")
        return Failure(f"Could not parse PKCS#12 bundle: {error!s}")

    key, cert, ca_certs = loaded
    if key is None or cert is None:
        logger.error("PKCS#12 bundle does not contain a private key and a certificate")
        return Failure("PKCS#12 bundle does not contain a private key and a certificate")

    try:
        key_pem = key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode("ascii")
        ca_pem = "".join(ca.public_bytes(Encoding.PEM).decode("ascii") for ca in ca_certs)
        cert_pem = cert.public_bytes(Encoding.PEM).decode("ascii") + ca_pem
    except ValueError as e:
        logger.error(f"Could not serialize PKCS#12 contents: {e!s}")
        return Failure(f"Could not serialize PKCS#12 contents: {e!s}")

    return Success(Pkcs12Material(private_key=key_pem, certificate=cert_pem, ca_chain=ca_pem))


def extract_common_name(cert_pem: str | bytes) -> str:
    """Read the subject common name of a PEM certificate.

    Raises
    ------
        CertificateError: If the certificate cannot be parsed or has no common name

    """
    cert_result = deserialize_certificate(to_bytes(cert_pem))
    if isinstance(cert_result, Failure):
        raise CertificateError(f"Could not parse certificate: {cert_result.error}")

    attrs = cert_result.unwrap().subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        raise CertificateError("Could not get CN from certificate")
    return str(attrs[0].value)


# Private Helper Functions


def _create_subject_name(country: str, state: str, organization: str, common_name: str) -> Result[x509.Name, str]:
    """Build a subject name from the optional C/ST/O and mandatory CN."""
    try:
        attributes = []
        if country:
            attributes.append(x509.NameAttribute(NameOID.COUNTRY_NAME, country))
        if state:
            attributes.append(x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, state))
        if organization:
            attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
        attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, common_name))
        return Success(x509.Name(attributes))
    except ValueError as e:
        return Failure(f"Error creating subject name: {e!s}")


def _create_certificate_builder(
    subject: x509.Name, public_key: PublicKeyTypes, validity_days: int
) -> Result[x509.CertificateBuilder, str]:
    """Create a builder with subject, key, a random 20-bit serial and the validity window."""
    try:
        now = datetime.datetime.now(datetime.UTC)

        cert_builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .public_key(public_key)
            .serial_number(1 + secrets.randbelow((1 << CERT_SERIAL_BITS) - 1))
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=validity_days))
        )
        return Success(cert_builder)
    except (ValueError, TypeError, OverflowError) as e:
        return Failure(f"Error creating certificate builder: {e!s}")


def _sign_certificate(
    cert_builder: x509.CertificateBuilder, private_key: PrivateKeyTypes
) -> Result[x509.Certificate, str]:
    """Sign a populated builder, using SHA-256 where the key type takes a digest."""
    if isinstance(private_key, x25519.X25519PrivateKey | x448.X448PrivateKey):
        return Failure(f"Cannot sign with {type(private_key).__name__} as it is not supported for signing")

    hash_algo = None if isinstance(private_key, ed25519.Ed25519PrivateKey | ed448.Ed448PrivateKey) else hashes.SHA256()
    try:
        return Success(cert_builder.sign(private_key, hash_algo))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"Signing certificate failed: {e!s}")
        return Failure(f"Error signing certificate: {e!s}")
