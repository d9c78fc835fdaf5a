"""Signature creation and verification for Uptane metadata.

Two schemes are supported:

* RSASSA-PSS over a SHA-256 digest with MGF1-SHA256. Signatures are made
  with the maximum salt length the key allows; verification recovers the
  salt length from the signature, so signatures from implementations that
  pick a different salt length verify as well.
* Ed25519 detached signatures. Keys travel as hex; a private key is either
  the 32-byte seed or the 64-byte seed-plus-public-key layout.

Verification functions never raise. Signing functions return ``b""`` on
failure after logging why.
"""

import logging
from typing import Protocol, assert_never

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed25519, padding, rsa
from cryptography.hazmat.primitives.asymmetric.padding import AsymmetricPadding
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from uptane_crypto.backend import initialize
from uptane_crypto.defaults import (
    ED25519_PUBLIC_KEY_BYTES,
    ED25519_SECRET_KEY_BYTES,
    ED25519_SEED_BYTES,
    ED25519_SIGNATURE_BYTES,
    SPKI_PEM_HEADER,
)
from uptane_crypto.types import KeyType
from uptane_crypto.utils import to_bytes, unhex

logger = logging.getLogger(__name__)


class EngineKey(Protocol):
    """A private key handle whose ``sign`` runs inside its engine.

    Only ``sign`` is required, with the ``RSAPrivateKey.sign`` signature.
    Handles do not need to subclass the ``cryptography`` key classes.
    """

    def sign(self, data: bytes, padding: AsymmetricPadding, algorithm: hashes.HashAlgorithm) -> bytes: ...


class KeyEngine(Protocol):
    """A provider of private keys that never leave it (HSM, PKCS#11 token, TPM)."""

    def load_private_key(self, key_id: str) -> EngineKey: ...


def load_spki_public_key(public_key_pem: str | bytes) -> PublicKeyTypes:
    """Load a PEM SubjectPublicKeyInfo public key.

    PKCS#1 ``RSA PUBLIC KEY`` PEM is refused.

    Raises
    ------
        ValueError: If the input is not a SubjectPublicKeyInfo PEM key

    """
    data = to_bytes(public_key_pem)
    if SPKI_PEM_HEADER not in data:
        raise ValueError("Not a SubjectPublicKeyInfo PEM key")
    return load_pem_public_key(data)


def _pss_sign_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.MAX_LENGTH)


def _pss_verify_padding() -> padding.PSS:
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO)


def sign(key_type: KeyType, engine: KeyEngine | None, private_key: str, message: bytes | str) -> bytes:
    """Sign ``message`` with a key of ``key_type``.

    Args:
    ----
        key_type: Type of the signing key
        engine: Optional key engine; only used for RSA keys
        private_key: Hex private key (Ed25519), PEM private key (RSA) or
            a key reference understood by ``engine``
        message: Data to sign

    Returns:
    -------
        The signature, or ``b""`` if signing failed

    """
    match key_type:
        case KeyType.ED25519:
            try:
                raw_key = unhex(private_key)
            except ValueError as e:
                logger.error(f"Ed25519 private key is not valid hex: {e!s}")
                return b""
            return ed25519_sign(raw_key, message)
        case KeyType.RSA2048 | KeyType.RSA3072 | KeyType.RSA4096:
            return rsa_pss_sign(engine, private_key, message)
        case KeyType.UNKNOWN:
            logger.error("Cannot sign with a key of unknown type")
            return b""
        case _:
            assert_never(key_type)


def rsa_pss_sign(engine: KeyEngine | None, private_key: str, message: bytes | str) -> bytes:
    """Create an RSASSA-PSS signature using the maximum salt length.

    Args:
    ----
        engine: Key engine holding the key, or None for an in-memory PEM key
        private_key: Key reference for ``engine``, or PEM private key text
        message: Data to sign

    Returns:
    -------
        The signature, or ``b""`` if signing failed

    """
    initialize()

    if engine is not None:
        return _engine_sign(engine, private_key, message)

    try:
        key = load_pem_private_key(to_bytes(private_key), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"Reading PEM private key failed with error {e!s}")
        return b""

    if not isinstance(key, rsa.RSAPrivateKey):
        logger.error(f"Expected an RSA private key, got {type(key).__name__}")
        return b""

    try:
        return key.sign(to_bytes(message), _pss_sign_padding(), hashes.SHA256())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"RSA-PSS signing failed with error {e!s}")
        return b""


def _engine_sign(engine: KeyEngine, key_id: str, message: bytes | str) -> bytes:
    try:
        key = engine.load_private_key(key_id)
    except Exception as e:
        logger.error(f"Loading private key from engine failed with error {e!s}")
        return b""

    if not callable(getattr(key, "sign", None)):
        logger.error(f"Engine key {type(key).__name__} cannot sign")
        return b""

    # Engine errors are vendor specific
    try:
        return key.sign(to_bytes(message), _pss_sign_padding(), hashes.SHA256())
    except Exception as e:
        logger.error(f"RSA-PSS signing in engine failed with error {e!s}")
        return b""


def ed25519_sign(private_key: bytes, message: bytes | str) -> bytes:
    """Create a detached Ed25519 signature.

    ``private_key`` is the raw 32-byte seed or the 64-byte secret key
    (seed followed by public key). The public half of a 64-byte key must
    belong to the seed.
    """
    initialize()

    if len(private_key) not in (ED25519_SEED_BYTES, ED25519_SECRET_KEY_BYTES):
        logger.error(f"Ed25519 private key has invalid length {len(private_key)}")
        return b""

    key = ed25519.Ed25519PrivateKey.from_private_bytes(private_key[:ED25519_SEED_BYTES])
    if len(private_key) == ED25519_SECRET_KEY_BYTES:
        public = key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        if public != private_key[ED25519_SEED_BYTES:]:
            logger.error("Ed25519 secret key does not match its embedded public key")
            return b""
    return key.sign(to_bytes(message))


def rsa_pss_verify(public_key: str, signature: bytes, message: bytes | str) -> bool:
    """Verify an RSASSA-PSS signature, recovering the salt length.

    Args:
    ----
        public_key: PEM encoded RSA public key
        signature: Raw signature bytes
        message: Signed data

    Returns:
    -------
        True if the signature is valid, False otherwise

    """
    initialize()

    try:
        key = load_spki_public_key(public_key)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"Reading PEM public key failed with error {e!s}")
        return False

    if not isinstance(key, rsa.RSAPublicKey):
        logger.error(f"Expected an RSA public key, got {type(key).__name__}")
        return False

    try:
        key.verify(bytes(signature), to_bytes(message), _pss_verify_padding(), hashes.SHA256())
    except InvalidSignature:
        logger.debug("RSA-PSS signature does not match")
        return False
    except (ValueError, TypeError) as e:
        logger.error(f"RSA-PSS verification failed with error {e!s}")
        return False
    return True


def ed25519_verify(public_key: bytes, signature: bytes, message: bytes | str) -> bool:
    """Verify a detached Ed25519 signature.

    Keys shorter than 32 bytes and signatures shorter than 64 bytes fail
    immediately. Longer inputs are truncated to those sizes.
    """
    initialize()

    if len(public_key) < ED25519_PUBLIC_KEY_BYTES or len(signature) < ED25519_SIGNATURE_BYTES:
        return False

    try:
        key = ed25519.Ed25519PublicKey.from_public_bytes(bytes(public_key[:ED25519_PUBLIC_KEY_BYTES]))
        key.verify(bytes(signature[:ED25519_SIGNATURE_BYTES]), to_bytes(message))
    except InvalidSignature:
        logger.debug("Ed25519 signature does not match")
        return False
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.error(f"Ed25519 verification failed with error {e!s}")
        return False
    return True
