"""Key-pair generation.

Pairs are handed out as text only: PEM for RSA, lowercase hex for
Ed25519 (the private half in the 64-byte seed-plus-public-key layout).
"""

import logging
from typing import NamedTuple, assert_never

from cryptography.hazmat.primitives.asymmetric import ed25519, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from uptane_crypto.backend import ensure_entropy, initialize
from uptane_crypto.defaults import RSA_MIN_KEY_BITS, RSA_PUBLIC_EXPONENT
from uptane_crypto.errors import InvalidKeySizeError
from uptane_crypto.result import Failure, Result, Success
from uptane_crypto.types import RSA_KEY_BITS, KeyType

logger = logging.getLogger(__name__)


class KeyPair(NamedTuple):
    """Serialized public and private halves of a key pair."""

    public_key: str
    private_key: str


def generate_key_pair(key_type: KeyType) -> Result[KeyPair, str]:
    """Generate a key pair of the requested type.

    Args:
    ----
        key_type: Type of key to generate

    Returns:
    -------
        Result containing the serialized key pair or error message

    Raises:
    ------
        InsufficientEntropyError: If the random source is unusable

    """
    match key_type:
        case KeyType.ED25519:
            return _generate_ed25519_key_pair()
        case KeyType.RSA2048 | KeyType.RSA3072 | KeyType.RSA4096:
            return _generate_rsa_key_pair(RSA_KEY_BITS[key_type])
        case KeyType.UNKNOWN:
            logger.error("Cannot generate a key pair of unknown type")
            return Failure("Unsupported key type: UNKNOWN")
        case _:
            assert_never(key_type)


def generate_rsa_private_key(bits: int) -> rsa.RSAPrivateKey:
    """Generate an RSA private key with public exponent 65537.

    Raises
    ------
        InvalidKeySizeError: If ``bits`` is below 31 or refused by the backend
        InsufficientEntropyError: If the random source is unusable

    """
    if bits < RSA_MIN_KEY_BITS:
        raise InvalidKeySizeError(f"RSA key size can't be smaller than {RSA_MIN_KEY_BITS} bits")

    initialize()
    ensure_entropy()

    try:
        return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=bits)
    except ValueError as e:
        raise InvalidKeySizeError(f"RSA key generation failed: {e!s}") from e


def _generate_rsa_key_pair(bits: int) -> Result[KeyPair, str]:
    private_key = generate_rsa_private_key(bits)
    try:
        public_pem = private_key.public_key().public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)
        private_pem = private_key.private_bytes(Encoding.PEM, PrivateFormat.TraditionalOpenSSL, NoEncryption())
    except ValueError as e:
        logger.error(f"Serializing RSA key pair failed: {e!s}")
        return Failure(f"Error serializing RSA key pair: {e!s}")
    return Success(KeyPair(public_key=public_pem.decode("ascii"), private_key=private_pem.decode("ascii")))


def _generate_ed25519_key_pair() -> Result[KeyPair, str]:
    initialize()
    ensure_entropy()

    private_key = ed25519.Ed25519PrivateKey.generate()
    seed = private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    return Success(KeyPair(public_key=public.hex(), private_key=(seed + public).hex()))
