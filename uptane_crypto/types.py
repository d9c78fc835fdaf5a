"""Type definitions for uptane-crypto."""

from enum import StrEnum


class KeyType(StrEnum):
    """Key types that can appear in Uptane metadata."""

    RSA2048 = "RSA2048"
    RSA3072 = "RSA3072"
    RSA4096 = "RSA4096"
    ED25519 = "ED25519"
    UNKNOWN = "UNKNOWN"


class HashType(StrEnum):
    """Content hash algorithms.

    Declaration order matters: it is the preference order used when a
    short tag is picked out of several hashes of the same content.
    """

    SHA256 = "sha256"
    SHA512 = "sha512"
    UNKNOWN_ALGORITHM = "unknown"

    @property
    def ordinal(self) -> int:
        """Position of the algorithm in declaration order."""
        return list(HashType).index(self)


RSA_KEY_BITS = {
    KeyType.RSA2048: 2048,
    KeyType.RSA3072: 3072,
    KeyType.RSA4096: 4096,
}
