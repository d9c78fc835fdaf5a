"""One-shot SHA-256 and SHA-512 digests."""

from cryptography.hazmat.primitives import hashes

from uptane_crypto.utils import to_bytes


def _digest(algorithm: hashes.HashAlgorithm, data: bytes | str) -> bytes:
    ctx = hashes.Hash(algorithm)
    ctx.update(to_bytes(data))
    return ctx.finalize()


def sha256digest(data: bytes | str) -> bytes:
    """Return the raw 32-byte SHA-256 digest of ``data``."""
    return _digest(hashes.SHA256(), data)


def sha256digest_hex(data: bytes | str) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""
    return sha256digest(data).hex()


def sha512digest(data: bytes | str) -> bytes:
    """Return the raw 64-byte SHA-512 digest of ``data``."""
    return _digest(hashes.SHA512(), data)


def sha512digest_hex(data: bytes | str) -> str:
    """Return the lowercase hex SHA-512 digest of ``data``."""
    return sha512digest(data).hex()
