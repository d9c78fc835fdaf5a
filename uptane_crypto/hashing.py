"""Content hashing: hash values and incremental hashers.

A :class:`Hash` is an immutable (algorithm, digest) pair as found in
Uptane target metadata. Digests are stored upper-case whatever the case
they were given in, so two hashes compare equal whenever algorithm and
digest match.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import BinaryIO

from cryptography.hazmat.primitives import hashes
from pydantic import BaseModel, ConfigDict, field_validator

from uptane_crypto.defaults import SHORT_TAG_LENGTH, STREAM_BLOCK_SIZE
from uptane_crypto.digest import sha256digest, sha512digest
from uptane_crypto.errors import UnsupportedHashError
from uptane_crypto.types import HashType
from uptane_crypto.utils import to_bytes

logger = logging.getLogger(__name__)


class Hash(BaseModel):
    """An immutable content hash."""

    model_config = ConfigDict(frozen=True)

    hash_type: HashType
    digest: str

    @field_validator("digest")
    @classmethod
    def normalize_digest(cls: type["Hash"], v: str) -> str:
        """Store digests upper-cased."""
        return v.upper()

    @classmethod
    def from_name(cls: type["Hash"], name: str, digest: str) -> "Hash":
        """Create a hash from a lowercase algorithm name as used in metadata.

        Anything other than ``"sha256"`` or ``"sha512"`` gives an
        unknown-algorithm hash.
        """
        if name == "sha512":
            hash_type = HashType.SHA512
        elif name == "sha256":
            hash_type = HashType.SHA256
        else:
            hash_type = HashType.UNKNOWN_ALGORITHM
        return cls(hash_type=hash_type, digest=digest)

    @classmethod
    def generate(cls: type["Hash"], hash_type: HashType, data: bytes | str) -> "Hash":
        """Hash ``data`` in one go.

        Raises
        ------
            UnsupportedHashError: If ``hash_type`` is not SHA-256 or SHA-512

        """
        match hash_type:
            case HashType.SHA256:
                digest = sha256digest(data)
            case HashType.SHA512:
                digest = sha512digest(data)
            case _:
                raise UnsupportedHashError(f"Unsupported hash type: {hash_type}")
        return cls(hash_type=hash_type, digest=digest.hex())

    @classmethod
    def generate_from_stream(cls: type["Hash"], hash_type: HashType, source: BinaryIO) -> tuple["Hash", int]:
        """Hash everything readable from ``source``.

        The stream is consumed in 64 KiB blocks. Returns the hash and the
        number of bytes read.

        Raises
        ------
            UnsupportedHashError: If ``hash_type`` is not SHA-256 or SHA-512

        """
        hasher = MultiPartHasher.create(hash_type)
        if hasher is None:
            raise UnsupportedHashError(f"Unsupported hash type: {hash_type}")

        count = 0
        while True:
            block = source.read(STREAM_BLOCK_SIZE)
            if not block:
                break
            hasher.update(block)
            count += len(block)

        return hasher.get_hash(), count

    @staticmethod
    def short_tag(hashes: Iterable["Hash"]) -> str:
        """Pick a short, human-readable tag for a set of hashes of one artifact.

        The hash whose algorithm comes first in :class:`HashType` order wins
        (SHA-256 over SHA-512); its first 12 digest characters are returned
        lower-cased. Without any known algorithm the tag is ``"(unknown)"``.
        """
        best = HashType.UNKNOWN_ALGORITHM
        res = "(unknown)"
        for h in hashes:
            if h.hash_type.ordinal < best.ordinal:
                res = h.digest[:SHORT_TAG_LENGTH]
                best = h.hash_type
        return res.lower()

    def type_string(self: "Hash") -> str:
        """Algorithm name as used in metadata."""
        return self.hash_type.value

    def __str__(self: "Hash") -> str:
        return f"Hash: {self.digest}"


class MultiPartHasher(ABC):
    """Incremental hasher for content of unbounded length.

    An instance is single use: once :meth:`get_hex_digest` or
    :meth:`get_hash` has been called, further calls raise
    ``cryptography.exceptions.AlreadyFinalized``.
    """

    hash_type: HashType

    def __init__(self: "MultiPartHasher") -> None:
        self._ctx = hashes.Hash(self._algorithm())

    @staticmethod
    def create(hash_type: HashType) -> "MultiPartHasher | None":
        """Create a hasher for ``hash_type``, or ``None`` if it is not supported."""
        match hash_type:
            case HashType.SHA256:
                return MultiPartSHA256Hasher()
            case HashType.SHA512:
                return MultiPartSHA512Hasher()
            case _:
                logger.error(f"Unsupported type of hashing: {hash_type}")
                return None

    @abstractmethod
    def _algorithm(self: "MultiPartHasher") -> hashes.HashAlgorithm: ...

    def update(self: "MultiPartHasher", data: bytes | str, length: int | None = None) -> None:
        """Feed ``data`` (or its first ``length`` bytes) into the digest."""
        chunk = to_bytes(data)
        if length is not None:
            chunk = chunk[:length]
        self._ctx.update(chunk)

    def get_hex_digest(self: "MultiPartHasher") -> str:
        """Finalize and return the upper-case hex digest."""
        return self._ctx.finalize().hex().upper()

    def get_hash(self: "MultiPartHasher") -> Hash:
        """Finalize and return the digest as a :class:`Hash`."""
        return Hash(hash_type=self.hash_type, digest=self.get_hex_digest())


class MultiPartSHA256Hasher(MultiPartHasher):
    hash_type = HashType.SHA256

    def _algorithm(self: "MultiPartSHA256Hasher") -> hashes.HashAlgorithm:
        return hashes.SHA256()


class MultiPartSHA512Hasher(MultiPartHasher):
    hash_type = HashType.SHA512

    def _algorithm(self: "MultiPartSHA512Hasher") -> hashes.HashAlgorithm:
        return hashes.SHA512()
