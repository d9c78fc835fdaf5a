"""Exceptions for unrecoverable conditions.

These signal programming or configuration mistakes (bad parameters,
missing mandatory fields, an unusable random source). Malformed input on
verification paths never raises; it yields ``False``.
"""


class UptaneCryptoError(Exception):
    """Base class for uptane-crypto errors."""


class InsufficientEntropyError(UptaneCryptoError):
    """The operating system random source cannot be used."""


class InvalidKeySizeError(UptaneCryptoError, ValueError):
    """An RSA key of the requested size cannot be generated."""


class UnsupportedHashError(UptaneCryptoError, ValueError):
    """A hash was requested for an algorithm other than SHA-256/SHA-512."""


class CertificateError(UptaneCryptoError):
    """A certificate could not be built, signed, parsed or serialized."""
