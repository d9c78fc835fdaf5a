"""Public keys and key identification.

A :class:`PublicKey` is the unit the metadata verification workflow works
with: it knows its type, can verify signatures and has a stable key id
that matches the one computed by other Uptane implementations.
"""

import base64
import binascii
import logging
from pathlib import Path
from typing import Any, assert_never

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict, model_validator

from uptane_crypto.digest import sha256digest_hex
from uptane_crypto.signing import ed25519_verify, load_spki_public_key, rsa_pss_verify
from uptane_crypto.types import RSA_KEY_BITS, KeyType
from uptane_crypto.utils import encode_canonical, read_file, unhex

logger = logging.getLogger(__name__)


def is_rsa_key_type(key_type: KeyType) -> bool:
    """Check whether ``key_type`` is one of the RSA variants."""
    match key_type:
        case KeyType.RSA2048 | KeyType.RSA3072 | KeyType.RSA4096:
            return True
        case _:
            return False


def identify_rsa_key_type(public_key_pem: str | bytes) -> KeyType:
    """Classify a PEM RSA public key by modulus length.

    Args:
    ----
        public_key_pem: PEM encoded public key

    Returns:
    -------
        The matching RSA key type, or UNKNOWN for unparsable input, non-RSA
        keys and unsupported modulus lengths

    """
    try:
        key = load_spki_public_key(public_key_pem)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.debug(f"Could not parse RSA public key: {e!s}")
        return KeyType.UNKNOWN

    if not isinstance(key, rsa.RSAPublicKey):
        logger.debug(f"Not an RSA public key: {type(key).__name__}")
        return KeyType.UNKNOWN

    # Modulus size in whole bytes, as the signature length would be
    key_length = (key.key_size + 7) // 8 * 8
    for key_type, bits in RSA_KEY_BITS.items():
        if key_length == bits:
            return key_type

    logger.warning(f"Weird key length: {key_length}")
    return KeyType.UNKNOWN


class PublicKey(BaseModel):
    """An immutable public key of a known type.

    ``value`` holds PEM text for RSA keys and lowercase hex of the raw
    32-byte key for Ed25519.
    """

    model_config = ConfigDict(frozen=True)

    value: str = ""
    key_type: KeyType = KeyType.UNKNOWN

    @model_validator(mode="after")
    def validate_rsa_length(self: "PublicKey") -> "PublicKey":
        """Ensure RSA keys really have the declared length."""
        if is_rsa_key_type(self.key_type) and identify_rsa_key_type(self.value) != self.key_type:
            raise ValueError("RSA key length is incorrect")
        return self

    @classmethod
    def from_file(cls: type["PublicKey"], path: Path | str) -> "PublicKey":
        """Load a PEM RSA public key from a file.

        Keys that cannot be identified get the UNKNOWN type.
        """
        value = read_file(path)
        return cls(value=value, key_type=identify_rsa_key_type(value))

    @classmethod
    def from_uptane(cls: type["PublicKey"], uptane_json: Any) -> "PublicKey":
        """Create a key from its Uptane metadata representation.

        Any unexpected shape yields an UNKNOWN key rather than an error.
        """
        if not isinstance(uptane_json, dict):
            return cls()
        keytype = uptane_json.get("keytype")
        keyval = uptane_json.get("keyval")
        if not isinstance(keytype, str) or not isinstance(keyval, dict):
            return cls()
        keyvalue = keyval.get("public")
        if not isinstance(keyvalue, str):
            return cls()

        keytype = keytype.lower()
        if keytype == "ed25519":
            key_type = KeyType.ED25519
        elif keytype == "rsa":
            key_type = identify_rsa_key_type(keyvalue)
            if key_type == KeyType.UNKNOWN:
                logger.warning("Couldn't identify length of RSA key")
        else:
            key_type = KeyType.UNKNOWN

        return cls(value=keyvalue, key_type=key_type)

    def verify_signature(self: "PublicKey", signature: str, message: bytes | str) -> bool:
        """Verify a base64 encoded signature over ``message``.

        Returns False for malformed signatures and keys of unknown type.
        """
        try:
            raw_signature = base64.b64decode(signature, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            logger.error(f"Signature is not valid base64: {e!s}")
            return False

        match self.key_type:
            case KeyType.ED25519:
                try:
                    raw_key = unhex(self.value)
                except ValueError as e:
                    logger.error(f"Ed25519 public key is not valid hex: {e!s}")
                    return False
                return ed25519_verify(raw_key, raw_signature, message)
            case KeyType.RSA2048 | KeyType.RSA3072 | KeyType.RSA4096:
                return rsa_pss_verify(self.value, raw_signature, message)
            case KeyType.UNKNOWN:
                return False
            case _:
                assert_never(self.key_type)

    def to_uptane(self: "PublicKey") -> dict[str, Any]:
        """Return the Uptane metadata representation of this key."""
        match self.key_type:
            case KeyType.RSA2048 | KeyType.RSA3072 | KeyType.RSA4096:
                keytype = "RSA"
            case KeyType.ED25519:
                keytype = "ED25519"
            case KeyType.UNKNOWN:
                keytype = "unknown"
            case _:
                assert_never(self.key_type)
        return {"keytype": keytype, "keyval": {"public": self.value}}

    def key_id(self: "PublicKey") -> str:
        """Return the key id: SHA-256 of the canonical JSON of the key value.

        Trailing newlines are stripped first, so PEM text read from a file
        and the same text without its final newline share one id.
        """
        key_content = self.value.rstrip("\n")
        return sha256digest_hex(encode_canonical(key_content))
