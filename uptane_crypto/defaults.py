"""Constants and default configuration for uptane-crypto."""

import os
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_FILE = Path(os.getcwd()) / "uptane-crypto.yaml"
CONFIG_ENV_VAR = "UPTANE_CRYPTO_CONFIG"

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Key defaults
DEFAULT_KEY_TYPE = "RSA2048"
RSA_PUBLIC_EXPONENT = 65537
RSA_MIN_KEY_BITS = 31  # sic, the historical floor

# Ed25519 sizes (libsodium layout)
ED25519_PUBLIC_KEY_BYTES = 32
ED25519_SEED_BYTES = 32
ED25519_SECRET_KEY_BYTES = 64
ED25519_SIGNATURE_BYTES = 64

# Hashing
STREAM_BLOCK_SIZE = 64 * 1024
SHORT_TAG_LENGTH = 12

# Only SubjectPublicKeyInfo PEM is accepted for RSA public keys
SPKI_PEM_HEADER = b"-----BEGIN PUBLIC KEY-----"

# Certificate defaults
DEFAULT_CERT_RSA_BITS = 2048
DEFAULT_CERT_VALIDITY_DAYS = 365
CERT_SERIAL_BITS = 20


def get_default_config() -> dict[str, Any]:
    """Get default configuration dictionary."""
    return {
        "logging": {
            "level": DEFAULT_LOG_LEVEL,
        },
        "keys": {
            "key_type": DEFAULT_KEY_TYPE,
        },
        "certificate": {
            "rsa_bits": DEFAULT_CERT_RSA_BITS,
            "validity_days": DEFAULT_CERT_VALIDITY_DAYS,
        },
    }
