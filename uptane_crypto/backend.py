"""Process-wide cryptographic backend initialization.

``initialize`` runs once per process before the first cryptographic
operation; every public entry point calls it. ``teardown`` resets the
state so a later ``initialize`` runs the checks again.
"""

import logging
import os
import threading

from cryptography.hazmat.backends.openssl import backend as openssl_backend

from uptane_crypto.errors import InsufficientEntropyError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_initialized = False


def initialize() -> None:
    """Check the OpenSSL backend and the random source, once."""
    global _initialized
    if _initialized:
        return
    with _lock:
        if _initialized:
            return
        logger.debug(f"Using {openssl_backend.openssl_version_text()}")
        if os.environ.get("CRYPTOGRAPHY_OPENSSL_NO_LEGACY"):
            logger.warning("OpenSSL legacy provider disabled, PKCS#12 bundles using legacy ciphers cannot be read")
        ensure_entropy()
        _initialized = True


def teardown() -> None:
    """Forget the initialization state."""
    global _initialized
    with _lock:
        _initialized = False


def is_initialized() -> bool:
    return _initialized


def ensure_entropy() -> None:
    """Make sure the operating system random source can be used.

    Raises
    ------
        InsufficientEntropyError: If no random source is available

    """
    try:
        os.urandom(32)
    except NotImplementedError as e:
        raise InsufficientEntropyError("Random generator has not been sufficiently seeded.") from e
