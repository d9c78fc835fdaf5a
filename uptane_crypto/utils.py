"""Utility functions for uptane-crypto."""

import binascii
import json
from pathlib import Path
from typing import Any


def encode_canonical(value: Any) -> bytes:
    """Encode a JSON value with a fixed byte representation.

    Object keys are sorted, no insignificant whitespace is emitted and
    non-ASCII text is kept as UTF-8.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def to_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    """Return ``data`` as bytes, encoding text as UTF-8."""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def unhex(text: str) -> bytes:
    """Decode a hex string of either case.

    Raises
    ------
        ValueError: If the text is not valid hex

    """
    try:
        return binascii.unhexlify(text.strip())
    except (binascii.Error, TypeError) as e:
        raise ValueError(f"Invalid hex string: {e!s}") from e


def read_file(path: Path | str) -> str:
    """Read a text file."""
    with open(path, encoding="utf-8") as f:
        return f.read()
