"""Configuration for uptane-crypto.

Settings live in a single YAML file (``uptane-crypto.yaml`` by default)
and are validated with pydantic. A missing file means defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from rich.console import Console
from ruamel.yaml import YAML

from uptane_crypto.defaults import (
    CONFIG_ENV_VAR,
    DEFAULT_CERT_RSA_BITS,
    DEFAULT_CERT_VALIDITY_DAYS,
    DEFAULT_CONFIG_FILE,
    DEFAULT_KEY_TYPE,
    DEFAULT_LOG_LEVEL,
    RSA_MIN_KEY_BITS,
    get_default_config,
)
from uptane_crypto.result import Failure, Result, Success
from uptane_crypto.types import KeyType

CONSOLE = Console()
yaml = YAML()
yaml.preserve_quotes = True
yaml.indent(mapping=2, sequence=4, offset=2)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = DEFAULT_LOG_LEVEL
    file: str | None = None

    @field_validator("level")
    @classmethod
    def validate_level(cls: type["LoggingConfig"], v: str) -> str:
        """Accept standard logging level names in any case."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid log level: {v}")
        return level


class KeysConfig(BaseModel):
    """Key generation settings."""

    key_type: KeyType = KeyType(DEFAULT_KEY_TYPE)

    @field_validator("key_type")
    @classmethod
    def validate_key_type(cls: type["KeysConfig"], v: KeyType) -> KeyType:
        if v == KeyType.UNKNOWN:
            raise ValueError("key_type must be a concrete key type")
        return v


class CertificateConfig(BaseModel):
    """Defaults for device certificate generation."""

    rsa_bits: int = Field(DEFAULT_CERT_RSA_BITS, ge=RSA_MIN_KEY_BITS)
    validity_days: int = Field(DEFAULT_CERT_VALIDITY_DAYS, gt=0)
    country: str | None = Field(None, min_length=2, max_length=2)
    state: str | None = None
    organization: str | None = None
    common_name: str | None = None


class CryptoConfig(BaseModel):
    """Top-level configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    keys: KeysConfig = Field(default_factory=KeysConfig)
    certificate: CertificateConfig = Field(default_factory=CertificateConfig)


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Resolve the configuration file path.

    The resolution order is:
    1. Explicitly provided path
    2. The UPTANE_CRYPTO_CONFIG environment variable
    3. ``uptane-crypto.yaml`` in the current directory
    """
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def create(config_path: Path, force: bool = False) -> Result[CryptoConfig, str]:
    """Write a configuration file with default values.

    Args:
    ----
        config_path: Path of the configuration file
        force: If True, overwrite an existing file

    Returns:
    -------
        Result with the loaded CryptoConfig or error message

    """
    try:
        if force or not config_path.exists():
            config_path.parent.mkdir(parents=True, exist_ok=True)
            _write_config_file(get_default_config(), config_path)
            CONSOLE.print(f"Created config at {config_path}")
        else:
            CONSOLE.print(f"Config already exists at {config_path}, skipping.")
        return load(config_path)
    except OSError as e:
        return Failure(f"Failed to create configuration: {e!s}")


def load(config_path: Path) -> Result[CryptoConfig, str]:
    """Load and validate the configuration file, falling back to defaults if absent."""
    if not config_path.exists():
        return Success(CryptoConfig())

    validation_result = validate_file(config_path)
    if isinstance(validation_result, Failure):
        return Failure("Invalid configuration:\n" + "\n".join(validation_result.error))

    try:
        return Success(CryptoConfig.model_validate(_read_yaml(config_path)))
    except (OSError, ValidationError) as e:
        return Failure(f"Error loading configuration: {e!s}")


def validate_file(config_path: Path) -> Result[None, list[str]]:
    """Validate a configuration file, collecting every error found."""
    try:
        CryptoConfig.model_validate(_read_yaml(config_path))
        return Success(None)
    except ValidationError as e:
        return Failure([f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in json.loads(e.json())])
    except Exception as e:
        return Failure([f"Error validating {config_path}: {e!s}"])


def _read_yaml(config_path: Path) -> dict[str, Any]:
    with config_path.open(encoding="utf-8") as f:
        return yaml.load(f) or {}


def _write_config_file(config_data: dict[str, Any], path: Path) -> None:
    """Write configuration dictionary to a YAML file with a header."""
    with path.open("w", encoding="utf-8") as f:
        f.write("# uptane-crypto configuration\n\n")
        yaml.dump(config_data, f)
