"""Tests for the configuration and validation."""

import tempfile
from pathlib import Path
from typing import IO

import pytest
import yaml

from uptane_crypto.config import CryptoConfig, create, load, resolve_config_path, validate_file
from uptane_crypto.defaults import CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE
from uptane_crypto.result import Failure, Success
from uptane_crypto.types import KeyType


def _write(config: dict) -> IO[str]:
    tmp_file = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", encoding="utf-8")
    yaml.dump(config, tmp_file)
    tmp_file.flush()
    return tmp_file


def test_validate_config_valid() -> None:
    """Test validating a complete configuration."""
    with _write(
        {
            "logging": {"level": "debug", "file": "crypto.log"},
            "keys": {"key_type": "ED25519"},
            "certificate": {
                "rsa_bits": 3072,
                "validity_days": 30,
                "country": "DE",
                "state": "Berlin",
                "organization": "Acme",
                "common_name": "device-1",
            },
        }
    ) as tmp_file:
        assert isinstance(validate_file(Path(tmp_file.name)), Success)

        config = load(Path(tmp_file.name)).unwrap()
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "crypto.log"
        assert config.keys.key_type == KeyType.ED25519
        assert config.certificate.rsa_bits == 3072
        assert config.certificate.country == "DE"


@pytest.mark.parametrize(
    ("config", "location"),
    [
        ({"logging": {"level": "CHATTY"}}, "logging.level"),
        ({"keys": {"key_type": "DSA"}}, "keys.key_type"),
        ({"keys": {"key_type": "UNKNOWN"}}, "keys.key_type"),
        ({"certificate": {"rsa_bits": 16}}, "certificate.rsa_bits"),
        ({"certificate": {"validity_days": 0}}, "certificate.validity_days"),
        ({"certificate": {"country": "DEU"}}, "certificate.country"),
    ],
)
def test_validate_config_invalid(config: dict, location: str) -> None:
    """Test that each invalid setting is reported with its location."""
    with _write(config) as tmp_file:
        result = validate_file(Path(tmp_file.name))
        assert isinstance(result, Failure)
        assert any(error.startswith(location) for error in result.error)

        loaded = load(Path(tmp_file.name))
        assert isinstance(loaded, Failure)
        assert "Invalid configuration" in loaded.error


def test_validate_collects_all_errors() -> None:
    """Test that validation reports every problem at once."""
    with _write({"logging": {"level": "CHATTY"}, "certificate": {"validity_days": -1}}) as tmp_file:
        result = validate_file(Path(tmp_file.name))
        assert isinstance(result, Failure)
        assert len(result.error) == 2


def test_validate_unreadable_yaml(tmp_path: Path) -> None:
    """Test that broken YAML is a validation failure."""
    path = tmp_path / "broken.yaml"
    path.write_text("logging: [unclosed\n")
    assert isinstance(validate_file(path), Failure)


def test_load_missing_file_gives_defaults(tmp_path: Path) -> None:
    """Test that a missing file means default settings."""
    config = load(tmp_path / "absent.yaml").unwrap()
    assert config == CryptoConfig()
    assert config.logging.level == "INFO"
    assert config.keys.key_type == KeyType.RSA2048
    assert config.certificate.rsa_bits == 2048
    assert config.certificate.validity_days == 365


def test_load_empty_file(tmp_path: Path) -> None:
    """Test that an empty file means default settings."""
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load(path).unwrap() == CryptoConfig()


def test_create_writes_defaults(tmp_path: Path) -> None:
    """Test creating a default configuration file."""
    path = tmp_path / "conf" / "uptane-crypto.yaml"
    result = create(path)

    assert isinstance(result, Success)
    assert path.exists()
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    assert data["keys"]["key_type"] == "RSA2048"
    assert data["certificate"]["validity_days"] == 365


def test_create_keeps_existing(tmp_path: Path) -> None:
    """Test that an existing file is only replaced with force."""
    path = tmp_path / "uptane-crypto.yaml"
    path.write_text(yaml.dump({"keys": {"key_type": "ED25519"}}))

    assert create(path).unwrap().keys.key_type == KeyType.ED25519
    assert create(path, force=True).unwrap().keys.key_type == KeyType.RSA2048


def test_resolve_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Test config path resolution order."""
    explicit = tmp_path / "explicit.yaml"
    from_env = tmp_path / "env.yaml"

    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert resolve_config_path() == DEFAULT_CONFIG_FILE

    monkeypatch.setenv(CONFIG_ENV_VAR, str(from_env))
    assert resolve_config_path() == from_env
    assert resolve_config_path(explicit) == explicit
