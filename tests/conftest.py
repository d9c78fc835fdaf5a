"""Pytest configuration and shared fixtures for uptane-crypto tests."""

import datetime
from pathlib import Path

import pytest
from click.testing import CliRunner
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.x509.oid import NameOID

from uptane_crypto.keygen import KeyPair, generate_key_pair
from uptane_crypto.types import KeyType

RSA_KEY_TYPES = [KeyType.RSA2048, KeyType.RSA3072, KeyType.RSA4096]
ALL_KEY_TYPES = RSA_KEY_TYPES + [KeyType.ED25519]


class DeviceCA:
    """A throwaway certificate authority written to disk."""

    def __init__(self, directory: Path):
        self.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.name = x509.Name(
            [
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Org"),
                x509.NameAttribute(NameOID.COMMON_NAME, "Test Device CA"),
            ]
        )
        now = datetime.datetime.now(datetime.UTC)
        self.cert = (
            x509.CertificateBuilder()
            .subject_name(self.name)
            .issuer_name(self.name)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(self.key, hashes.SHA256())
        )
        self.cert_path = directory / "ca.crt"
        self.key_path = directory / "ca.key"
        self.cert_path.write_bytes(self.cert.public_bytes(Encoding.PEM))
        self.key_path.write_bytes(self.key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()))


@pytest.fixture(scope="session")
def key_pairs() -> dict[KeyType, KeyPair]:
    """One generated key pair per supported key type, shared by the session."""
    return {key_type: generate_key_pair(key_type).unwrap() for key_type in ALL_KEY_TYPES}


@pytest.fixture
def ed25519_pair() -> KeyPair:
    """A fresh Ed25519 key pair."""
    return generate_key_pair(KeyType.ED25519).unwrap()


@pytest.fixture(scope="session")
def test_ca(tmp_path_factory: pytest.TempPathFactory) -> DeviceCA:
    """A CA certificate and key on disk."""
    return DeviceCA(tmp_path_factory.mktemp("ca"))


@pytest.fixture
def runner() -> CliRunner:
    """Provides a Click CliRunner instance."""
    return CliRunner()
