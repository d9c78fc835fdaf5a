#!/usr/bin/env python3
"""Command line interface for uptane-crypto.

Thin wrappers around the signing, hashing, key and certificate modules,
mostly useful for provisioning scripts and for checking interoperability
with other Uptane implementations.
"""

import base64
import json
import logging
from pathlib import Path

import click
from rich.console import Console

from uptane_crypto import __version__
from uptane_crypto.config import CryptoConfig, resolve_config_path, validate_file
from uptane_crypto.config import create as create_config
from uptane_crypto.config import load as load_config
from uptane_crypto.defaults import CONFIG_ENV_VAR, LOG_DATE_FORMAT, LOG_FORMAT
from uptane_crypto.errors import UptaneCryptoError
from uptane_crypto.hashing import Hash
from uptane_crypto.keygen import generate_key_pair
from uptane_crypto.keys import PublicKey
from uptane_crypto.result import Failure
from uptane_crypto.signing import sign
from uptane_crypto.types import HashType, KeyType
from uptane_crypto.utils import read_file
from uptane_crypto.x509_crypto import (
    extract_common_name,
    extract_from_pkcs12,
    generate_cert,
    serialize_cert,
    sign_cert,
)

KEY_TYPE_CHOICES = [key_type.value for key_type in KeyType if key_type != KeyType.UNKNOWN]


def _setup_logging(level: str, log_file: str | None) -> None:
    """Initializes logging for the application."""
    logging.basicConfig(
        filename=log_file,
        level=logging.getLevelNamesMapping()[level],
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _fail(ctx: click.Context, message: str) -> None:
    ctx.obj["console"].print(f"[bold red]Error:[/bold red] {message}")
    ctx.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    help="Path to the configuration file",
    envvar=CONFIG_ENV_VAR,
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None = None, verbose: bool = False) -> None:
    """uptane-crypto - Sign, verify and provision Uptane keys and certificates."""
    ctx.ensure_object(dict)
    ctx.obj["console"] = Console()

    config_file = resolve_config_path(config_path)
    ctx.obj["config_path"] = config_file

    config_result = load_config(config_file)
    if isinstance(config_result, Failure):
        # Allow the config commands to repair a broken file
        if ctx.invoked_subcommand != "config":
            _fail(ctx, config_result.error)
        config = CryptoConfig()
    else:
        config = config_result.unwrap()
    ctx.obj["config"] = config

    _setup_logging("DEBUG" if verbose else config.logging.level, config.logging.file)


# Configuration commands
@cli.group()
def config() -> None:
    """Manage the configuration file."""


@config.command(name="init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Write a configuration file with default values."""
    result = create_config(ctx.obj["config_path"], force=force)
    if isinstance(result, Failure):
        _fail(ctx, result.error)
    ctx.obj["console"].print("✅ Configuration initialized successfully")


@config.command(name="validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate the configuration file."""
    console = ctx.obj["console"]
    config_file = ctx.obj["config_path"]
    if not config_file.exists():
        _fail(ctx, f"Config file not found: {config_file}")

    result = validate_file(config_file)
    if isinstance(result, Failure):
        console.print("[bold red]Configuration validation failed:[/bold red]")
        for error in result.error:
            console.print(f"  - {error}")
        ctx.exit(1)
    console.print("✅ Configuration is valid")


# Key commands
@cli.command()
@click.option("--type", "key_type", type=click.Choice(KEY_TYPE_CHOICES, case_sensitive=False), help="Key type")
@click.option("--public-out", type=click.Path(path_type=Path), help="Write the public key here")
@click.option("--private-out", type=click.Path(path_type=Path), help="Write the private key here")
@click.pass_context
def keygen(ctx: click.Context, key_type: str | None, public_out: Path | None, private_out: Path | None) -> None:
    """Generate a key pair."""
    selected = KeyType(key_type.upper()) if key_type else ctx.obj["config"].keys.key_type
    try:
        result = generate_key_pair(selected)
    except UptaneCryptoError as e:
        _fail(ctx, str(e))
        return
    if isinstance(result, Failure):
        _fail(ctx, result.error)
        return
    key_pair = result.unwrap()

    if public_out:
        public_out.write_text(key_pair.public_key, encoding="utf-8")
    else:
        click.echo(key_pair.public_key)
    if private_out:
        private_out.write_text(key_pair.private_key, encoding="utf-8")
        private_out.chmod(0o600)
    else:
        click.echo(key_pair.private_key)


@cli.command()
@click.argument("key_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--uptane", is_flag=True, help="KEY_FILE holds Uptane key JSON instead of a PEM key")
@click.pass_context
def keyid(ctx: click.Context, key_file: Path, uptane: bool) -> None:
    """Print the key id of a public key."""
    if uptane:
        try:
            key = PublicKey.from_uptane(json.loads(read_file(key_file)))
        except json.JSONDecodeError as e:
            _fail(ctx, f"Invalid key JSON: {e!s}")
            return
    else:
        key = PublicKey.from_file(key_file)

    if key.key_type == KeyType.UNKNOWN:
        ctx.obj["console"].print("[yellow]Warning:[/yellow] Key type could not be identified")
    click.echo(key.key_id())


@cli.command(name="sign")
@click.option("--type", "key_type", type=click.Choice(KEY_TYPE_CHOICES, case_sensitive=False), required=True)
@click.option("--key", "key_file", type=click.Path(exists=True, dir_okay=False, path_type=Path), required=True)
@click.argument("message_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def sign_command(ctx: click.Context, key_type: str, key_file: Path, message_file: Path) -> None:
    """Sign MESSAGE_FILE and print the base64 signature."""
    signature = sign(KeyType(key_type.upper()), None, read_file(key_file), message_file.read_bytes())
    if not signature:
        _fail(ctx, "Signing failed")
        return
    click.echo(base64.b64encode(signature).decode("ascii"))


@cli.command()
@click.option(
    "--key",
    "key_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Uptane key JSON",
)
@click.option("--signature", required=True, help="Base64 signature")
@click.argument("message_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def verify(ctx: click.Context, key_file: Path, signature: str, message_file: Path) -> None:
    """Verify a signature over MESSAGE_FILE."""
    try:
        key = PublicKey.from_uptane(json.loads(read_file(key_file)))
    except json.JSONDecodeError as e:
        _fail(ctx, f"Invalid key JSON: {e!s}")
        return

    if not key.verify_signature(signature, message_file.read_bytes()):
        _fail(ctx, "Signature verification failed")
        return
    ctx.obj["console"].print(f"✅ Signature is valid (key id {key.key_id()})")


@cli.command(name="hash")
@click.option("--algorithm", type=click.Choice(["sha256", "sha512"]), default="sha256", show_default=True)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def hash_command(algorithm: str, file: Path) -> None:
    """Hash FILE."""
    with file.open("rb") as f:
        content_hash, count = Hash.generate_from_stream(HashType(algorithm), f)
    click.echo(f"{content_hash.digest.lower()}  {file}")
    logging.getLogger(__name__).info(f"Hashed {count} bytes of {file}")


# Certificate commands
@cli.group()
def cert() -> None:
    """Generate and inspect device certificates."""


@cert.command(name="generate")
@click.option("--cn", "common_name", help="Subject common name")
@click.option("--bits", type=int, help="RSA key size")
@click.option("--days", type=int, help="Validity period in days")
@click.option("--country", help="Subject country")
@click.option("--state", help="Subject state or province")
@click.option("--organization", help="Subject organization")
@click.option("--ca-cert", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="CA certificate")
@click.option("--ca-key", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="CA private key")
@click.option("--key-out", type=click.Path(path_type=Path), required=True, help="Write the private key here")
@click.option("--cert-out", type=click.Path(path_type=Path), required=True, help="Write the certificate here")
@click.pass_context
def cert_generate(
    ctx: click.Context,
    common_name: str | None,
    bits: int | None,
    days: int | None,
    country: str | None,
    state: str | None,
    organization: str | None,
    ca_cert: Path | None,
    ca_key: Path | None,
    key_out: Path,
    cert_out: Path,
) -> None:
    """Generate a device certificate, self-signed or signed by a CA."""
    defaults = ctx.obj["config"].certificate
    if bool(ca_cert) != bool(ca_key):
        _fail(ctx, "--ca-cert and --ca-key must be given together")
        return

    common_name = common_name or defaults.common_name
    try:
        device_cert = generate_cert(
            bits or defaults.rsa_bits,
            days or defaults.validity_days,
            country or defaults.country or "",
            state or defaults.state or "",
            organization or defaults.organization or "",
            common_name or "",
            self_sign=ca_cert is None,
        )
        if ca_cert and ca_key:
            sign_cert(ca_cert, ca_key, device_cert)
        key_pem, cert_pem = serialize_cert(device_cert)
    except (UptaneCryptoError, OSError) as e:
        _fail(ctx, str(e))
        return

    key_out.write_text(key_pem, encoding="utf-8")
    key_out.chmod(0o600)
    cert_out.write_text(cert_pem, encoding="utf-8")
    ctx.obj["console"].print(f"✅ Certificate for [bold]{common_name}[/bold] written to {cert_out}")


@cert.command(name="cn")
@click.argument("cert_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def cert_cn(ctx: click.Context, cert_file: Path) -> None:
    """Print the subject common name of CERT_FILE."""
    try:
        click.echo(extract_common_name(read_file(cert_file)))
    except UptaneCryptoError as e:
        _fail(ctx, str(e))


# PKCS#12 commands
@cli.group()
def p12() -> None:
    """Work with PKCS#12 bundles."""


@p12.command(name="extract")
@click.argument("bundle", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--password", default="", help="Bundle password")
@click.option("--out-dir", type=click.Path(file_okay=False, path_type=Path), required=True)
@click.pass_context
def p12_extract(ctx: click.Context, bundle: Path, password: str, out_dir: Path) -> None:
    """Extract key, certificate and CA chain from BUNDLE."""
    result = extract_from_pkcs12(bundle.read_bytes(), password)
    if isinstance(result, Failure):
        _fail(ctx, result.error)
        return
    material = result.unwrap()

    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "pkey.pem").write_text(material.private_key, encoding="utf-8")
    (out_dir / "pkey.pem").chmod(0o600)
    (out_dir / "client.pem").write_text(material.certificate, encoding="utf-8")
    (out_dir / "ca.pem").write_text(material.ca_chain, encoding="utf-8")
    ctx.obj["console"].print(f"✅ Extracted PKCS#12 bundle to [bold]{out_dir}[/bold]")


if __name__ == "__main__":
    cli()
