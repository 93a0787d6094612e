"""SSH identity key management."""

from pathlib import Path
from typing import Optional, TextIO

import click
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from boxssh.files import ProvisionError, write_file


def _pub_path(key_path: Path) -> Path:
    return Path(f"{key_path}.pub")


def _authorized_key_line(public_key) -> str:
    """Serialize a public key as a single authorized_keys line."""
    line = public_key.public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).decode('ascii')
    return line + '\n'


def ensure_identity(path: Path, comment: str, out: Optional[TextIO] = None) -> None:
    """Ensure an ed25519 key pair exists at path and path.pub.

    An existing private key is never regenerated; only its public half is
    repaired when missing.

    Args:
        path: Private key path (public key gets .pub suffix)
        comment: Label for the progress line, e.g. 'boxssh@myhost'
        out: Progress stream; stdout when None

    Raises:
        ProvisionError: If generation, serialization or writing fails
    """
    path = Path(path)
    if path.exists():
        ensure_public_key(path)
        return

    click.echo(f"- Generating {comment} at {path} ...", file=out)
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise ProvisionError(f"creating key directory {path.parent}: {e}") from e

    private_key = ed25519.Ed25519PrivateKey.generate()
    try:
        private_bytes = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.OpenSSH,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except (ValueError, UnsupportedAlgorithm) as e:
        raise ProvisionError(f"marshaling private key {path}: {e}") from e

    # The .pub line depends on the key alone so a repair reproduces it exactly.
    pub_line = _authorized_key_line(private_key.public_key())

    try:
        write_file(path, private_bytes, 0o600)
    except OSError as e:
        raise ProvisionError(f"writing private key {path}: {e}") from e
    try:
        write_file(_pub_path(path), pub_line, 0o644)
    except OSError as e:
        raise ProvisionError(f"writing public key {_pub_path(path)}: {e}") from e


def ensure_public_key(priv_path: Path) -> None:
    """Regenerate priv_path.pub from the private key if it is missing.

    An existing .pub file is left alone without checking it against the
    private key.

    Raises:
        ProvisionError: If the private key cannot be read or parsed
    """
    priv_path = Path(priv_path)
    pub_path = _pub_path(priv_path)
    if pub_path.exists():
        return

    try:
        data = priv_path.read_bytes()
    except OSError as e:
        raise ProvisionError(f"reading private key {priv_path}: {e}") from e
    try:
        private_key = serialization.load_ssh_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ProvisionError(f"parsing private key {priv_path}: {e}") from e

    pub_line = _authorized_key_line(private_key.public_key())
    try:
        write_file(pub_path, pub_line, 0o644)
    except OSError as e:
        raise ProvisionError(f"writing public key {pub_path}: {e}") from e


def get_public_key(key_path: Path) -> str:
    """Read public key content.

    Args:
        key_path: Path to private key (will append .pub)

    Returns:
        Public key content as string
    """
    return _pub_path(key_path).read_text().strip()
