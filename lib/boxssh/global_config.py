"""Wire per-target configs into the user's ~/.ssh/config."""

from pathlib import Path
from typing import Optional, TextIO

import click

from boxssh.files import ProvisionError, write_file

INCLUDE_DIRECTIVE = 'Include config.d/*.conf'
HEADER_COMMENT = '# Load all configuration files in config.d/.'


def _normalize(line: str) -> str:
    return ' '.join(line.split())


def has_include(content: str) -> bool:
    """True if any line of content is the include directive."""
    return any(_normalize(line) == INCLUDE_DIRECTIVE for line in content.splitlines())


def ensure_include(ssh_dir: Path, out: Optional[TextIO] = None) -> str:
    """Make sure {ssh_dir}/config includes config.d/*.conf.

    The directive only takes effect ahead of any Host/Match block, so a config
    file that already has content is never edited: the user gets a warning
    with the line to add instead.

    Args:
        ssh_dir: The user's SSH directory, usually ~/.ssh
        out: Stream for the warning; stdout when None

    Returns:
        'present' if the directive was already there, 'created' if the file
        was absent or empty and has been written, 'missing' if a warning was
        emitted and the file left untouched

    Raises:
        ProvisionError: If the file cannot be read or created
    """
    config_path = Path(ssh_dir) / 'config'
    try:
        # Decoded for the line scan only; user files need not be UTF-8.
        content = config_path.read_bytes().decode('utf-8', errors='surrogateescape')
    except FileNotFoundError:
        content = ''
    except OSError as e:
        raise ProvisionError(f"reading SSH config {config_path}: {e}") from e

    if has_include(content):
        return 'present'

    if content.strip():
        click.echo(
            f"Warning: {config_path} does not include per-target configs. "
            f"Add this line before any Host or Match block:\n  {INCLUDE_DIRECTIVE}",
            file=out,
        )
        return 'missing'

    try:
        config_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        write_file(config_path, f"{HEADER_COMMENT}\n{INCLUDE_DIRECTIVE}\n", 0o600)
    except OSError as e:
        raise ProvisionError(f"writing SSH config {config_path}: {e}") from e
    return 'created'
