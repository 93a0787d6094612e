"""Parse boxssh configuration (~/.boxssh/config.yml)."""

import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

KNOWN_FIELDS = {'ssh_dir', 'identity_file', 'comment'}


def default_config_path() -> Path:
    return Path.home() / '.boxssh' / 'config.yml'


def _default_comment() -> str:
    return f'boxssh@{socket.gethostname()}'


@dataclass
class Settings:
    """Where boxssh keeps its identity and writes SSH config."""
    ssh_dir: Path = field(default_factory=lambda: Path.home() / '.ssh')
    identity_file: Path = field(
        default_factory=lambda: Path.home() / '.boxssh' / 'keys' / 'id_ed25519'
    )
    comment: str = field(default_factory=_default_comment)

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> 'Settings':
        """Load settings from config_file. Returns defaults if it is not present."""
        config_file = config_file or default_config_path()
        if not config_file.exists():
            return cls()

        with open(config_file, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{config_file} must contain a mapping")

        unknown = set(data.keys()) - KNOWN_FIELDS
        if unknown:
            raise ValueError(f"Unknown config field(s): {', '.join(sorted(unknown))}")

        settings = cls()
        if data.get('ssh_dir'):
            settings.ssh_dir = Path(data['ssh_dir']).expanduser()
        if data.get('identity_file'):
            settings.identity_file = Path(data['identity_file']).expanduser()
        if data.get('comment'):
            settings.comment = str(data['comment'])
        return settings
