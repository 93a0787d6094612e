"""Per-target SSH client config and pinned host keys."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from boxssh.files import ProvisionError, write_file

LOOPBACK = '127.0.0.1'
SSH_USER = 'user'

_PORT_RE = re.compile(r'^\s*Port\s+(\S+)\s*$', re.MULTILINE)
_NAME_RE = re.compile(r'[A-Za-z0-9_][A-Za-z0-9_.-]*')


def check_target_name(name: str) -> str:
    """Reject names that are not a single safe file name and Host alias."""
    if not _NAME_RE.fullmatch(name):
        raise ValueError(
            f"Invalid target name {name!r}: use letters, digits, '.', '_' or '-', "
            f"not starting with '.' or '-'"
        )
    return name


def check_host_key(host_public_key: str) -> str:
    """Return the stripped host key, which must be a single non-empty line."""
    key = host_public_key.strip()
    if not key:
        raise ValueError("Host key is empty")
    if '\n' in key or '\r' in key:
        raise ValueError("Host key must be a single line")
    return key


def render_host_config(target_name: str, port: Union[int, str],
                       identity_file: Path, known_hosts_file: Path) -> str:
    """Render the SSH client stanza for one target."""
    return (
        f"Host {target_name}\n"
        f"  HostName {LOOPBACK}\n"
        f"  Port {port}\n"
        f"  User {SSH_USER}\n"
        f"  IdentityFile {identity_file}\n"
        f"  IdentitiesOnly yes\n"
        f"  UserKnownHostsFile {known_hosts_file}\n"
        f"  StrictHostKeyChecking yes\n"
    )


def render_known_hosts(port: Union[int, str], host_public_key: str) -> str:
    """Render a known_hosts line pinned to the loopback port."""
    return f"[{LOOPBACK}]:{port} {host_public_key.strip()}\n"


def write_host_config(config_dir: Path, target_name: str, port: Union[int, str],
                      identity_file: Path, known_hosts_file: Path) -> Path:
    """Write {config_dir}/{target_name}.conf, replacing any previous content.

    Returns:
        Path to the written file
    """
    conf_path = Path(config_dir) / f'{target_name}.conf'
    content = render_host_config(target_name, port, identity_file, known_hosts_file)
    try:
        write_file(conf_path, content, 0o644)
    except OSError as e:
        raise ProvisionError(f"writing SSH config {conf_path}: {e}") from e
    return conf_path


def write_known_hosts(path: Path, port: Union[int, str], host_public_key: str) -> Path:
    """Write a single-line known_hosts file, replacing any previous content."""
    path = Path(path)
    try:
        write_file(path, render_known_hosts(port, host_public_key), 0o644)
    except OSError as e:
        raise ProvisionError(f"writing known_hosts {path}: {e}") from e
    return path


def remove_target(config_dir: Path, target_name: str) -> None:
    """Delete a target's config and known_hosts files; missing files are fine."""
    for suffix in ('.conf', '.known_hosts'):
        try:
            (Path(config_dir) / f'{target_name}{suffix}').unlink()
        except OSError:
            pass


@dataclass
class TargetRecord:
    """Connection material persisted for one target."""

    name: str
    port: str
    conf_path: Path
    known_hosts_path: Path
    host_public_key: Optional[str] = None


class TargetStore:
    """Per-target files in a config directory, keyed by target name.

    Example:
        store = TargetStore(Path('~/.ssh/config.d').expanduser())
        store.create('box1', 2222, identity_file, 'ssh-ed25519 AAAA...')
        store.delete('box1')
    """

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir)

    def conf_path(self, name: str) -> Path:
        return self.config_dir / f'{name}.conf'

    def known_hosts_path(self, name: str) -> Path:
        return self.config_dir / f'{name}.known_hosts'

    def create(self, name: str, port: Union[int, str], identity_file: Path,
               host_public_key: str) -> TargetRecord:
        """Write both files for a target, overwriting an earlier version."""
        check_target_name(name)
        host_public_key = check_host_key(host_public_key)
        known_hosts = self.known_hosts_path(name)
        conf = write_host_config(self.config_dir, name, port, identity_file, known_hosts)
        write_known_hosts(known_hosts, port, host_public_key)
        return TargetRecord(
            name=name,
            port=str(port),
            conf_path=conf,
            known_hosts_path=known_hosts,
            host_public_key=host_public_key,
        )

    def read(self, name: str) -> Optional[TargetRecord]:
        """Load a target's record. Returns None if its config file is absent."""
        conf = self.conf_path(name)
        if not conf.exists():
            return None

        match = _PORT_RE.search(conf.read_text())
        port = match.group(1) if match else ''

        host_key = None
        known_hosts = self.known_hosts_path(name)
        if known_hosts.exists():
            line = known_hosts.read_text().strip()
            # '[127.0.0.1]:2222 ssh-ed25519 AAAA...'
            parts = line.split(None, 1)
            if len(parts) == 2:
                host_key = parts[1]

        return TargetRecord(
            name=name,
            port=port,
            conf_path=conf,
            known_hosts_path=known_hosts,
            host_public_key=host_key,
        )

    def delete(self, name: str) -> None:
        remove_target(self.config_dir, name)

    def names(self) -> list[str]:
        """Names of provisioned targets, sorted.

        config.d may hold hand-written .conf files too; only those with a
        matching .known_hosts file count.
        """
        if not self.config_dir.is_dir():
            return []
        return sorted(
            p.stem for p in self.config_dir.glob('*.conf')
            if self.known_hosts_path(p.stem).exists()
        )
