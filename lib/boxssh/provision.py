"""Target provisioning: identity, per-target files, global include."""

from pathlib import Path
from typing import Optional, TextIO, Union

from boxssh.files import ProvisionError
from boxssh.global_config import ensure_include
from boxssh.ssh_keys import ensure_identity
from boxssh.target_config import TargetRecord, TargetStore, check_host_key, check_target_name


class Provisioner:
    """Sets up and tears down SSH access to loopback targets.

    The identity key and ~/.ssh/config are shared by every target; only the
    per-target files are created and removed here.
    """

    def __init__(self, ssh_dir: Path, identity_file: Path, comment: str,
                 out: Optional[TextIO] = None):
        """Initialize provisioner.

        Args:
            ssh_dir: User SSH directory holding config and config.d/
            identity_file: Private key used for every target
            comment: Comment for a newly generated identity
            out: Progress stream; stdout when None
        """
        self.ssh_dir = Path(ssh_dir)
        self.identity_file = Path(identity_file)
        self.comment = comment
        self.out = out
        self.store = TargetStore(self.config_dir)

    @property
    def config_dir(self) -> Path:
        return self.ssh_dir / 'config.d'

    def setup_target(self, name: str, port: Union[int, str],
                     host_public_key: str) -> TargetRecord:
        """Provision SSH access for one target.

        Args:
            name: Target name, used as the SSH host alias
            port: Loopback port the target's sshd listens on
            host_public_key: Target host key, e.g. 'ssh-ed25519 AAAA...'

        Returns:
            The written TargetRecord

        Raises:
            ValueError: If the name or host key is malformed; nothing is written
            ProvisionError: If a file step fails
        """
        check_target_name(name)
        check_host_key(host_public_key)
        ensure_identity(self.identity_file, self.comment, self.out)
        try:
            self.config_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise ProvisionError(f"creating config directory {self.config_dir}: {e}") from e
        record = self.store.create(name, port, self.identity_file, host_public_key)
        ensure_include(self.ssh_dir, self.out)
        return record

    def teardown_target(self, name: str) -> None:
        """Remove a target's per-target files. Never fails."""
        self.store.delete(name)
