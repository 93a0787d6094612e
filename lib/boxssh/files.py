"""Shared file helpers for provisioning."""

import os
from pathlib import Path


class ProvisionError(RuntimeError):
    """A provisioning step failed; message names the operation and path."""


def write_file(path: Path, content, mode: int) -> None:
    """Write content to path in full and set its permission bits.

    Args:
        path: File to (over)write
        content: str or bytes
        mode: Permission bits, applied on creation and re-applied afterwards
            so an existing file ends up with the same mode

    Raises:
        OSError: On any filesystem failure
    """
    if isinstance(content, str):
        content = content.encode('utf-8')
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, 'wb') as f:
        f.write(content)
    os.chmod(path, mode)
