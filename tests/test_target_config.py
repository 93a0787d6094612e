import stat
from pathlib import Path

import pytest

from boxssh.files import ProvisionError
from boxssh.target_config import (
    TargetStore, check_host_key, check_target_name, remove_target,
    write_host_config, write_known_hosts,
)

HOST_KEY = 'ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIHostKeyForTestsOnly'


def test_write_host_config_renders_stanza(tmp_path):
    """Config file matches the expected stanza exactly."""
    path = write_host_config(tmp_path, 'box1', '2222',
                             Path('/keys/id_ed25519'), tmp_path / 'box1.known_hosts')

    assert path == tmp_path / 'box1.conf'
    assert path.read_text() == (
        "Host box1\n"
        "  HostName 127.0.0.1\n"
        "  Port 2222\n"
        "  User user\n"
        "  IdentityFile /keys/id_ed25519\n"
        "  IdentitiesOnly yes\n"
        f"  UserKnownHostsFile {tmp_path / 'box1.known_hosts'}\n"
        "  StrictHostKeyChecking yes\n"
    )
    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_write_host_config_overwrites(tmp_path):
    """Rewriting replaces the file in full."""
    write_host_config(tmp_path, 'box1', 2222, Path('/k'), Path('/kh'))
    path = write_host_config(tmp_path, 'box1', 3333, Path('/k'), Path('/kh'))

    content = path.read_text()
    assert 'Port 3333' in content
    assert 'Port 2222' not in content


def test_write_host_config_missing_dir(tmp_path):
    """Missing config dir is reported, not created."""
    with pytest.raises(ProvisionError, match='writing SSH config'):
        write_host_config(tmp_path / 'nope', 'box1', 2222, Path('/k'), Path('/kh'))


def test_write_known_hosts(tmp_path):
    """Single line pinned to the loopback port."""
    path = write_known_hosts(tmp_path / 'box1.known_hosts', 2222, HOST_KEY + '\n')

    assert path.read_text() == f'[127.0.0.1]:2222 {HOST_KEY}\n'
    assert stat.S_IMODE(path.stat().st_mode) == 0o644


def test_remove_target_deletes_files(tmp_path):
    (tmp_path / 'box1.conf').write_text('x')
    (tmp_path / 'box1.known_hosts').write_text('x')
    (tmp_path / 'box2.conf').write_text('x')

    remove_target(tmp_path, 'box1')

    assert sorted(p.name for p in tmp_path.iterdir()) == ['box2.conf']


def test_remove_target_is_idempotent(tmp_path):
    """Removing twice, or a target never created, is not an error."""
    (tmp_path / 'box1.conf').write_text('x')

    remove_target(tmp_path, 'box1')
    remove_target(tmp_path, 'box1')
    remove_target(tmp_path, 'never')
    remove_target(tmp_path / 'missing-dir', 'box1')

    assert list(tmp_path.iterdir()) == []


def test_store_create_and_read(tmp_path):
    store = TargetStore(tmp_path)
    created = store.create('box1', 2222, Path('/keys/id'), HOST_KEY)

    record = store.read('box1')

    assert record == created
    assert record.port == '2222'
    assert record.host_public_key == HOST_KEY
    assert 'UserKnownHostsFile ' + str(tmp_path / 'box1.known_hosts') in record.conf_path.read_text()


def test_store_read_missing(tmp_path):
    assert TargetStore(tmp_path).read('box1') is None


def test_store_names_skips_foreign_configs(tmp_path):
    """Hand-written .conf files without pinned keys are not targets."""
    store = TargetStore(tmp_path)
    store.create('web', 2201, Path('/k'), HOST_KEY)
    store.create('db', 2202, Path('/k'), HOST_KEY)
    (tmp_path / 'work.conf').write_text('Host work\n')

    assert store.names() == ['db', 'web']

    store.delete('web')
    assert store.names() == ['db']


def test_store_names_no_dir(tmp_path):
    assert TargetStore(tmp_path / 'config.d').names() == []


@pytest.mark.parametrize('name', ['box1', 'my.box_2-a', '_tmp'])
def test_check_target_name_accepts(name):
    assert check_target_name(name) == name


@pytest.mark.parametrize('name', ['', '../x', 'a/b', 'a b', 'tab\there', '.hidden', '-x', 'box\n'])
def test_check_target_name_rejects(name):
    with pytest.raises(ValueError, match='Invalid target name'):
        check_target_name(name)


def test_check_host_key():
    assert check_host_key(f'  {HOST_KEY}\n') == HOST_KEY
    with pytest.raises(ValueError, match='empty'):
        check_host_key(' \n')
    with pytest.raises(ValueError, match='single line'):
        check_host_key(f'{HOST_KEY}\n{HOST_KEY}\n')


def test_store_create_rejects_path_escape(tmp_path):
    """A name that would leave the config dir writes nothing."""
    config_dir = tmp_path / 'config.d'
    config_dir.mkdir()

    with pytest.raises(ValueError):
        TargetStore(config_dir).create('../x', 2222, Path('/k'), HOST_KEY)

    assert list(config_dir.iterdir()) == []
    assert not (tmp_path / 'x.conf').exists()


def test_store_create_rejects_empty_host_key(tmp_path):
    with pytest.raises(ValueError, match='empty'):
        TargetStore(tmp_path).create('box1', 2222, Path('/k'), '')
    assert list(tmp_path.iterdir()) == []
