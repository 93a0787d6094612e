#!/usr/bin/env python3
"""boxssh CLI - SSH access to local sandbox containers."""

import sys
import click
from pathlib import Path
from boxssh.files import ProvisionError
from boxssh.global_config import ensure_include
from boxssh.provision import Provisioner
from boxssh.settings import Settings
from boxssh.ssh_keys import ensure_identity, get_public_key
from boxssh.target_config import check_target_name


def _provisioner(settings: Settings) -> Provisioner:
    return Provisioner(settings.ssh_dir, settings.identity_file, settings.comment)


def _fail(message: str) -> None:
    click.secho(f"❌ {message}", fg='red')
    sys.exit(1)


def _target_name(ctx, param, value):
    try:
        return check_target_name(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None


@click.group()
@click.version_option(package_name='boxssh')
@click.option('--config', 'config_file', type=click.Path(dir_okay=False, path_type=Path),
              default=None, help='Config file (default: ~/.boxssh/config.yml)')
@click.pass_context
def main(ctx, config_file):
    """Provision SSH keys and client config for local sandbox containers."""
    try:
        ctx.obj = Settings.load(config_file)
    except (ValueError, OSError) as e:
        _fail(str(e))


@main.command()
@click.pass_obj
def init(settings):
    """Create the identity key and hook config.d into ~/.ssh/config."""
    click.echo("🔧 Initializing boxssh...")

    key_path = settings.identity_file
    try:
        existed = key_path.exists()
        ensure_identity(key_path, settings.comment)
        if existed:
            click.echo(f"✓ Identity already exists at {key_path}")
        else:
            click.echo(f"✓ Identity created at {key_path}")

        status = ensure_include(settings.ssh_dir)
    except ProvisionError as e:
        _fail(str(e))

    config_path = settings.ssh_dir / 'config'
    if status == 'created':
        click.echo(f"✓ Created {config_path}")
    elif status == 'present':
        click.echo(f"✓ {config_path} already includes config.d")
    else:
        click.secho(f"⚠️  Edit {config_path} by hand (see warning above)", fg='yellow')

    click.echo("\n" + "="*60)
    click.echo("📋 Public key (authorize it inside your containers):")
    click.echo("="*60)
    click.echo(get_public_key(key_path))
    click.echo("="*60 + "\n")

    click.echo("✅ Initialization complete!")


@main.command()
@click.argument('name', callback=_target_name)
@click.argument('port', type=click.IntRange(1, 65535))
@click.option('--host-key', help="Target host public key, e.g. 'ssh-ed25519 AAAA...'")
@click.option('--host-key-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='File holding the target host public key')
@click.pass_obj
def add(settings, name, port, host_key, host_key_file):
    """Write SSH config for target NAME listening on loopback PORT."""
    if bool(host_key) == bool(host_key_file):
        _fail("Pass exactly one of --host-key or --host-key-file")
    try:
        if host_key_file:
            host_key = host_key_file.read_text()
        record = _provisioner(settings).setup_target(name, port, host_key)
    except (ProvisionError, ValueError, OSError) as e:
        _fail(str(e))

    click.echo(f"✓ Config written to {record.conf_path}")
    click.echo(f"✓ Host key pinned in {record.known_hosts_path}")
    click.echo(f"\n💡 Connect with:\n  ssh {name}")


@main.command()
@click.argument('name', callback=_target_name)
@click.pass_obj
def remove(settings, name):
    """Delete SSH config and known_hosts for target NAME."""
    _provisioner(settings).teardown_target(name)
    click.echo(f"✓ Removed SSH config for {name}")


@main.command(name='list')
@click.pass_obj
def list_targets(settings):
    """List provisioned targets."""
    store = _provisioner(settings).store
    names = store.names()
    if not names:
        click.echo("No targets")
        return
    for name in names:
        record = store.read(name)
        click.echo(f"{name}  127.0.0.1:{record.port}")


@main.command()
@click.argument('name', callback=_target_name)
@click.pass_obj
def show(settings, name):
    """Print the SSH config and pinned host key for target NAME."""
    record = _provisioner(settings).store.read(name)
    if record is None:
        _fail(f"No target named {name}")
    click.echo(record.conf_path.read_text(), nl=False)
    if record.known_hosts_path.exists():
        click.echo()
        click.echo(record.known_hosts_path.read_text(), nl=False)


if __name__ == '__main__':
    main()
