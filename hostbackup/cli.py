"""
Command-line entry point.

    hostbackup backup_and_upload
    hostbackup restore_backup

The process exit code is the orchestrator's ExitCode.
"""

import click

from hostbackup import configure_logging
from hostbackup.config import get_config
from hostbackup.backup.executor import ExitCode, backup_and_upload, restore_backup


class BackupGroup(click.Group):
    """Command group that reports bad arguments with their own exit code."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = int(ExitCode.UNKNOWN_COMMAND)
            raise

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as e:
            e.exit_code = int(ExitCode.UNKNOWN_COMMAND)
            raise


@click.group(
    cls=BackupGroup,
    invoke_without_command=True,
    subcommand_metavar='[restore_backup|backup_and_upload]'
)
@click.pass_context
def cli(ctx):
    """Back up this host to a file-hosting service, or restore the last backup."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_usage(), err=True)
        ctx.exit(int(ExitCode.MISSING_COMMAND))

    config = get_config()
    configure_logging(config)
    ctx.obj = config


@cli.command('backup_and_upload')
@click.pass_context
def backup_and_upload_command(ctx):
    """Archive the configured paths, upload the archive and save its link."""
    ctx.exit(int(backup_and_upload(ctx.obj)))


@cli.command('restore_backup')
@click.pass_context
def restore_backup_command(ctx):
    """Download the last uploaded archive and extract it."""
    ctx.exit(int(restore_backup(ctx.obj)))


def main():
    cli(prog_name='hostbackup')


if __name__ == '__main__':
    main()
