"""
Unit tests for the command-line interface (hostbackup/cli.py).
"""

from unittest.mock import patch

import pytest

from hostbackup.cli import cli
from hostbackup.backup.executor import ExitCode


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('hostbackup.cli.configure_logging') as mock_configure:
        yield mock_configure


class TestCli:
    """Test subcommand dispatch and exit codes."""

    def test_missing_command_prints_usage(self, runner):
        result = runner.invoke(cli, [])

        assert result.exit_code == ExitCode.MISSING_COMMAND
        assert 'Usage:' in result.output
        assert 'restore_backup|backup_and_upload' in result.output

    def test_unknown_command_prints_usage(self, runner):
        result = runner.invoke(cli, ['make_coffee'])

        assert result.exit_code == ExitCode.UNKNOWN_COMMAND
        assert 'Usage:' in result.output

    def test_unknown_option_is_bad_usage(self, runner):
        result = runner.invoke(cli, ['--bogus'])

        assert result.exit_code == ExitCode.UNKNOWN_COMMAND

    def test_help(self, runner):
        result = runner.invoke(cli, ['--help'])

        assert result.exit_code == 0
        assert 'backup_and_upload' in result.output
        assert 'restore_backup' in result.output

    @patch('hostbackup.cli.backup_and_upload')
    def test_backup_command_exit_code(self, mock_backup, runner, quiet_logging):
        mock_backup.return_value = ExitCode.UPLOAD_FAILED

        result = runner.invoke(cli, ['backup_and_upload'])

        assert result.exit_code == ExitCode.UPLOAD_FAILED
        mock_backup.assert_called_once()
        quiet_logging.assert_called_once()

    @patch('hostbackup.cli.backup_and_upload')
    def test_backup_command_success(self, mock_backup, runner):
        mock_backup.return_value = ExitCode.SUCCESS

        result = runner.invoke(cli, ['backup_and_upload'])

        assert result.exit_code == 0

    @pytest.mark.parametrize("code", [
        ExitCode.SUCCESS,
        ExitCode.NO_PRIOR_BACKUP,
        ExitCode.DOWNLOAD_FAILED,
        ExitCode.EXTRACT_FAILED,
    ])
    @patch('hostbackup.cli.restore_backup')
    def test_restore_command_exit_codes(self, mock_restore, runner, code):
        mock_restore.return_value = code

        result = runner.invoke(cli, ['restore_backup'])

        assert result.exit_code == code

    @patch('hostbackup.cli.get_config')
    @patch('hostbackup.cli.restore_backup')
    def test_command_receives_active_config(self, mock_restore, mock_get_config, runner, app_config):
        mock_get_config.return_value = app_config
        mock_restore.return_value = ExitCode.SUCCESS

        runner.invoke(cli, ['restore_backup'])

        mock_restore.assert_called_once_with(app_config)

    def test_restore_without_pointer_end_to_end(self, runner, workdir, monkeypatch):
        monkeypatch.setenv('HOSTBACKUP_ENV', 'development')

        result = runner.invoke(cli, ['restore_backup'])

        assert result.exit_code == ExitCode.NO_PRIOR_BACKUP
