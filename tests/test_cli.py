import unittest
import tempfile
import shutil
import sys
from pathlib import Path
from unittest.mock import patch

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from ais_recorder import cli
from ais_recorder.supervisor import EXIT_FAILURE


class TestCli(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.config_file = self.test_dir / 'config.toml'
        self.config_file.write_text(
            '[paths]\n'
            f'data_root = "{self.test_dir / "data"}"\n'
            f'log_dir = "{self.test_dir / "logs"}"\n'
        )

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _args(self, *argv):
        return cli.build_parser().parse_args(list(argv))

    def test_channels_command_lists_valid_channels(self):
        (self.test_dir / 'data').mkdir()
        (self.test_dir / 'data' / 'LogAIS.txt').write_text('10110\tVHF1\n80\tbad\n')
        with patch('builtins.print') as mock_print:
            status = cli.show_channels(self._args('channels', '--config', str(self.config_file)))
        self.assertEqual(status, 0)
        printed = ' '.join(str(call.args[0]) for call in mock_print.call_args_list)
        self.assertIn('10110', printed)
        self.assertIn('VHF1', printed)
        self.assertNotIn('bad', printed)

    def test_daemon_without_channel_file_fails(self):
        status = cli.run_daemon(self._args('daemon', '--config', str(self.config_file)))
        self.assertEqual(status, EXIT_FAILURE)
        # Log was still rotated in and the failure recorded
        log_text = (self.test_dir / 'logs' / 'LogAIS.log').read_text()
        self.assertIn('error reading', log_text)

    def test_daemon_with_no_valid_channels_fails(self):
        (self.test_dir / 'data').mkdir()
        (self.test_dir / 'data' / 'LogAIS.txt').write_text('# nothing here\n')
        status = cli.run_daemon(self._args('daemon', '--config', str(self.config_file)))
        self.assertEqual(status, EXIT_FAILURE)

    def test_daemon_with_missing_config_file(self):
        status = cli.run_daemon(self._args('daemon', '--config', str(self.test_dir / 'missing.toml')))
        self.assertEqual(status, EXIT_FAILURE)

    def test_daemon_with_invalid_setting_fails_cleanly(self):
        with open(self.config_file, 'a') as f:
            f.write('\n[logging]\nmax_bytes = "abc"\n')
        with patch('builtins.print') as mock_print:
            status = cli.run_daemon(self._args('daemon', '--config', str(self.config_file)))
        self.assertEqual(status, EXIT_FAILURE)
        printed = ' '.join(str(call.args[0]) for call in mock_print.call_args_list)
        self.assertIn('config failure', printed)

    def test_no_command_prints_help(self):
        with patch('sys.stdout'):
            with self.assertRaises(SystemExit) as ctx:
                cli.main([])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == '__main__':
    unittest.main()
