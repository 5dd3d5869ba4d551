import unittest
import tempfile
import shutil
import socket
import time
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from ais_recorder.app_log import AppLog
from ais_recorder.channel_config import ChannelConfig
from ais_recorder.config_utils import RecorderSettings
from ais_recorder.dated_file_router import data_file_path
from ais_recorder.errors import ChannelError, FailureKind, LogRotationError
from ais_recorder.supervisor import EXIT_FAILURE, EXIT_OK, Supervisor

SENTENCE = b'!AIVDM,1,1,,B,abc,0*1A'


def free_udp_port() -> int:
    while True:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]
        sock.close()
        if port > 1024:
            return port


def free_udp_ports(count: int) -> list:
    ports = []
    while len(ports) < count:
        port = free_udp_port()
        if port not in ports:
            ports.append(port)
    return ports


def wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.02)
    return False


class TestSupervisor(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.data_root = Path(self.test_dir) / 'data'
        self.app_log = AppLog(Path(self.test_dir) / 'logs')
        self.app_log.start()
        self.settings = RecorderSettings(read_timeout=0.05, log_check_interval=60.0)

    def tearDown(self):
        self.app_log.close()
        shutil.rmtree(self.test_dir)

    def _today_file(self, port):
        return data_file_path(self.data_root, datetime.now(timezone.utc).date(), port)

    def test_failed_channel_does_not_affect_others(self):
        good_port, busy_port = free_udp_ports(2)
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(('', busy_port))

        supervisor = Supervisor(
            [ChannelConfig(busy_port, 'busy'), ChannelConfig(good_port, 'VHF1')],
            self.data_root, self.app_log, self.settings)
        try:
            supervisor.start()
            self.assertTrue(wait_for(lambda: busy_port in supervisor.results))

            sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sender.sendto(SENTENCE, ('127.0.0.1', good_port))
            sender.close()
            worker = supervisor.workers[good_port]
            self.assertTrue(wait_for(lambda: worker.sentences_written == 1))
        finally:
            supervisor.stop()
            status = supervisor.wait()
            blocker.close()

        self.assertEqual(status, EXIT_OK)
        self.assertEqual(supervisor.results[busy_port].kind, FailureKind.BIND)
        self.assertIsNone(supervisor.results[good_port])
        self.assertIn(SENTENCE, self._today_file(good_port).read_bytes())

    def test_all_channels_failing_ends_supervisor(self):
        port = free_udp_port()
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(('', port))
        try:
            supervisor = Supervisor([ChannelConfig(port, 'busy')], self.data_root,
                                    self.app_log, self.settings)
            supervisor.start()
            status = supervisor.wait()
        finally:
            blocker.close()

        self.assertEqual(status, EXIT_FAILURE)
        self.assertIsInstance(supervisor.results[port], ChannelError)

    def test_rotation_failure_stops_everything(self):
        port = free_udp_port()
        supervisor = Supervisor([ChannelConfig(port, 'VHF1')], self.data_root,
                                self.app_log, self.settings)
        supervisor.rotator.interval = 0.01

        with patch.object(self.app_log, 'rotate_if_needed',
                          side_effect=LogRotationError('unable to rename old logfile')):
            supervisor.start()
            status = supervisor.wait()

        self.assertEqual(status, EXIT_FAILURE)
        self.assertIsInstance(supervisor.fatal_error, LogRotationError)
        self.assertIsNone(supervisor.results[port])

    def test_channels_share_operational_log(self):
        from ais_recorder.app_log import install_app_log_handler, remove_app_log_handler

        handler = install_app_log_handler(self.app_log)
        ports = free_udp_ports(2)
        supervisor = Supervisor([ChannelConfig(p, f'stream {p}') for p in ports],
                                self.data_root, self.app_log, self.settings)
        try:
            supervisor.start()
            self.assertTrue(wait_for(lambda: all(w.router.is_open for w in supervisor.workers.values())))
        finally:
            supervisor.stop()
            supervisor.wait()
            remove_app_log_handler(handler)

        content = self.app_log.path.read_text()
        for port in ports:
            self.assertIn(f'{port} connected for input', content)
        self.assertIn('All channels started', content)


if __name__ == '__main__':
    unittest.main()
