import unittest
import tempfile
import shutil
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from ais_recorder.channel_config import ChannelConfig, check_port, load_channels, parse_channel_lines
from ais_recorder.errors import FailureKind, StartupError


class TestCheckPort(unittest.TestCase):

    def test_valid_range(self):
        self.assertEqual(check_port('1025'), 1025)
        self.assertEqual(check_port('65535'), 65535)

    def test_out_of_range(self):
        for text in ['1024', '65536', '0', '-1']:
            with self.subTest(text=text):
                with self.assertRaises(ValueError):
                    check_port(text)

    def test_not_a_number(self):
        with self.assertRaises(ValueError):
            check_port('udp')


class TestParseChannelLines(unittest.TestCase):

    def test_basic_line(self):
        self.assertEqual(parse_channel_lines(['10110\tVHF1']),
                         [ChannelConfig(port=10110, stream_name='VHF1')])

    def test_comments_and_blank_lines_ignored(self):
        lines = ['# port\tname', '', '   ', '10110\tVHF1', '#10111\tdisabled']
        self.assertEqual([c.port for c in parse_channel_lines(lines)], [10110])

    def test_line_without_name_ignored(self):
        self.assertEqual(parse_channel_lines(['10110', '10111 VHF2']), [])

    def test_extra_fields_ignored(self):
        channels = parse_channel_lines(['10110\tVHF1\tnotes here\tmore'])
        self.assertEqual(channels, [ChannelConfig(port=10110, stream_name='VHF1')])

    def test_spaces_trimmed(self):
        channels = parse_channel_lines(['  10 110\tShore  station   north  \r'])
        self.assertEqual(channels, [ChannelConfig(port=10110, stream_name='Shore station north')])

    def test_invalid_port_skipped(self):
        channels = parse_channel_lines(['80\tHTTP', 'abc\tJunk', '70000\tHigh', '10110\tVHF1'])
        self.assertEqual([c.port for c in channels], [10110])

    def test_repeated_port_keeps_first(self):
        channels = parse_channel_lines(['10110\tVHF1', '10110\tVHF1 again'])
        self.assertEqual(channels, [ChannelConfig(port=10110, stream_name='VHF1')])

    def test_order_preserved(self):
        channels = parse_channel_lines(['10112\tC', '10110\tA', '10111\tB'])
        self.assertEqual([c.stream_name for c in channels], ['C', 'A', 'B'])


class TestLoadChannels(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_load_file(self):
        path = Path(self.test_dir) / 'LogAIS.txt'
        path.write_bytes(b'# channels\r\n10110\tVHF1\r\n10111\tVHF2\r\n')
        channels = load_channels(path)
        self.assertEqual(channels, [ChannelConfig(10110, 'VHF1'), ChannelConfig(10111, 'VHF2')])

    def test_missing_file(self):
        with self.assertRaises(StartupError) as ctx:
            load_channels(Path(self.test_dir) / 'missing.txt')
        self.assertEqual(ctx.exception.kind, FailureKind.CONFIG)


if __name__ == '__main__':
    unittest.main()
