"""
Channel list parsing

The channel list is a tab separated text file, one channel per line:

    # port<TAB>stream name
    10110	VHF1
    10111	VHF2	anything after the second field is ignored

Comment lines (``#``) and blank lines are skipped, as are lines with fewer
than two fields. Spaces are stripped from the port field. Ports must be in
the range 1025..65535 and may appear only once.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from .errors import FailureKind, StartupError

logger = logging.getLogger(__name__)

MIN_PORT = 1025
MAX_PORT = 65535


@dataclass(frozen=True)
class ChannelConfig:
    """One validated port / stream name pair"""
    port: int
    stream_name: str


def check_port(text: str) -> int:
    """
    Convert a port field to an int and validate its range.

    Raises:
        ValueError: Not an integer, or outside 1025..65535
    """
    port = int(text)
    if port < MIN_PORT or port > MAX_PORT:
        raise ValueError(f"port value out of range: {text}")
    return port


def _normalize(line: str) -> str:
    line = line.strip()
    while '  ' in line:
        line = line.replace('  ', ' ')
    return line


def parse_channel_lines(lines: Iterable[str]) -> List[ChannelConfig]:
    """
    Parse channel list lines into validated channels.

    Invalid and repeated ports are logged and skipped.

    Args:
        lines: Lines of the channel list file

    Returns:
        Channels in file order
    """
    channels: List[ChannelConfig] = []
    seen_ports = set()

    for line_number, raw in enumerate(lines, start=1):
        line = _normalize(raw)
        if not line or line.startswith('#'):
            continue

        fields = line.split('\t')
        if len(fields) < 2:
            logger.debug(f"Line {line_number}: no stream name, ignored")
            continue

        port_text = fields[0].replace(' ', '')
        stream_name = fields[1].strip()

        try:
            port = check_port(port_text)
        except ValueError:
            logger.error(f"not a valid input port, skipping entry: {fields[:2]}")
            continue

        if port in seen_ports:
            logger.error(f"port {port} repeated, skipping entry: {fields[:2]}")
            continue

        seen_ports.add(port)
        channels.append(ChannelConfig(port=port, stream_name=stream_name))

    return channels


def load_channels(channels_file: Path) -> List[ChannelConfig]:
    """
    Read and parse the channel list file.

    Raises:
        StartupError: File cannot be read
    """
    channels_file = Path(channels_file)
    try:
        text = channels_file.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        raise StartupError(FailureKind.CONFIG, f"error reading {channels_file}: {e}") from e

    channels = parse_channel_lines(text.splitlines())
    logger.info(f"Loaded {len(channels)} channels from {channels_file}")
    return channels
