"""
AIS Recorder - UDP AIS traffic to daily VDR-style files

Listens on any number of UDP ports, extracts AIS sentences from each
datagram and appends them, timestamped, to one file per port per UTC day.

Quick Start:
    from ais_recorder import ChannelConfig, ChannelWorker

    worker = ChannelWorker(ChannelConfig(10110, 'VHF1'), '/var/local/LogAIS')
    worker.run()

Or run the daemon:
    ais-recorder daemon --config /etc/ais-recorder/config.toml
"""

from .version import RECORDER_VERSION

__version__ = RECORDER_VERSION

from .errors import (
    FailureKind, RecorderError, ChannelError, LogRotationError, StartupError
)
from .sentence_extractor import extract_sentences, scan_frames
from .records import LogRecord, format_timestamp
from .channel_config import ChannelConfig, parse_channel_lines, load_channels
from .dated_file_router import DatedFileRouter
from .channel_worker import ChannelWorker
from .app_log import AppLog, AppLogHandler, AppLogRotator, install_app_log_handler
from .config_utils import PathResolver, RecorderSettings, load_config_with_paths
from .supervisor import Supervisor

__all__ = [
    # Errors
    "FailureKind",
    "RecorderError",
    "ChannelError",
    "LogRotationError",
    "StartupError",
    # Data path
    "extract_sentences",
    "scan_frames",
    "LogRecord",
    "format_timestamp",
    "ChannelConfig",
    "parse_channel_lines",
    "load_channels",
    "DatedFileRouter",
    "ChannelWorker",
    # Operational log
    "AppLog",
    "AppLogHandler",
    "AppLogRotator",
    "install_app_log_handler",
    # Process
    "PathResolver",
    "RecorderSettings",
    "load_config_with_paths",
    "Supervisor",
]
