"""
Configuration utilities for path and runtime settings

Provides path resolution with OS-specific defaults, environment variable
expansion and an optional TOML settings file:

    [paths]
    data_root = "/var/local/LogAIS"
    log_dir = "/var/log/LogAIS"
    channels_file = "${data_root}/LogAIS.txt"

    [logging]
    level = "INFO"
    max_bytes = 102400
    max_generations = 4
    check_interval_minutes = 10

    [recorder]
    read_timeout = 1.0
    buffer_size = 6144
    large_packet_bytes = 1460
"""

import os
import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Dict, Optional

import toml

from .app_log import CHECK_INTERVAL_SEC, MAX_GENERATIONS, MAX_LOG_BYTES
from .channel_worker import BUFFER_SIZE, LARGE_PACKET_BYTES, READ_TIMEOUT
from .errors import FailureKind, StartupError

logger = logging.getLogger(__name__)

CONFIG_NAME = 'LogAIS'
DEFAULT_CONFIG_FILE = '/etc/ais-recorder/config.toml'


@dataclass
class RecorderSettings:
    """Runtime tunables (everything except paths)"""
    log_level: str = 'INFO'
    max_log_bytes: int = MAX_LOG_BYTES
    max_log_generations: int = MAX_GENERATIONS
    log_check_interval: float = CHECK_INTERVAL_SEC
    read_timeout: float = READ_TIMEOUT
    buffer_size: int = BUFFER_SIZE
    large_packet_bytes: int = LARGE_PACKET_BYTES

    @classmethod
    def from_config(cls, config: Dict) -> 'RecorderSettings':
        """
        Build settings from the [logging] and [recorder] sections.

        Raises:
            StartupError: A value has the wrong type or is out of range
        """
        settings = cls()

        try:
            logging_config = config.get('logging', {})
            recorder_config = config.get('recorder', {})

            if 'level' in logging_config:
                settings.log_level = str(logging_config['level']).upper()
            if 'max_bytes' in logging_config:
                settings.max_log_bytes = int(logging_config['max_bytes'])
            if 'max_generations' in logging_config:
                settings.max_log_generations = int(logging_config['max_generations'])
            if 'check_interval_minutes' in logging_config:
                settings.log_check_interval = float(logging_config['check_interval_minutes']) * 60.0

            if 'read_timeout' in recorder_config:
                settings.read_timeout = float(recorder_config['read_timeout'])
            if 'buffer_size' in recorder_config:
                settings.buffer_size = int(recorder_config['buffer_size'])
            if 'large_packet_bytes' in recorder_config:
                settings.large_packet_bytes = int(recorder_config['large_packet_bytes'])
        except (TypeError, ValueError) as e:
            raise StartupError(FailureKind.CONFIG, f"invalid setting: {e}") from e

        for name in ('max_log_bytes', 'max_log_generations', 'log_check_interval',
                     'read_timeout', 'buffer_size'):
            if getattr(settings, name) <= 0:
                raise StartupError(FailureKind.CONFIG, f"{name} must be positive")

        return settings


class PathResolver:
    """
    Resolves data, log and channel list paths with support for:
    - OS-specific defaults (Linux, Windows)
    - Development defaults relative to the working directory
    - Environment variable and ~ expansion
    - Template variable substitution (${data_root}, ${log_dir})
    """

    DEV_DEFAULTS = {
        'data_root': './data',
        'log_dir': './logs',
    }

    def __init__(self, config: Dict, development_mode: bool = False,
                 platform: Optional[str] = None):
        """
        Args:
            config: Parsed TOML configuration (may be empty)
            development_mode: Use development paths instead of system paths
            platform: Override sys.platform (for tests)
        """
        self.config = config
        self.development_mode = development_mode
        self.platform = platform or sys.platform
        self._resolved_paths: Dict[str, str] = {}

    def platform_defaults(self) -> Dict[str, str]:
        """
        Default data root and log dir for this platform.

        Raises:
            StartupError: Unsupported platform
        """
        if self.development_mode:
            return dict(self.DEV_DEFAULTS)

        if self.platform.startswith('linux'):
            return {
                'data_root': f'/var/local/{CONFIG_NAME}',
                'log_dir': f'/var/log/{CONFIG_NAME}',
            }
        if self.platform.startswith('win'):
            appdata = os.environ.get('APPDATA', '')
            return {
                'data_root': f'C:\\{CONFIG_NAME}',
                'log_dir': str(Path(appdata) / CONFIG_NAME) if appdata else f'C:\\{CONFIG_NAME}\\logs',
            }
        raise StartupError(FailureKind.PLATFORM, f"unknown OS: {self.platform}")

    def get_paths_config(self) -> Dict[str, str]:
        """
        Get the paths section merged over the defaults.

        Returns:
            Dictionary of path name -> resolved path
        """
        if self._resolved_paths:
            return self._resolved_paths

        config_paths = {k: v for k, v in self.config.get('paths', {}).items() if v}

        if 'data_root' in config_paths and 'log_dir' in config_paths:
            paths: Dict[str, str] = {}
        else:
            paths = self.platform_defaults()
        paths.update(config_paths)

        for key in paths:
            paths[key] = os.path.expanduser(os.path.expandvars(str(paths[key])))

        # Resolve ${data_root} style references; a few passes handle nesting
        for _ in range(3):
            for key in paths:
                paths[key] = Template(paths[key]).safe_substitute(paths)

        self._resolved_paths = paths
        return paths

    def get_data_root(self) -> Path:
        return Path(self.get_paths_config()['data_root'])

    def get_log_dir(self) -> Path:
        return Path(self.get_paths_config()['log_dir'])

    def get_channels_file(self) -> Path:
        paths = self.get_paths_config()
        if 'channels_file' in paths:
            return Path(paths['channels_file'])
        return self.get_data_root() / f"{CONFIG_NAME}.txt"

    def ensure_directories(self):
        """
        Create the data root and log directory.

        Raises:
            StartupError: Either directory cannot be created
        """
        for path in (self.get_data_root(), self.get_log_dir()):
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StartupError(FailureKind.CONFIG,
                                   f"unable to create directory {path}: {e}") from e

    def print_summary(self):
        """Print a summary of resolved paths"""
        print("\n" + "=" * 70)
        print("AIS RECORDER PATH CONFIGURATION")
        print("=" * 70)
        print(f"Mode: {'Development' if self.development_mode else 'Production'}")
        print()
        print(f"  Data Root:      {self.get_data_root()}")
        print(f"  Channel List:   {self.get_channels_file()}")
        print(f"  Log Directory:  {self.get_log_dir()}")
        print("=" * 70 + "\n")


def load_config(config_file: Optional[Path]) -> Dict:
    """
    Load the TOML settings file.

    A missing file is only an error when it was named explicitly.

    Raises:
        StartupError: File unreadable or not valid TOML
    """
    explicit = config_file is not None
    path = Path(config_file) if explicit else Path(DEFAULT_CONFIG_FILE)

    if not path.exists():
        if explicit:
            raise StartupError(FailureKind.CONFIG, f"configuration file not found: {path}")
        return {}

    try:
        with open(path, 'r') as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise StartupError(FailureKind.CONFIG, f"error loading {path}: {e}") from e


def load_config_with_paths(config_file: Optional[Path] = None,
                           development_mode: bool = False) -> tuple[Dict, PathResolver, RecorderSettings]:
    """
    Load configuration and create path resolver and settings

    Returns:
        Tuple of (config dict, PathResolver, RecorderSettings)
    """
    config = load_config(config_file)
    resolver = PathResolver(config, development_mode=development_mode)
    settings = RecorderSettings.from_config(config)
    return config, resolver, settings
