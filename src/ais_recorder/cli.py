#!/usr/bin/env python3
"""
Command Line Interface for AIS Recorder
"""

import sys
import logging
import argparse

from .app_log import AppLog, install_app_log_handler, remove_app_log_handler
from .channel_config import load_channels
from .config_utils import load_config_with_paths
from .errors import RecorderError
from .supervisor import EXIT_FAILURE, Supervisor
from .version import RECORDER_VERSION

logger = logging.getLogger('ais_recorder.cli')


def configure_console_logging(debug: bool = False):
    """Console logging for interactive use"""
    root_logger = logging.getLogger()
    level = logging.DEBUG if debug else logging.INFO
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))
        root_logger.addHandler(handler)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(level)


def run_daemon(args) -> int:
    """Start every configured channel and block until they end"""
    try:
        _, resolver, settings = load_config_with_paths(args.config, development_mode=args.dev)
        resolver.ensure_directories()
        app_log = AppLog(resolver.get_log_dir(),
                         max_generations=settings.max_log_generations,
                         max_bytes=settings.max_log_bytes)
        app_log.start()
    except RecorderError as e:
        print(f"❌ Fatal: {e}", file=sys.stderr)
        return EXIT_FAILURE

    level = logging.DEBUG if args.debug else getattr(logging, settings.log_level, logging.INFO)
    handler = install_app_log_handler(app_log, level=level)
    logger.info(f"LogAIS ais-recorder v{RECORDER_VERSION} started")

    try:
        try:
            channels = load_channels(resolver.get_channels_file())
        except RecorderError as e:
            logger.critical(f"Fatal: {e}")
            print(f"❌ Fatal: {e}", file=sys.stderr)
            return EXIT_FAILURE

        if not channels:
            logger.critical(f"No valid channels in {resolver.get_channels_file()}")
            print(f"❌ No valid channels in {resolver.get_channels_file()}", file=sys.stderr)
            return EXIT_FAILURE

        supervisor = Supervisor(channels, resolver.get_data_root(), app_log, settings)
        print(f"Recording {len(channels)} channels to {resolver.get_data_root()}")
        print(f"Log: {app_log.path}. Press Ctrl+C to stop.")
        return supervisor.run()
    finally:
        remove_app_log_handler(handler)
        app_log.close()


def show_paths(args) -> int:
    try:
        _, resolver, _ = load_config_with_paths(args.config, development_mode=args.dev)
        resolver.print_summary()
    except RecorderError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_FAILURE
    return 0


def show_channels(args) -> int:
    try:
        _, resolver, _ = load_config_with_paths(args.config, development_mode=args.dev)
        channels = load_channels(resolver.get_channels_file())
    except RecorderError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_FAILURE

    if not channels:
        print(f"No valid channels in {resolver.get_channels_file()}")
        return EXIT_FAILURE

    print(f"{'Port':>6}  Stream")
    for channel in channels:
        print(f"{channel.port:>6}  {channel.stream_name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='AIS Recorder - UDP AIS sentences to daily VDR-style files',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {RECORDER_VERSION}')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    daemon_parser = subparsers.add_parser('daemon', help='Run recorder daemon')
    daemon_parser.add_argument('--config', '-c', help='Configuration file path (TOML)')
    daemon_parser.add_argument('--dev', action='store_true', help='Use development paths')
    daemon_parser.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    paths_parser = subparsers.add_parser('paths', help='Show resolved paths')
    paths_parser.add_argument('--config', '-c', help='Configuration file path (TOML)')
    paths_parser.add_argument('--dev', action='store_true', help='Use development paths')

    channels_parser = subparsers.add_parser('channels', help='Show configured channels')
    channels_parser.add_argument('--config', '-c', help='Configuration file path (TOML)')
    channels_parser.add_argument('--dev', action='store_true', help='Use development paths')

    return parser


def main(argv=None):
    """Main entry point for ais-recorder command"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_console_logging(debug=getattr(args, 'debug', False))

    if args.command == 'daemon':
        sys.exit(run_daemon(args))
    elif args.command == 'paths':
        sys.exit(show_paths(args))
    elif args.command == 'channels':
        sys.exit(show_channels(args))


if __name__ == '__main__':
    main()
