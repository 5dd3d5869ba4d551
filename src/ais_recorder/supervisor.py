"""
Supervisor - starts one ChannelWorker thread per configured port

Owns the operational log, the log rotator and the shared stop event. Only
the Supervisor decides when the process is finished:
- a SIGINT/SIGTERM stops every channel (exit status 0)
- a fatal log rotation error stops every channel (exit status 1)
- otherwise it waits until every channel has ended on its own (exit status 1)
"""

import logging
import signal
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .app_log import AppLog, AppLogRotator
from .channel_config import ChannelConfig
from .channel_worker import ChannelWorker
from .config_utils import RecorderSettings
from .errors import LogRotationError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Supervisor:
    """
    Runs all channels until stopped.

    Example:
        supervisor = Supervisor(channels, data_root, app_log, settings)
        status = supervisor.run()
    """

    def __init__(self, channels: List[ChannelConfig], data_root: Path,
                 app_log: AppLog, settings: Optional[RecorderSettings] = None):
        self.channels = channels
        self.data_root = Path(data_root)
        self.app_log = app_log
        self.settings = settings or RecorderSettings()

        self.stop_event = threading.Event()
        self.rotator = AppLogRotator(app_log, self.stop_event,
                                     interval=self.settings.log_check_interval,
                                     on_fatal=self._on_rotation_failure)

        self.workers: Dict[int, ChannelWorker] = {}
        self.threads: Dict[int, threading.Thread] = {}
        self.results: Dict[int, Optional[Exception]] = {}
        self._results_lock = threading.Lock()
        self.fatal_error: Optional[LogRotationError] = None
        self.stop_requested = False

    def _make_worker(self, channel: ChannelConfig) -> ChannelWorker:
        return ChannelWorker(
            channel,
            self.data_root,
            stop_event=self.stop_event,
            logger=logging.getLogger(f"ais_recorder.channel.{channel.port}"),
            read_timeout=self.settings.read_timeout,
            buffer_size=self.settings.buffer_size,
            large_packet_bytes=self.settings.large_packet_bytes,
        )

    def _run_worker(self, worker: ChannelWorker):
        try:
            error = worker.run()
        except Exception as e:
            logger.error(f"Channel {worker.port} crashed: {e}", exc_info=True)
            error = e
        with self._results_lock:
            self.results[worker.port] = error

    def _on_rotation_failure(self, error: LogRotationError):
        self.fatal_error = error
        self.stop_event.set()

    def start(self):
        """Start the log rotator and every channel thread"""
        self.rotator.start()

        for channel in self.channels:
            worker = self._make_worker(channel)
            thread = threading.Thread(target=self._run_worker, args=(worker,),
                                      name=f"channel-{channel.port}", daemon=True)
            self.workers[channel.port] = worker
            self.threads[channel.port] = thread
            thread.start()
            logger.info(f"Starting channel {channel.port} \"{channel.stream_name}\"")

        logger.info("All channels started")

    def stop(self):
        """Ask every channel and the rotator to finish"""
        self.stop_requested = True
        self.stop_event.set()

    def wait(self) -> int:
        """
        Block until every channel thread has ended.

        Returns:
            Exit status
        """
        for thread in self.threads.values():
            # Short joins keep the main thread responsive to signals
            while thread.is_alive():
                thread.join(timeout=1.0)

        self.stop_event.set()
        self.rotator.join(timeout=2.0)

        failed = [port for port, error in self.results.items() if error is not None]
        if failed:
            logger.info(f"Channels ended with errors: {sorted(failed)}")

        if self.fatal_error is not None:
            logger.critical(f"Exiting after log failure: {self.fatal_error}")
            return EXIT_FAILURE
        if self.stop_requested:
            logger.info("Exiting application after stop request")
            return EXIT_OK
        logger.info("Exiting application, no channels left running")
        return EXIT_FAILURE

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals"""
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()

    def run(self) -> int:
        """Start, wait for all channels, close the log. Returns exit status."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        self.start()
        try:
            return self.wait()
        finally:
            self.app_log.close()
