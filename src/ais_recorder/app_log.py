"""
Operational log with generation rotation

The recorder's own log (not the AIS data) lives in a single directory:

    log_dir/
    ├── LogAIS.log      # active
    ├── LogAIS1.log     # previous run / previous rotation
    ├── ...
    └── LogAIS4.log     # oldest kept

Rotation shifts every generation up by one, drops the oldest and starts an
empty active file. It runs once when the recorder starts and again whenever
the periodic check finds the active file over the size threshold.

AppLog is shared by every channel thread and the rotator thread. The active
handle is only touched while holding the lock, so a writer never sees a
handle that is being closed.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import List, Optional, TextIO

from .errors import LogRotationError

logger = logging.getLogger(__name__)

LOG_BASE_NAME = 'LogAIS'
MAX_GENERATIONS = 4
MAX_LOG_BYTES = 102400
CHECK_INTERVAL_SEC = 600.0

LOG_FORMAT = '%(asctime)s UTC %(levelname)s %(name)s: %(message)s'
LOG_DATE_FORMAT = '%Y/%m/%d %H:%M:%S'


class AppLog:
    """
    Size-bounded operational log file.

    Example:
        app_log = AppLog(Path('/var/log/LogAIS'))
        app_log.start()            # rotates and opens a fresh LogAIS.log
        app_log.write_line('hello')
        app_log.rotate_if_needed()
        app_log.close()
    """

    def __init__(self, log_dir: Path, base_name: str = LOG_BASE_NAME,
                 max_generations: int = MAX_GENERATIONS,
                 max_bytes: int = MAX_LOG_BYTES):
        if max_generations < 1:
            raise ValueError("max_generations must be at least 1")

        self.log_dir = Path(log_dir)
        self.base_name = base_name
        self.max_generations = max_generations
        self.max_bytes = max_bytes

        self._lock = threading.Lock()
        self._handle: Optional[TextIO] = None
        self.rotations = 0

    @property
    def path(self) -> Path:
        """Canonical name of the active log"""
        return self.log_dir / f"{self.base_name}.log"

    def generation_path(self, generation: int) -> Path:
        """LogAIS{generation}.log"""
        return self.log_dir / f"{self.base_name}{generation}.log"

    def start(self):
        """Create the log directory and rotate unconditionally"""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogRotationError(f"unable to create log folder {self.log_dir}: {e}") from e
        self.rotate()

    def write_line(self, text: str):
        """Append one line to the active log (dropped if no log is open)"""
        with self._lock:
            if self._handle is None:
                return
            self._handle.write(text.rstrip('\n') + '\n')
            self._handle.flush()

    def size(self) -> int:
        """Size in bytes of the active log file (0 if it does not exist)"""
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def rotate_if_needed(self) -> bool:
        """
        Rotate if the active log exceeds max_bytes.

        Returns:
            True if a rotation happened
        """
        if self.size() > self.max_bytes:
            self.rotate()
            return True
        return False

    def rotate(self):
        """
        Shift generations, close the active log and open a fresh one.

        Missing generations are skipped. Permission errors abort the
        rotation with LogRotationError; other filesystem errors are noted in
        the new log. After a fatal error LogAIS.log is opened for append
        again so the error itself can still be logged.

        Raises:
            LogRotationError: Permission denied, or the new log could not
                be opened
        """
        problems: List[str] = []
        fatal: Optional[LogRotationError] = None
        with self._lock:
            try:
                self._rotate_locked(problems)
                self.rotations += 1
            except LogRotationError as e:
                fatal = e
                self._reopen_for_fatal(problems)

        for problem in problems:
            logger.warning(f"Log rotation: {problem}")
        if fatal is not None:
            raise fatal

    def _rotate_locked(self, problems: List[str]):
        self._discard(self.generation_path(self.max_generations), problems)

        for generation in range(self.max_generations, 1, -1):
            self._shift(self.generation_path(generation - 1),
                        self.generation_path(generation), problems)

        if self._handle is not None:
            try:
                self._handle.close()
            except OSError as e:
                problems.append(f"closing {self.path}: {e}")
            self._handle = None

        self._shift(self.path, self.generation_path(1), problems)

        try:
            self._handle = open(self.path, 'a', encoding='utf-8')
        except OSError as e:
            raise LogRotationError(f"could not open log file {self.path}: {e}") from e

    def _reopen_for_fatal(self, problems: List[str]):
        """Append to whatever LogAIS.log is left so the fatal error still gets logged"""
        if self._handle is not None:
            return
        try:
            self._handle = open(self.path, 'a', encoding='utf-8')
        except OSError as e:
            problems.append(f"reopening {self.path} after failed rotation: {e}")

    @staticmethod
    def _discard(path: Path, problems: List[str]):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except PermissionError as e:
            raise LogRotationError(f"unable to delete old logfile {path}: {e}") from e
        except OSError as e:
            problems.append(f"deleting {path}: {e}")

    @staticmethod
    def _shift(source: Path, target: Path, problems: List[str]):
        try:
            os.replace(source, target)
        except FileNotFoundError:
            pass
        except PermissionError as e:
            raise LogRotationError(f"unable to rename old logfile {source}: {e}") from e
        except OSError as e:
            problems.append(f"renaming {source} to {target}: {e}")

    def close(self):
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None


class AppLogHandler(logging.Handler):
    """logging handler that writes formatted records through an AppLog"""

    def __init__(self, app_log: AppLog, level: int = logging.NOTSET):
        super().__init__(level)
        self.app_log = app_log

    def emit(self, record: logging.LogRecord):
        try:
            self.app_log.write_line(self.format(record))
        except Exception:
            self.handleError(record)


def make_formatter() -> logging.Formatter:
    """UTC formatter used for the operational log"""
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def install_app_log_handler(app_log: AppLog, logger_name: str = 'ais_recorder',
                            level: int = logging.INFO) -> AppLogHandler:
    """
    Route a logger (and its children) to the operational log.

    Returns:
        The installed handler, for removal with remove_app_log_handler()
    """
    handler = AppLogHandler(app_log)
    handler.setFormatter(make_formatter())
    target = logging.getLogger(logger_name)
    target.addHandler(handler)
    target.setLevel(level)
    return handler


def remove_app_log_handler(handler: AppLogHandler, logger_name: str = 'ais_recorder'):
    logging.getLogger(logger_name).removeHandler(handler)


class AppLogRotator:
    """
    Periodic size check of the operational log.

    Runs in its own thread until the stop event is set. A LogRotationError
    ends the thread and is handed to on_fatal so the owner can shut down.
    """

    def __init__(self, app_log: AppLog, stop_event: threading.Event,
                 interval: float = CHECK_INTERVAL_SEC,
                 on_fatal=None):
        self.app_log = app_log
        self.stop_event = stop_event
        self.interval = interval
        self.on_fatal = on_fatal
        self.error: Optional[LogRotationError] = None
        self.thread: Optional[threading.Thread] = None

    def start(self):
        self.thread = threading.Thread(target=self.run, name='log-rotator', daemon=True)
        self.thread.start()

    def run(self):
        while not self.stop_event.wait(timeout=self.interval):
            try:
                if self.app_log.rotate_if_needed():
                    logger.info(f"Log rotated (rotation {self.app_log.rotations})")
            except LogRotationError as e:
                self.error = e
                logger.critical(f"Fatal: {e}")
                if self.on_fatal:
                    self.on_fatal(e)
                return

    def join(self, timeout: Optional[float] = None):
        if self.thread:
            self.thread.join(timeout=timeout)
