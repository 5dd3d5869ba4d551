"""
Dated File Router - per-channel, per-UTC-day output files

Directory structure:
    data_root/
    └── {YYYY}/
        └── {MM}/
            └── {DD}/
                └── {YYYYMMDD}-{port}.csv

A new file gets the full VDR header block. A file that already exists (the
recorder was restarted on the same UTC day) is appended to after a short
"Restarted" marker; it is never truncated.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from .channel_config import ChannelConfig
from .errors import ChannelError, FailureKind
from .records import LogRecord, new_file_header, restart_header


def day_directory(data_root: Path, day: date) -> Path:
    """{data_root}/{YYYY}/{MM}/{DD}/"""
    return Path(data_root) / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"


def data_file_name(day: date, port: int) -> str:
    """{YYYYMMDD}-{port}.csv"""
    return f"{day.strftime('%Y%m%d')}-{port}.csv"


def data_file_path(data_root: Path, day: date, port: int) -> Path:
    return day_directory(data_root, day) / data_file_name(day, port)


class DatedFileRouter:
    """
    Owns the current output file of one channel.

    Not thread safe: a router belongs to exactly one ChannelWorker.

    Example:
        router = DatedFileRouter(Path('/var/local/LogAIS'), channel)
        now = utc_now()
        if router.needs_switch(now.date()):
            router.switch(now)
        router.write_records(records)
    """

    def __init__(self, data_root: Path, channel: ChannelConfig,
                 logger: Optional[logging.Logger] = None):
        self.data_root = Path(data_root)
        self.channel = channel
        self.logger = logger or logging.getLogger(__name__)

        self.current_date: Optional[date] = None
        self.current_path: Optional[Path] = None
        self._handle: Optional[BinaryIO] = None

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def needs_switch(self, today: date) -> bool:
        """True if no file is open yet or the UTC date has changed"""
        return self._handle is None or today != self.current_date

    def switch(self, now: datetime):
        """
        Close the current file and open the file for now's UTC date.

        Raises:
            ChannelError: Directory or file could not be created, or the
                header could not be written
        """
        self.close()

        today = now.date()
        directory = day_directory(self.data_root, today)
        path = directory / data_file_name(today, self.channel.port)

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ChannelError(FailureKind.OPEN,
                               f"unable to make output directory {directory}: {e}",
                               port=self.channel.port) from e

        try:
            handle = open(path, 'xb')
            header = new_file_header(self.channel.port, self.channel.stream_name, now)
            self.logger.info(f"Creating new file: {path}")
        except FileExistsError:
            try:
                handle = open(path, 'ab')
            except OSError as e:
                raise ChannelError(FailureKind.OPEN,
                                   f"could not open output file {path}: {e}",
                                   port=self.channel.port) from e
            header = restart_header(now)
            self.logger.info(f"Appending to file: {path}")
        except OSError as e:
            raise ChannelError(FailureKind.OPEN,
                               f"could not open output file {path}: {e}",
                               port=self.channel.port) from e

        self._handle = handle
        self.current_path = path
        self.current_date = today

        try:
            handle.write(header)
            handle.flush()
        except OSError as e:
            self.close()
            raise ChannelError(FailureKind.WRITE,
                               f"error writing header to {path}: {e}",
                               port=self.channel.port) from e

    def write_records(self, records: Iterable[LogRecord]) -> int:
        """
        Append records to the current file and flush.

        Returns:
            Number of records written

        Raises:
            ChannelError: No file is open, or the write failed
        """
        if self._handle is None:
            raise ChannelError(FailureKind.WRITE, "no output file open",
                               port=self.channel.port)

        count = 0
        try:
            for record in records:
                self._handle.write(record.to_bytes())
                count += 1
            self._handle.flush()
        except OSError as e:
            path = self.current_path
            self.close()
            raise ChannelError(FailureKind.WRITE,
                               f"error writing to output file {path}: {e}",
                               port=self.channel.port) from e
        return count

    def close(self):
        """Close the current file; errors from closing are ignored"""
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as e:
            self.logger.debug(f"Ignoring close error on {self.current_path}: {e}")
