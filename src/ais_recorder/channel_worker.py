#!/usr/bin/env python3
"""
Channel Worker - UDP port → dated CSV files

One worker per configured port. Responsibilities:
1. Bind a UDP socket on the port
2. Switch output files when the UTC date changes, both between reads and
   when a datagram arrives after midnight during a read
3. Read datagrams with a bounded wait so the date and stop signal get
   checked at least once a second
4. Extract AIS sentences and append one timestamped row per sentence
5. Survive read errors by re-opening the socket once

Fatal conditions (bind, rebind, open, write) end this worker only and are
returned from run() as a ChannelError; the worker never exits the process.
"""

import logging
import socket
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .channel_config import ChannelConfig
from .dated_file_router import DatedFileRouter
from .errors import ChannelError, FailureKind
from .records import LogRecord, utc_now
from .sentence_extractor import extract_sentences

BUFFER_SIZE = 6144
READ_TIMEOUT = 1.0
LARGE_PACKET_BYTES = 1460


class ChannelWorker:
    """
    Records one UDP port to per-day files.

    Socket lifetime and file lifetime are independent: re-opening the socket
    does not switch files and a date change does not touch the socket.

    Example:
        stop = threading.Event()
        worker = ChannelWorker(ChannelConfig(10110, 'VHF1'), Path('/var/local/LogAIS'),
                               stop_event=stop)
        error = worker.run()   # blocks until stop is set or a fatal error
    """

    def __init__(self, channel: ChannelConfig, data_root: Path,
                 stop_event: Optional[threading.Event] = None,
                 logger: Optional[logging.Logger] = None,
                 clock: Callable[[], datetime] = utc_now,
                 read_timeout: float = READ_TIMEOUT,
                 buffer_size: int = BUFFER_SIZE,
                 large_packet_bytes: int = LARGE_PACKET_BYTES):
        self.channel = channel
        self.port = channel.port
        self.stop_event = stop_event or threading.Event()
        self.logger = logger or logging.getLogger(f"{__name__}.{channel.port}")
        self.clock = clock
        self.read_timeout = read_timeout
        self.large_packet_bytes = large_packet_bytes

        self.router = DatedFileRouter(data_root, channel, logger=self.logger)
        self.sock: Optional[socket.socket] = None
        self._buffer = bytearray(buffer_size)

        # Counters
        self.packets_received = 0
        self.sentences_written = 0
        self.reconnects = 0

    def _open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(('', self.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.read_timeout)
        return sock

    def _close_socket(self):
        sock, self.sock = self.sock, None
        if sock is not None:
            sock.close()

    def _reconnect(self, error: OSError):
        """
        Close the socket and bind the same port once more.

        Raises:
            ChannelError: The rebind failed
        """
        self.logger.info(f"{self.port} UDP read error: {error!r}")
        self.logger.info(f"{self.port} will re-open port")
        self._close_socket()
        try:
            self.sock = self._open_socket()
        except OSError as e:
            raise ChannelError(FailureKind.REBIND,
                               f"can't connect to UDP input: {e}", port=self.port) from e
        self.reconnects += 1
        self.logger.info(f"{self.port} input reconnected")

    def run(self) -> Optional[ChannelError]:
        """
        Record until the stop event is set or a fatal error occurs.

        Returns:
            None after a requested stop, otherwise the fatal ChannelError
        """
        try:
            self.sock = self._open_socket()
        except OSError as e:
            error = ChannelError(FailureKind.BIND,
                                 f"can't connect to UDP input, probably already in use: {e}",
                                 port=self.port)
            self.logger.error(f"Channel not started: {error}")
            return error

        self.logger.info(f"{self.port} connected for input ({self.channel.stream_name})")

        try:
            self._receive_loop()
        except ChannelError as error:
            self.logger.error(f"Channel stopped: {error}")
            return error
        finally:
            self._close_socket()
            self.router.close()
            self.logger.info(f"{self.port} ending process for input port")

        return None

    def _receive_loop(self):
        """Main datagram loop; raises ChannelError on fatal conditions"""
        while not self.stop_event.is_set():
            now = self.clock()
            if self.router.needs_switch(now.date()):
                self.router.switch(now)

            if self.stop_event.is_set():
                break

            try:
                nbytes = self.sock.recv_into(self._buffer)
            except socket.timeout:
                continue
            except OSError as e:
                self._reconnect(e)
                continue

            self.packets_received += 1
            if nbytes > self.large_packet_bytes:
                self.logger.info(f"{self.port} large packet received {nbytes} bytes")

            # The read may have started on the previous UTC day
            now = self.clock()
            if self.router.needs_switch(now.date()):
                self.router.switch(now)

            self.sentences_written += self.router.write_records(
                LogRecord(timestamp=now, port=self.port, sentence=sentence)
                for sentence in extract_sentences(self._buffer, nbytes)
            )
