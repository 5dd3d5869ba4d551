"""
AIS Sentence Extractor

Finds NMEA-style AIS sentences inside a raw UDP datagram. A sentence starts
with the two bytes ``!A`` and ends two characters after the ``*`` checksum
marker:

    ....!AIVDM,1,1,,B,13aG?P0P00PD;88MD5MTDww@2<0L,0*2C\r\n....
        ^                                          ^  ^
        start sentinel                        marker  end (inclusive)

The scanner is a two-state machine (seeking start, seeking end). Each call
only looks at its own buffer; a sentence split across datagrams is dropped.
Checksums are not verified.
"""

from enum import Enum
from typing import Iterator, Optional, Tuple

START_SENTINEL = b'!A'
CHECKSUM_MARKER = ord('*')
CHECKSUM_LENGTH = 2


class ScanState(Enum):
    SEEKING_START = 0
    SEEKING_END = 1


def scan_frames(buffer: bytes, length: Optional[int] = None) -> Iterator[Tuple[int, int]]:
    """
    Yield (start, end) offsets of each sentence found in buffer[:length].

    ``end`` is exclusive, so ``buffer[start:end]`` is the sentence.

    Args:
        buffer: Datagram bytes (bytes, bytearray or memoryview)
        length: Number of valid bytes in buffer (default: all of it)
    """
    data = bytes(buffer[:length]) if length is not None else bytes(buffer)
    size = len(data)

    state = ScanState.SEEKING_START
    start = 0
    pos = 0

    while pos < size:
        if state is ScanState.SEEKING_START:
            start = data.find(START_SENTINEL, pos)
            if start < 0:
                return
            state = ScanState.SEEKING_END
            pos = start + len(START_SENTINEL)
            continue

        # SEEKING_END
        if data.startswith(START_SENTINEL, pos):
            # New sentence began before this one was terminated: drop the candidate
            state = ScanState.SEEKING_START
            continue

        if data[pos] == CHECKSUM_MARKER:
            end = pos + 1 + CHECKSUM_LENGTH
            if end > size:
                # Checksum cut off by the end of the datagram
                return
            yield start, end
            state = ScanState.SEEKING_START
            pos = end
            continue

        pos += 1


def extract_sentences(buffer: bytes, length: Optional[int] = None) -> Iterator[bytes]:
    """
    Yield the raw bytes of each sentence found in buffer[:length].

    Example:
        >>> list(extract_sentences(b'xx!AIVDM,1,1,,B,abc,0*1A\\r\\n'))
        [b'!AIVDM,1,1,,B,abc,0*1A']
    """
    data = bytes(buffer[:length]) if length is not None else bytes(buffer)
    for start, end in scan_frames(data):
        yield data[start:end]
