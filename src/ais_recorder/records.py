"""
Output record and header formats for AIS data files.

Files are close to the OpenCPN VDR log format, with one row per sentence:

    2024-05-01T00:00:00.123Z,AIS,"UDP port:10110","!AIVDM,1,1,,B,abc,0*1A"

Lines end in CRLF. Rows are built as bytes so sentences are written exactly
as they arrived.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from .version import RECORDER_VERSION

PROTOCOL_TAG = 'AIS'
LINE_END = '\r\n'
VDR_FORMAT_URL = 'https://opencpn-manuals.github.io/main/vdr/log_format.html'


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """
    ISO-8601 UTC timestamp with millisecond precision (truncated).

    Example:
        >>> format_timestamp(datetime(2024, 5, 1, 0, 0, 0, 123456, tzinfo=timezone.utc))
        '2024-05-01T00:00:00.123Z'
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class LogRecord:
    """One extracted sentence with its extraction time"""
    timestamp: datetime
    port: int
    sentence: bytes

    def to_bytes(self) -> bytes:
        prefix = f'{format_timestamp(self.timestamp)},{PROTOCOL_TAG},"UDP port:{self.port}","'
        return prefix.encode('ascii') + self.sentence + ('"' + LINE_END).encode('ascii')


def new_file_header(port: int, stream_name: str, created: datetime) -> bytes:
    """Header block written at the top of a newly created data file"""
    lines = [
        "# VDR Log File refer:",
        f"# {VDR_FORMAT_URL}",
        f"# Created: {format_timestamp(created)}",
        f"# LogAIS ais-recorder {RECORDER_VERSION}",
        f'# NMEA0183 on UDP port {port} "{stream_name}"',
        "# received_at,protocol,msg_type,source,raw_data",
        "# actual format in use differs from documented format:",
        "timestamp,type,id,message",
    ]
    return (LINE_END.join(lines) + LINE_END).encode('utf-8')


def restart_header(restarted: datetime) -> bytes:
    """Marker written when appending to a file left by an earlier run"""
    return f"# Restarted: {format_timestamp(restarted)}{LINE_END}".encode('ascii')
