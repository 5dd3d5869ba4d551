"""
Categorized failures for the AIS recorder.

Channel-level failures are returned as values by ChannelWorker.run() so the
Supervisor can decide what happens to the process. Rotation and startup
failures are raised.
"""

from enum import Enum
from typing import Optional


class FailureKind(Enum):
    """What went wrong"""
    BIND = "bind"
    REBIND = "rebind"
    OPEN = "open"
    WRITE = "write"
    ROTATE = "rotate"
    CONFIG = "config"
    PLATFORM = "platform"


class RecorderError(Exception):
    """Base failure with a category and human-readable detail"""

    def __init__(self, kind: FailureKind, detail: str, port: Optional[int] = None):
        self.kind = kind
        self.detail = detail
        self.port = port
        super().__init__(str(self))

    def __str__(self):
        if self.port is not None:
            return f"{self.kind.value} failure on port {self.port}: {self.detail}"
        return f"{self.kind.value} failure: {self.detail}"


class ChannelError(RecorderError):
    """Fatal to one channel only"""


class LogRotationError(RecorderError):
    """Operational log could not be rotated; fatal to the process"""

    def __init__(self, detail: str):
        super().__init__(FailureKind.ROTATE, detail)


class StartupError(RecorderError):
    """Configuration, platform or directory problem before channels start"""
