"""
Version information for the AIS recorder.

All modules import the version from here rather than defining their own.
"""

RECORDER_VERSION = "1.0.2"
