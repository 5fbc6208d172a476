"""
Text output writers.

The simulator reports human-facing messages (e.g. staging) through a
single `write_line` capability, separate from diagnostic logging.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO


class TextOutputWriter:
    """Receives one line of text at a time."""

    def write_line(self, message: str):
        raise NotImplementedError


class NullTextOutputWriter(TextOutputWriter):
    """Discards all output."""

    def write_line(self, message: str):
        pass


class LoggingTextOutputWriter(TextOutputWriter):
    """Forwards lines to a logger at INFO."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger if logger is not None else logging.getLogger("spacesim.output")

    def write_line(self, message: str):
        self.logger.info(message)


class ConsoleTextOutputWriter(TextOutputWriter):
    """Prints lines to a stream (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def write_line(self, message: str):
        print(message, file=self.stream if self.stream is not None else sys.stdout)


class RecordingTextOutputWriter(TextOutputWriter):
    """Keeps every line in memory."""

    def __init__(self):
        self.lines: list[str] = []

    def write_line(self, message: str):
        self.lines.append(message)
