"""Utilities for timing code."""

from __future__ import annotations

import time
from typing import Optional, Type
from types import TracebackType


class Profile:
    """Helper context manager for timing code.

    While the context is active, `elapsed` reports the running time, which lets a training loop
    enforce a wall-clock budget without waiting for the context to exit.
    """

    def __init__(self) -> None:
        """Initialize the profile."""
        self.start: float = 0
        self.end: float = 0
        self.duration: float = 0
        self.running = False

    def __enter__(self) -> Profile:
        """Enter the context."""
        self.start = time.monotonic()
        self.running = True
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        """Exit the context."""
        self.end = time.monotonic()
        self.duration = self.end - self.start
        self.running = False

    @property
    def elapsed(self) -> float:
        """Seconds since the context was entered, or the final duration once it has exited."""
        if self.running:
            return time.monotonic() - self.start
        return self.duration

    @property
    def seconds(self) -> float:
        """The profiled duration in seconds."""
        return self.duration

    @property
    def milliseconds(self) -> float:
        """The profiled duration in milliseconds."""
        return self.seconds * 1000.0

    @property
    def seconds_formatted(self) -> str:
        """The profiled duration in seconds, formatted as a string."""
        return f"{self.elapsed:.3f}s"
