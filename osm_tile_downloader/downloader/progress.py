"""
Progress accounting for tile runs, reported in 10% steps.
"""
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProgressState:
    completed_count: int = 0
    total_expected: int = 0
    last_reported_decile: int = 0

    @property
    def decile(self) -> Optional[int]:
        """Completed share rounded down to a multiple of ten, None when nothing is expected."""
        if self.total_expected <= 0:
            return None
        percentage = (self.completed_count * 100) // self.total_expected
        return (percentage // 10) * 10


class ProgressTracker:
    """Counts processed tiles and announces each new decile exactly once."""

    def __init__(self, total_expected: int, notify: Optional[Callable[[str], None]] = None):
        """Initialize the tracker.

        Args:
            total_expected: Number of tiles the run will visit
            notify: Called with the progress message, logs at info level by default
        """
        self.state = ProgressState(total_expected=total_expected)
        self.notify = notify or logger.info

    def snapshot(self) -> ProgressState:
        """Copy of the current counters."""
        return replace(self.state)

    def advance(self) -> Optional[int]:
        """Count one more tile and report progress.

        Returns:
            The decile announced by this call, None if nothing was announced
        """
        self.state.completed_count += 1
        return self.report()

    def report(self) -> Optional[int]:
        decile = self.state.decile
        if decile is None or decile == self.state.last_reported_decile:
            return None
        self.state.last_reported_decile = decile
        self.notify(f"{decile}% complete")
        return decile
