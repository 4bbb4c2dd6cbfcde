"""
ProgressState — step counter for observability only.

Never consulted for control flow.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class ProgressState:
    """Monotonic ``current/total`` step counter."""

    total_steps: int
    current_step: int = 0

    @property
    def percentage(self) -> int:
        if self.total_steps <= 0:
            return 100
        return min(100, (self.current_step * 100) // self.total_steps)

    def advance(self, step_name: str) -> int:
        """Mark one more step done and log the new percentage."""
        self.current_step += 1
        pct = self.percentage
        logger.info("Progress: %s - %d%% complete", step_name, pct)
        return pct
