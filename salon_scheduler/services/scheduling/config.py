# salon_scheduler/services/scheduling/config.py
"""
Scheduling configuration: booking grid, durations and calendar geometry.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings


PALETTE = (
    "bg-indigo-100 border-indigo-300 text-indigo-900",
    "bg-pink-100 border-pink-300 text-pink-900",
    "bg-emerald-100 border-emerald-300 text-emerald-900",
    "bg-amber-100 border-amber-300 text-amber-900",
    "bg-sky-100 border-sky-300 text-sky-900",
    "bg-violet-100 border-violet-300 text-violet-900",
    "bg-rose-100 border-rose-300 text-rose-900",
)


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Configuration for the booking engine and calendar grid.

    Attributes:
        grid_step_minutes: Booking start/end snap step
        min_duration_minutes: Shortest bookable span
        default_duration_minutes: Duration when neither caller nor service gives one
        slot_minutes: Visual calendar slot size
        px_per_slot: Pixel height of one visual slot
        min_block_px: Smallest rendered block height
        conflict_retry_attempts: Optimistic write retries per command
        max_undo_window_seconds: Upper bound for undo-cancel grace windows
    """
    grid_step_minutes: int = 5
    min_duration_minutes: int = 10
    default_duration_minutes: int = 30
    slot_minutes: int = 30
    px_per_slot: int = 64
    min_block_px: int = 32
    conflict_retry_attempts: int = 3
    max_undo_window_seconds: int = 300
    palette: tuple[str, ...] = PALETTE

    def __post_init__(self):
        """Validate configuration."""
        if self.grid_step_minutes <= 0:
            raise ValueError(f"grid_step_minutes must be positive, got {self.grid_step_minutes}")
        if self.min_duration_minutes < self.grid_step_minutes:
            raise ValueError(
                f"min_duration_minutes ({self.min_duration_minutes}) "
                f"must be >= grid_step_minutes ({self.grid_step_minutes})"
            )
        if self.default_duration_minutes < self.min_duration_minutes:
            raise ValueError(
                f"default_duration_minutes ({self.default_duration_minutes}) "
                f"must be >= min_duration_minutes ({self.min_duration_minutes})"
            )
        if self.slot_minutes <= 0 or self.px_per_slot <= 0:
            raise ValueError("slot_minutes and px_per_slot must be positive")
        if self.conflict_retry_attempts < 1:
            raise ValueError("conflict_retry_attempts must be >= 1")
        if not self.palette:
            raise ValueError("palette must not be empty")

    @property
    def px_per_minute(self) -> float:
        return self.px_per_slot / self.slot_minutes

    def minutes_to_px(self, minutes: float) -> float:
        """Convert grid minutes to a pixel offset."""
        return (minutes / self.slot_minutes) * self.px_per_slot


@lru_cache
def get_scheduling_config() -> SchedulingConfig:
    """Get scheduling configuration (singleton)."""
    return SchedulingConfig(
        conflict_retry_attempts=settings.conflict_retry_attempts,
        max_undo_window_seconds=settings.max_undo_window_seconds,
    )
