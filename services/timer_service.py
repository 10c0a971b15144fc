"""
Timer service

Draft clocks are never ticked by a background task. The session stores a
baseline (grace left, reserve left per side, updated_at) and every reader
reconstructs the live values from the elapsed time since that baseline.

Burn order for the active side: the shared per-move grace first, then the
side's reserve. Once both are exhausted the side enters repeating penalty
cycles of one grace window each.
"""
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from config import get_config
from models.draft_session import SIDES, DraftSession
from utils.draft_helpers import is_first_ban_for_side

logger = logging.getLogger(f'{__name__}.TimerService')


@dataclass
class ClockReading:
    """Result of reconciling one side's clock."""
    grace: float
    reserve: float
    cycles: int = 0


@dataclass
class ClockDisplay:
    """Live clock values for rendering."""
    grace: float
    reserve: Dict[str, float]
    cycles: Dict[str, int] = field(default_factory=lambda: {side: 0 for side in SIDES})
    penalty_count: Dict[str, int] = field(default_factory=lambda: {side: 0 for side in SIDES})
    active_side: Optional[str] = None
    running: bool = False


def reconcile_clock(grace_left: float, reserve_left: float, elapsed: float,
                    grace_window: float = 30) -> ClockReading:
    """
    Burn elapsed seconds from grace, then reserve, then count penalty cycles.

    Examples:
        >>> reconcile_clock(30, 480, 10)
        ClockReading(grace=20, reserve=480, cycles=0)

        >>> reconcile_clock(30, 0, 75)
        ClockReading(grace=15, reserve=0, cycles=2)
    """
    grace = max(0, grace_left)
    reserve = max(0, reserve_left)
    remaining = max(0, elapsed)

    if remaining <= grace:
        return ClockReading(grace=grace - remaining, reserve=reserve)

    remaining -= grace
    if remaining <= reserve:
        return ClockReading(grace=0, reserve=reserve - remaining)

    remaining -= reserve
    # The first cycle starts the moment both clocks hit zero
    cycles = 1 + math.floor(remaining / grace_window)
    within = remaining % grace_window
    return ClockReading(grace=grace_window - within, reserve=0, cycles=cycles)


class TimerService:
    """Clock reconstruction and write-back for draft sessions."""

    def __init__(self, grace_window: Optional[float] = None):
        self._grace_window = grace_window

    @property
    def grace_window(self) -> float:
        if self._grace_window is not None:
            return self._grace_window
        return get_config().grace_window_seconds

    def _burning_side(self, session: DraftSession) -> Optional[str]:
        """Side whose clock is running, or None when no clock burns."""
        timer = session.timer
        if not timer.enabled or session.draft_complete or timer.updated_at is None:
            return None
        side = session.active_side
        if side is None or timer.is_paused(side):
            return None
        if is_first_ban_for_side(session.current_turn, session.sequence):
            return None
        return side.value

    def display_clocks(self, session: DraftSession, now: Optional[float] = None) -> ClockDisplay:
        """
        Reconstruct live clock values without touching the session.

        Pending cycles since the baseline are reported in cycles and already
        included in penalty_count.
        """
        timer = session.timer
        now = time.time() if now is None else now
        active = session.active_side.value if session.active_side else None
        display = ClockDisplay(
            grace=timer.grace_left,
            reserve={side: timer.reserve_for(side) for side in SIDES},
            penalty_count={side: int(timer.penalty_count.get(side, 0)) for side in SIDES},
            active_side=active,
        )

        side = self._burning_side(session)
        if side is None:
            return display

        elapsed = max(0.0, now - timer.updated_at)
        reading = reconcile_clock(timer.grace_left, timer.reserve_for(side), elapsed, self.grace_window)
        display.grace = reading.grace
        display.reserve[side] = reading.reserve
        display.cycles[side] = reading.cycles
        display.penalty_count[side] += reading.cycles
        display.running = True
        return display

    def materialize_burn(self, session: DraftSession, now: Optional[float] = None) -> bool:
        """
        Write the reconciled clock back into the session and move the baseline.

        New penalty cycles are credited to the side exactly once: the baseline
        moves with them, so calling this twice at the same instant credits nothing
        the second time.

        Returns:
            True if a running clock was written back
        """
        timer = session.timer
        now = time.time() if now is None else now

        side = self._burning_side(session)
        if side is None:
            if timer.enabled:
                timer.updated_at = now
            return False

        elapsed = max(0.0, now - timer.updated_at)
        reading = reconcile_clock(timer.grace_left, timer.reserve_for(side), elapsed, self.grace_window)

        timer.grace_left = reading.grace
        timer.reserve_left = {**timer.reserve_left, side: reading.reserve}
        if reading.cycles:
            timer.penalty_count = {**timer.penalty_count, side: timer.penalty_count.get(side, 0) + reading.cycles}
            logger.info(
                f"Draft {session.key}: side {side} charged {reading.cycles} timer cycle(s) "
                f"on turn {session.current_turn}"
            )
        timer.updated_at = now
        return True

    def reset_grace(self, session: DraftSession, now: Optional[float] = None) -> None:
        """Start a fresh grace window for the turn that just began."""
        timer = session.timer
        if not timer.enabled:
            return
        timer.grace_left = float(self.grace_window)
        timer.updated_at = time.time() if now is None else now

    def configure(self, session: DraftSession, enabled: bool,
                  reserve_seconds: Optional[int] = None, now: Optional[float] = None) -> None:
        """
        Turn the clock on or off, optionally resetting both reserves.
        """
        timer = session.timer
        now = time.time() if now is None else now
        if reserve_seconds is not None:
            timer.reserve_seconds = reserve_seconds
            timer.reserve_left = {side: float(reserve_seconds) for side in SIDES}
            timer.grace_left = float(self.grace_window)
        timer.enabled = enabled
        timer.updated_at = now if enabled else None


timer_service = TimerService()
