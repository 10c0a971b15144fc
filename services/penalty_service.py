"""
Penalty service

Two scoring models, one per family, kept as separate strategies:

- FixedDeductionPenalty (zzz): every full step over the cost limit deducts a
  fixed number of points; higher adjusted score wins.
- CycleBreakpointPenalty (hsr): team cost divided by a breakpoint is added as
  a cycle term; lower adjusted score wins.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Union

from config import get_config
from models.draft_session import SIDES, DraftSession, SessionConfig
from models.turn import DraftFamily, Side
from utils.draft_helpers import round2

logger = logging.getLogger(f'{__name__}.PenaltyService')


class FixedDeductionPenalty:
    """Fixed deduction per step of team cost over the limit."""

    higher_wins = True

    def __init__(self, cost_limit: float, penalty_per_point: int = 2500, step: float = 0.25):
        self.cost_limit = cost_limit
        self.penalty_per_point = penalty_per_point
        self.step = step

    def overage(self, total_cost: float) -> float:
        return round2(max(0.0, total_cost - self.cost_limit))

    def penalty(self, total_cost: float) -> int:
        """
        Points deducted for a team cost.

        Examples:
            >>> FixedDeductionPenalty(6).penalty(6.75)
            7500
        """
        steps = math.floor(round(self.overage(total_cost) / self.step, 6))
        return int(steps * self.penalty_per_point)

    def adjusted_score(self, session: DraftSession, side: Union[Side, str], total_cost: float) -> float:
        return sum(session.scores_for(side)) - self.penalty(total_cost)


class CycleBreakpointPenalty:
    """Team cost divided by a breakpoint, added as extra cycles."""

    higher_wins = False

    def __init__(self, breakpoint: int = 4):
        self.breakpoint = breakpoint

    def penalty(self, total_cost: float) -> float:
        """
        Cycle term for a team cost.

        Examples:
            >>> CycleBreakpointPenalty(4).penalty(7.5)
            1.88
        """
        return round2(total_cost / max(1, self.breakpoint))

    def adjusted_score(self, session: DraftSession, side: Union[Side, str], total_cost: float) -> float:
        key = Side(side).value
        score = float(sum(session.scores_for(key)))
        if session.apply_cycle_penalty.get(key, True):
            score += self.penalty(total_cost)
        score += float(session.extra_cycle_penalty.get(key, 0.0))
        if session.apply_timer_penalty.get(key, True):
            score += session.timer.penalty_count.get(key, 0)
        return round2(score)


PenaltyStrategy = Union[FixedDeductionPenalty, CycleBreakpointPenalty]


@dataclass
class MatchResult:
    """Adjusted totals and outcome of a match."""
    costs: Dict[str, float]
    penalties: Dict[str, float]
    adjusted: Dict[str, float]
    winner: Optional[str] = None
    higher_wins: bool = True

    @property
    def is_draw(self) -> bool:
        return self.winner is None


def penalty_for_family(config: SessionConfig) -> PenaltyStrategy:
    """Pick the penalty strategy for a session configuration."""
    if DraftFamily(config.family) == DraftFamily.ZZZ:
        cost_limit = config.cost_limit or get_config().cost_limit_for(config.family, config.team_size)
        return FixedDeductionPenalty(cost_limit, config.penalty_per_point, get_config().penalty_step)
    return CycleBreakpointPenalty(config.cycle_breakpoint)


def score_match(session: DraftSession, costs: Dict[str, float]) -> MatchResult:
    """
    Compute adjusted totals and the winner.

    Args:
        session: Session with scores and penalty switches
        costs: Team cost per side tag

    Returns:
        MatchResult (winner None on a tie)
    """
    strategy = penalty_for_family(session.config)
    penalties = {side: strategy.penalty(costs.get(side, 0.0)) for side in SIDES}
    adjusted = {
        side: strategy.adjusted_score(session, side, costs.get(side, 0.0))
        for side in SIDES
    }

    blue, red = adjusted[Side.BLUE.value], adjusted[Side.RED.value]
    winner = None
    if blue != red:
        blue_ahead = blue > red if strategy.higher_wins else blue < red
        winner = Side.BLUE.value if blue_ahead else Side.RED.value

    logger.debug(f"Draft {session.key}: adjusted {adjusted}, winner {winner or 'draw'}")
    return MatchResult(
        costs=dict(costs),
        penalties=penalties,
        adjusted=adjusted,
        winner=winner,
        higher_wins=strategy.higher_wins,
    )
