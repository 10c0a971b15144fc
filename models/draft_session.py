"""
Draft session models

DraftSession aggregates everything a spectator needs to render a live draft:
the turn sequence, the cursor, resolved picks, scores, locks and timer state.
Per-side values are keyed by the side tag ("B" / "R").
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union

from pydantic import Field, ValidationInfo, field_validator, model_validator

from models.base import DraftBaseModel
from models.cost_table import CostPreset
from models.featured import FeaturedAttachment, FeaturedOverride, FeaturedPrimary, parse_featured
from models.pick import Pick
from models.turn import DraftFamily, Side, TurnToken

SIDES = (Side.BLUE.value, Side.RED.value)
_SIDE_DEFAULTS = {"reserve_left": 0.0, "paused": False, "penalty_count": 0}


def _per_side(value) -> Dict[str, object]:
    return {side: value for side in SIDES}


def _side_key(side: Union[Side, str]) -> str:
    return Side(side).value


class TimerState(DraftBaseModel):
    """Stored clock baseline. Live values are reconstructed from updated_at."""

    enabled: bool = Field(False, description="Whether the draft clock runs")
    reserve_seconds: int = Field(0, ge=0, description="Configured reserve per side")
    reserve_left: Dict[str, float] = Field(default_factory=lambda: _per_side(0.0))
    grace_left: float = Field(30.0, ge=0, description="Shared per-move grace remaining")
    paused: Dict[str, bool] = Field(default_factory=lambda: _per_side(False))
    updated_at: Optional[float] = Field(None, description="Epoch seconds of the last clock sync")
    penalty_count: Dict[str, int] = Field(default_factory=lambda: _per_side(0))

    @field_validator("reserve_left", "paused", "penalty_count", mode="before")
    @classmethod
    def fill_missing_sides(cls, v, info: ValidationInfo):
        """Older payloads may omit one side."""
        if v is None:
            return v
        default = _SIDE_DEFAULTS[info.field_name]
        data = dict(v)
        for side in SIDES:
            data.setdefault(side, default)
        return data

    def reserve_for(self, side: Union[Side, str]) -> float:
        return float(self.reserve_left.get(_side_key(side), 0.0))

    def is_paused(self, side: Union[Side, str]) -> bool:
        return bool(self.paused.get(_side_key(side), False))


class SessionConfig(DraftBaseModel):
    """Session configuration fixed at creation time."""

    family: DraftFamily = Field(DraftFamily.HSR, description="Draft format family")
    team_size: int = Field(2, ge=2, le=3, description="Players per side")
    team1_name: str = Field("Blue Team", description="Blue side name, 'A|B' for player lists")
    team2_name: str = Field("Red Team", description="Red side name, 'A|B' for player lists")
    preset: CostPreset = Field(default_factory=CostPreset, description="Session cost preset")
    featured: List[FeaturedOverride] = Field(default_factory=list, description="Featured overrides")
    cost_limit: float = Field(0.0, ge=0, description="Team cost limit")
    penalty_per_point: int = Field(2500, ge=0, description="Deduction per quarter point over the limit")
    cycle_breakpoint: int = Field(4, ge=1, description="Team cost divisor for the cycle term")
    timer_enabled: bool = Field(False, description="Run the draft clock")
    reserve_seconds: int = Field(0, ge=0, description="Reserve time per side")

    @field_validator("featured", mode="before")
    @classmethod
    def parse_legacy_featured(cls, v):
        """Accept legacy front-end featured entries."""
        if not v:
            return []
        return [item if not isinstance(item, dict) else parse_featured(item) for item in v]

    def featured_primary(self, unit_id: str) -> Optional[FeaturedPrimary]:
        for entry in self.featured:
            if isinstance(entry, FeaturedPrimary) and entry.unit_id == unit_id:
                return entry
        return None

    def featured_attachment(self, unit_id: str) -> Optional[FeaturedAttachment]:
        for entry in self.featured:
            if isinstance(entry, FeaturedAttachment) and entry.unit_id == unit_id:
                return entry
        return None

    @property
    def universal_bans(self) -> set:
        """Primary units nobody may pick or ban."""
        return {f.unit_id for f in self.featured if isinstance(f, FeaturedPrimary) and f.is_universal_ban}

    @property
    def universal_picks(self) -> set:
        """Primary units each side may pick once and nobody may ban."""
        return {f.unit_id for f in self.featured if isinstance(f, FeaturedPrimary) and f.is_universal_pick}

    @property
    def banned_attachments(self) -> set:
        return {f.unit_id for f in self.featured if isinstance(f, FeaturedAttachment) and f.is_universal_ban}

    def player_labels(self, side: Union[Side, str]) -> List[str]:
        """
        Build one label per player from the side's 'A|B|C' name list.

        Missing entries fall back to the first name given.
        """
        raw = self.team1_name if _side_key(side) == Side.BLUE.value else self.team2_name
        names = [part.strip() for part in (raw or "").split("|") if part.strip()]
        primary = names[0] if names else ""
        return [names[i] if i < len(names) else primary for i in range(self.team_size)]


class DraftSession(DraftBaseModel):
    """Complete, self-consistent state of one draft."""

    key: str = Field(..., description="Opaque session key")
    config: SessionConfig = Field(default_factory=SessionConfig)
    sequence: List[TurnToken] = Field(..., description="Fixed turn order")
    current_turn: int = Field(0, ge=0, description="Cursor into the sequence")
    picks: List[Optional[Pick]] = Field(default_factory=list, description="Resolved slots (sparse)")

    blue_scores: List[int] = Field(default_factory=list)
    red_scores: List[int] = Field(default_factory=list)
    blue_locked: bool = False
    red_locked: bool = False

    timer: TimerState = Field(default_factory=TimerState)
    apply_cycle_penalty: Dict[str, bool] = Field(default_factory=lambda: _per_side(True))
    apply_timer_penalty: Dict[str, bool] = Field(default_factory=lambda: _per_side(True))
    extra_cycle_penalty: Dict[str, float] = Field(default_factory=lambda: _per_side(0.0))

    revision: int = Field(0, ge=0, description="Incremented on every accepted mutation")
    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_complete: bool = Field(False, description="Match marked complete by the owner")

    @model_validator(mode="before")
    @classmethod
    def fill_empty_slots(cls, data):
        """New sessions start with empty picks and zeroed scores."""
        if not isinstance(data, dict) or 'sequence' not in data:
            return data
        data = dict(data)
        config = data.get('config')
        if isinstance(config, SessionConfig):
            size = config.team_size
        elif isinstance(config, dict):
            size = int(config.get('team_size', 2))
        else:
            size = 2
        if not data.get('picks'):
            data['picks'] = [None] * len(data.get('sequence') or [])
        if not data.get('blue_scores'):
            data['blue_scores'] = [0] * size
        if not data.get('red_scores'):
            data['red_scores'] = [0] * size
        return data

    @model_validator(mode="after")
    def check_invariants(self) -> 'DraftSession':
        if self.current_turn > len(self.sequence):
            raise ValueError(
                f"current_turn {self.current_turn} beyond sequence length {len(self.sequence)}"
            )
        if len(self.picks) != len(self.sequence):
            raise ValueError("picks must have one entry per sequence slot")
        return self

    @property
    def draft_complete(self) -> bool:
        """True once every slot in the sequence has been resolved."""
        return self.current_turn >= len(self.sequence)

    @property
    def current_token(self) -> Optional[TurnToken]:
        if self.draft_complete:
            return None
        return self.sequence[self.current_turn]

    @property
    def active_side(self) -> Optional[Side]:
        token = self.current_token
        return Side(token.side) if token else None

    def scores_for(self, side: Union[Side, str]) -> List[int]:
        return self.blue_scores if _side_key(side) == Side.BLUE.value else self.red_scores

    def is_locked(self, side: Union[Side, str]) -> bool:
        return self.blue_locked if _side_key(side) == Side.BLUE.value else self.red_locked

    def slots_for(self, side: Union[Side, str]) -> List[int]:
        """Sequence indices owned by a side."""
        key = _side_key(side)
        return [i for i, token in enumerate(self.sequence) if token.side == key]

    def metadata(self) -> 'SessionMetadata':
        return SessionMetadata(
            key=self.key,
            family=self.config.family,
            is_complete=self.is_complete,
            draft_complete=self.draft_complete,
            created_at=self.created_at,
            last_activity_at=self.last_activity_at,
            completed_at=self.completed_at,
        )

    def __str__(self):
        return f"Draft {self.key}: turn {self.current_turn}/{len(self.sequence)} (rev {self.revision})"


class SessionMetadata(DraftBaseModel):
    """Listing metadata exposed by session stores."""

    key: str
    family: DraftFamily = DraftFamily.HSR
    is_complete: bool = False
    draft_complete: bool = False
    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def is_live(self, live_window: timedelta, now: Optional[datetime] = None) -> bool:
        """Live = not completed and active within the live window."""
        if self.is_complete or self.completed_at or not self.last_activity_at:
            return False
        now = now or datetime.now(timezone.utc)
        return now - self.last_activity_at < live_window
