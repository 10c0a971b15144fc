"""
Data models for the draft session engine

Clean Pydantic models with proper validation and type safety.
"""

from models.base import DraftBaseModel
from models.turn import DraftFamily, Side, TurnKind, TurnToken
from models.unit import Unit, UnitKind, Rarity
from models.cost_table import CostTable, CostPreset
from models.featured import FeaturedRule, FeaturedPrimary, FeaturedAttachment, parse_featured
from models.pick import Pick
from models.draft_session import DraftSession, SessionConfig, SessionMetadata, TimerState
from models.events import SyncEvent, SyncEventKind

__all__ = [
    'DraftBaseModel',
    'DraftFamily',
    'Side',
    'TurnKind',
    'TurnToken',
    'Unit',
    'UnitKind',
    'Rarity',
    'CostTable',
    'CostPreset',
    'FeaturedRule',
    'FeaturedPrimary',
    'FeaturedAttachment',
    'parse_featured',
    'Pick',
    'DraftSession',
    'SessionConfig',
    'SessionMetadata',
    'TimerState',
    'SyncEvent',
    'SyncEventKind',
]
