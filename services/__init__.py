"""
Business logic services for the draft session engine

Service layer for catalog access, costing, turn rules, clocks, scoring,
persistence and spectator fan-out.
"""

from .catalog_service import CatalogService, catalog_service
from .cost_service import CostService, cost_service
from .timer_service import TimerService, timer_service
from .draft_state_machine import DraftStateMachine
from .session_store import SessionStore, InMemorySessionStore, ApiSessionStore
from .spectator_service import SpectatorHub, SpectatorClient
from .draft_service import DraftService, DraftResult, draft_service

__all__ = [
    'CatalogService', 'catalog_service',
    'CostService', 'cost_service',
    'TimerService', 'timer_service',
    'DraftStateMachine',
    'SessionStore', 'InMemorySessionStore', 'ApiSessionStore',
    'SpectatorHub', 'SpectatorClient',
    'DraftService', 'DraftResult', 'draft_service',
]
