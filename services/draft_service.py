"""
Draft service

Single writer for draft sessions. Every mutation runs under the session's
lock: load, bring the clock up to date, apply the state machine operation,
bump the revision, save, publish. A rejected operation saves nothing.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union

from config import get_config
from exceptions import APIException, IllegalTransitionError, SessionNotFoundError
from models.draft_session import DraftSession, SessionConfig, SessionMetadata, TimerState
from models.turn import DraftFamily, Side
from services.catalog_service import CatalogService, catalog_service
from services.cost_service import CostService, SlotCost, cost_service
from services.draft_state_machine import DraftStateMachine
from services.penalty_service import MatchResult, score_match
from services.session_store import InMemorySessionStore, SessionStore
from services.spectator_service import SpectatorHub
from services.timer_service import ClockDisplay, TimerService, timer_service
from utils.decorators import logged_operation
from utils.draft_helpers import build_draft_sequence
from utils.logging import get_contextual_logger

Mutation = Callable[[DraftSession, DraftStateMachine, float], Tuple[bool, str]]


@dataclass
class DraftResult:
    """Outcome of a session operation."""
    ok: bool
    reason: str
    session: Optional[DraftSession] = None

    def raise_for_rejection(self) -> DraftSession:
        """Return the new session state, or raise if the operation was rejected."""
        if not self.ok:
            raise IllegalTransitionError(self.reason)
        return self.session


class DraftService:
    """
    Session orchestration for the draft engine.

    Features:
    - Session creation from a SessionConfig
    - Serialised pick / ban / undo / edit / lock / score / timer operations
    - Spectator broadcast after every accepted mutation
    - Read-side helpers for costs, clocks and match results
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        hub: Optional[SpectatorHub] = None,
        costs: Optional[CostService] = None,
        timer: Optional[TimerService] = None,
        catalog: Optional[CatalogService] = None,
        clock: Callable[[], float] = time.time
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.hub = hub if hub is not None else SpectatorHub(self.store)
        self.costs = costs if costs is not None else CostService(catalog.cache if catalog is not None else None)
        self.timer = timer if timer is not None else TimerService()
        self.catalog = catalog
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = get_contextual_logger(f'{__name__}.DraftService')

    def _lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @staticmethod
    def _timestamp(now: float) -> datetime:
        return datetime.fromtimestamp(now, timezone.utc)

    async def get_session(self, key: str) -> DraftSession:
        """
        Load a session.

        Raises:
            SessionNotFoundError: If the session does not exist or has expired
        """
        session = await self.store.load(key)
        if session is None:
            raise SessionNotFoundError(f"Draft session {key} not found")
        return session

    async def _mutate(self, key: str, operation: str, mutation: Mutation,
                      burn_clock: bool = True) -> DraftResult:
        if key not in self._locks:
            # Locks are only created for sessions that exist
            await self.get_session(key)

        async with self._lock_for(key):
            session = await self.get_session(key)
            now = self._clock()
            machine = DraftStateMachine(session)

            if burn_clock:
                self.timer.materialize_burn(session, now)

            ok, reason = mutation(session, machine, now)
            if not ok:
                self.logger.info(f"{operation} rejected for {key}: {reason}")
                return DraftResult(ok=False, reason=reason)

            session.revision += 1
            session.last_activity_at = self._timestamp(now)
            await self.store.save(session)
            self.hub.publish(session)

            self.logger.info(f"{operation} applied to {key} (rev {session.revision}): {reason}")
            return DraftResult(ok=True, reason=reason, session=session)

    @logged_operation()
    async def create_session(self, key: Optional[str], config: SessionConfig) -> DraftSession:
        """
        Create and store a new session.

        Args:
            key: Session key (None generates one)
            config: Session configuration, fixed for the session lifetime

        Raises:
            ConfigurationException: If the family/team size pair is unsupported
        """
        settings = get_config()
        sequence = build_draft_sequence(config.family, config.team_size)
        now = self._clock()

        if not config.cost_limit:
            config = config.model_copy(
                update={'cost_limit': settings.cost_limit_for(config.family, config.team_size)}
            )

        timer = TimerState()
        if config.timer_enabled:
            reserve = config.reserve_seconds or settings.default_reserve_seconds
            timer = TimerState(
                enabled=True,
                reserve_seconds=reserve,
                reserve_left={side.value: float(reserve) for side in Side},
                grace_left=float(self.timer.grace_window),
                updated_at=now,
            )

        session = DraftSession(
            key=key or uuid.uuid4().hex[:12],
            config=config,
            sequence=sequence,
            timer=timer,
            created_at=self._timestamp(now),
            last_activity_at=self._timestamp(now),
        )

        async with self._lock_for(session.key):
            if await self.store.load(session.key) is not None:
                raise IllegalTransitionError(f"Draft session {session.key} already exists")
            await self.store.save(session)

        self.logger.info(
            f"Created {DraftFamily(config.family).value} {config.team_size}v{config.team_size} "
            f"draft {session.key} ({len(sequence)} turns)"
        )
        return session

    @logged_operation()
    async def submit_pick(
        self,
        key: str,
        slot: int,
        unit_id: str,
        level: int = 0,
        attachment_id: Optional[str] = None,
        attachment_level: int = 1,
        actor: Optional[Union[Side, str]] = None
    ) -> DraftResult:
        """Resolve the current slot (pick, ban or ace pick)."""
        def mutation(session, machine, now):
            ok, reason = machine.apply_pick(
                slot, unit_id, level, attachment_id, attachment_level, actor=actor
            )
            if ok:
                self.timer.reset_grace(session, now)
            return ok, reason

        return await self._mutate(key, 'submit_pick', mutation)

    @logged_operation()
    async def undo_last(self, key: str, actor: Optional[Union[Side, str]] = None) -> DraftResult:
        """Revert the most recent slot."""
        def mutation(session, machine, now):
            ok, reason = machine.undo(actor=actor)
            if ok:
                self.timer.reset_grace(session, now)
            return ok, reason

        return await self._mutate(key, 'undo_last', mutation)

    @logged_operation()
    async def edit_slot(
        self,
        key: str,
        slot: int,
        level: Optional[int] = None,
        attachment_id: Optional[str] = None,
        attachment_level: Optional[int] = None,
        clear_attachment: bool = False,
        actor: Optional[Union[Side, str]] = None
    ) -> DraftResult:
        """Change level or attachment of a filled slot."""
        return await self._mutate(
            key, 'edit_slot',
            lambda session, machine, now: machine.edit_slot(
                slot, level, attachment_id, attachment_level, clear_attachment, actor=actor
            ),
            burn_clock=False,
        )

    @logged_operation()
    async def set_lock(self, key: str, side: Union[Side, str], locked: bool) -> DraftResult:
        def mutation(session, machine, now):
            return machine.lock_side(side) if locked else machine.unlock_side(side)

        return await self._mutate(key, 'set_lock', mutation, burn_clock=False)

    @logged_operation()
    async def set_score(self, key: str, side: Union[Side, str], player_index: int, value: int) -> DraftResult:
        return await self._mutate(
            key, 'set_score',
            lambda session, machine, now: machine.set_score(side, player_index, value),
            burn_clock=False,
        )

    @logged_operation()
    async def set_timer(self, key: str, enabled: bool, reserve_seconds: Optional[int] = None) -> DraftResult:
        """Enable/disable the clock, optionally resetting both reserves."""
        def mutation(session, machine, now):
            self.timer.configure(session, enabled, reserve_seconds, now)
            return True, f"Timer {'enabled' if enabled else 'disabled'}"

        return await self._mutate(key, 'set_timer', mutation)

    @logged_operation()
    async def toggle_pause(self, key: str, side: Union[Side, str]) -> DraftResult:
        """Pause or resume one side's clock."""
        side_key = Side(side).value

        def mutation(session, machine, now):
            timer = session.timer
            if not timer.enabled:
                return False, "Timer is not enabled"
            paused = not timer.is_paused(side_key)
            timer.paused = {**timer.paused, side_key: paused}
            timer.updated_at = now
            return True, f"{side_key} {'paused' if paused else 'resumed'}"

        return await self._mutate(key, 'toggle_pause', mutation)

    @logged_operation()
    async def set_penalty_flags(
        self,
        key: str,
        side: Union[Side, str],
        apply_cycle_penalty: Optional[bool] = None,
        apply_timer_penalty: Optional[bool] = None,
        extra_cycle_penalty: Optional[float] = None
    ) -> DraftResult:
        """Adjust the per-side penalty switches used by the cycle scoring model."""
        side_key = Side(side).value

        def mutation(session, machine, now):
            if extra_cycle_penalty is not None and extra_cycle_penalty < 0:
                return False, "Extra cycle penalty cannot be negative"
            if apply_cycle_penalty is not None:
                session.apply_cycle_penalty = {**session.apply_cycle_penalty, side_key: apply_cycle_penalty}
            if apply_timer_penalty is not None:
                session.apply_timer_penalty = {**session.apply_timer_penalty, side_key: apply_timer_penalty}
            if extra_cycle_penalty is not None:
                session.extra_cycle_penalty = {**session.extra_cycle_penalty, side_key: float(extra_cycle_penalty)}
            return True, f"Penalty settings updated for {side_key}"

        return await self._mutate(key, 'set_penalty_flags', mutation, burn_clock=False)

    @logged_operation()
    async def finalize(self, key: str) -> DraftResult:
        """Mark the match complete once the draft is done and every score is in."""
        def mutation(session, machine, now):
            if session.is_complete:
                return False, "Match is already complete"
            ok, reason = machine.can_finalize()
            if not ok:
                return ok, reason
            session.is_complete = True
            session.completed_at = self._timestamp(now)
            return True, "Match complete"

        return await self._mutate(key, 'finalize', mutation, burn_clock=False)

    async def _ensure_catalog(self, family: DraftFamily) -> None:
        if self.catalog is None:
            return
        try:
            await self.catalog.load_catalog(family)
        except APIException as e:
            self.logger.warning(f"Catalog unavailable for {family}; unknown units cost 0", error=str(e))

    async def slot_costs(self, key: str) -> List[SlotCost]:
        """Cost breakdown for every slot in sequence order."""
        session = await self.get_session(key)
        await self._ensure_catalog(session.config.family)
        return [self.costs.slot_cost(pick, session.config) for pick in session.picks]

    async def team_costs(self, key: str) -> Dict[str, float]:
        session = await self.get_session(key)
        await self._ensure_catalog(session.config.family)
        return self.costs.session_team_costs(session)

    async def match_result(self, key: str) -> MatchResult:
        """Adjusted totals and winner for the session's current scores."""
        session = await self.get_session(key)
        await self._ensure_catalog(session.config.family)
        return score_match(session, self.costs.session_team_costs(session))

    async def clocks(self, key: str, now: Optional[float] = None) -> ClockDisplay:
        session = await self.get_session(key)
        return self.timer.display_clocks(session, self._clock() if now is None else now)

    async def list_sessions(self, live_only: bool = False,
                            family: Optional[DraftFamily] = None) -> List[SessionMetadata]:
        return await self.store.list_metadata(live_only=live_only, family=family)

    @logged_operation()
    async def delete_session(self, key: str) -> bool:
        """Remove a session and end every spectator stream for it."""
        async with self._lock_for(key):
            deleted = await self.store.delete(key)
        self.hub.expire(key)
        self._locks.pop(key, None)
        return deleted

    def purge_expired(self) -> List[str]:
        """Drop sessions past retention from an in-memory store and notify spectators."""
        if not isinstance(self.store, InMemorySessionStore):
            return []
        expired = self.store.purge_expired()
        for key in expired:
            self.hub.expire(key)
            self._locks.pop(key, None)
        return expired


draft_service = DraftService(costs=cost_service, timer=timer_service, catalog=catalog_service)
