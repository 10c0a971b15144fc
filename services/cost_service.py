"""
Cost service

Computes point costs for units, draft slots and whole teams.

Cost sources are tried in order (session preset first, then the catalog's
default tables); the first with a row for the unit wins. Units without any row
fall back to the rarity/limited rule formulas. A featured custom cost replaces
the base (level 0 / phase 1) while keeping the delta to higher levels.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Union

from models.cost_table import CostTable
from models.draft_session import SIDES, DraftSession, SessionConfig
from models.pick import Pick
from models.turn import DraftFamily, Side
from models.unit import ATTACHMENT_LEVEL_RANGE, PRIMARY_LEVEL_RANGE, Unit, UnitKind
from services.catalog_service import catalog_service
from utils.cache import CatalogCache
from utils.draft_helpers import round2, snap_quarter

logger = logging.getLogger(f'{__name__}.CostService')

# Levels at which a limited rare primary unit gets more expensive
LIMITED_MILESTONES = (1, 2, 4, 6)


class CostSource(Protocol):
    def lookup(self, unit_id: str, kind: Union[UnitKind, str]) -> Optional[CostTable]:
        ...


@dataclass
class SlotCost:
    """Cost breakdown for one draft slot."""
    primary: float = 0.0
    attachment: float = 0.0

    @property
    def total(self) -> float:
        return round2(self.primary + self.attachment)


def primary_rule_cost(unit: Unit, level: int) -> float:
    """
    Rule-formula cost for a primary unit.

    Examples:
        >>> primary_rule_cost(Unit(id="x", rarity="rare", limited=True), 3)
        2.0

        >>> primary_rule_cost(Unit(id="x", rarity="rare"), 6)
        1.5
    """
    level = max(PRIMARY_LEVEL_RANGE[0], min(PRIMARY_LEVEL_RANGE[1], int(level)))
    if not unit.is_rare:
        return 0.5
    if not unit.limited:
        return 1.5 if level >= 6 else 1.0
    return 1 + 0.5 * sum(1 for milestone in LIMITED_MILESTONES if level >= milestone)


def attachment_rule_cost(unit: Unit, phase: int, family: Union[DraftFamily, str]) -> float:
    """
    Rule-formula cost for an attachment at a phase (1-5).

    Common attachments are free. Rare ones follow the family's curve.
    """
    phase = max(ATTACHMENT_LEVEL_RANGE[0], min(ATTACHMENT_LEVEL_RANGE[1], int(phase)))
    if not unit.is_rare:
        return 0.0

    if DraftFamily(family) == DraftFamily.ZZZ:
        if unit.limited:
            return 0.5 if phase >= 3 else 0.25
        return 0.25 if phase >= 3 else 0.0

    if unit.limited:
        if phase <= 2:
            return 0.25
        return 0.5 if phase <= 4 else 0.75
    return 0.25 if phase >= 3 else 0.0


def find_table(unit_id: str, kind: Union[UnitKind, str],
               sources: Iterable[Optional[CostSource]]) -> Optional[CostTable]:
    """First cost row for a unit across the given sources."""
    for source in sources:
        if source is None:
            continue
        table = source.lookup(unit_id, kind)
        if table is not None:
            return table
    return None


def _with_override(cost: float, base: float, override_base: Optional[float]) -> float:
    if override_base is None:
        return cost
    return override_base + (cost - base)


class CostService:
    """
    Point cost computations.

    Stateless apart from the injected catalog cache that supplies units and
    default cost tables.
    """

    def __init__(self, cache: Optional[CatalogCache] = None):
        self.cache = cache
        logger.debug("CostService initialized")

    def unit_cost(
        self,
        unit: Unit,
        level: int,
        tables: Iterable[Optional[CostSource]] = (),
        override_base: Optional[float] = None,
        family: Union[DraftFamily, str] = DraftFamily.HSR
    ) -> float:
        """
        Cost of a unit at a level.

        Args:
            unit: Primary unit or attachment
            level: Level (0-6) for primaries, phase (1-5) for attachments
            tables: Cost sources in priority order
            override_base: Featured custom base cost, if any
            family: Draft family (selects the attachment rule curve)

        Returns:
            Non-negative cost rounded to 2 decimal places
        """
        level = unit.clamp_level(level)
        table = find_table(unit.id, unit.kind, tables)

        if table is not None:
            costs = [snap_quarter(value) for value in table.costs]
            index = level - 1 if unit.is_attachment else level
            cost = _with_override(costs[index], costs[0], override_base)
        elif unit.is_attachment:
            cost = _with_override(
                attachment_rule_cost(unit, level, family),
                attachment_rule_cost(unit, ATTACHMENT_LEVEL_RANGE[0], family),
                override_base,
            )
        else:
            cost = _with_override(
                primary_rule_cost(unit, level),
                primary_rule_cost(unit, PRIMARY_LEVEL_RANGE[0]),
                override_base,
            )

        return round2(max(0.0, cost))

    def _sources(self, config: SessionConfig) -> List[Optional[CostSource]]:
        defaults = self.cache.default_tables(config.family) if self.cache else None
        return [config.preset, defaults]

    def _leg_cost(self, unit_id: str, kind: UnitKind, level: int, config: SessionConfig) -> float:
        """Cost of one leg of a slot (the primary unit or its attachment)."""
        if kind == UnitKind.ATTACHMENT:
            featured = config.featured_attachment(unit_id)
        else:
            featured = config.featured_primary(unit_id)
        override_base = featured.custom_cost if featured else None

        unit = self.cache.get_unit(config.family, unit_id, kind) if self.cache else None
        if unit is None:
            sources = self._sources(config)
            if find_table(unit_id, kind, sources) is None:
                logger.warning(f"No catalog entry or cost row for {UnitKind(kind).value} {unit_id}; costing it at 0")
                return 0.0
            # A cost row is enough to price an unknown unit
            unit = Unit(id=unit_id, kind=kind)

        return self.unit_cost(unit, level, self._sources(config), override_base, config.family)

    def slot_cost(self, pick: Optional[Pick], config: SessionConfig) -> SlotCost:
        """
        Cost breakdown for a filled slot; an empty slot costs nothing.

        Each leg applies its own featured override independently.
        """
        if pick is None:
            return SlotCost()

        primary = self._leg_cost(pick.unit_id, UnitKind.PRIMARY, pick.level, config)
        attachment = 0.0
        if pick.attachment_id is not None:
            attachment = self._leg_cost(
                pick.attachment_id, UnitKind.ATTACHMENT, pick.attachment_level, config
            )
        return SlotCost(primary=primary, attachment=attachment)

    def team_cost(self, session: DraftSession, side: Union[Side, str]) -> float:
        """Sum of a side's non-ban slot costs."""
        total = 0.0
        for index in session.slots_for(side):
            if session.sequence[index].is_ban:
                continue
            total += self.slot_cost(session.picks[index], session.config).total
        return round2(total)

    def session_team_costs(self, session: DraftSession) -> Dict[str, float]:
        """Team cost per side, keyed by side tag."""
        return {side: self.team_cost(session, side) for side in SIDES}


cost_service = CostService(catalog_service.cache)
