"""
Catalog caching utilities

Units and default cost tables are immutable reference data for a session's
lifetime, so the cache has no TTL: entries live until an explicit refresh().
One CatalogCache is injected into the catalog service instead of living in a
module global. Entries are partitioned by draft family since unit ids are only
unique within a family.
"""
import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from models.cost_table import CostPreset, CostTable
from models.turn import DraftFamily
from models.unit import Unit, UnitKind

logger = logging.getLogger(f'{__name__}.CatalogCache')

CacheKey = Tuple[str, str, str]


def _family_value(family: Union[DraftFamily, str]) -> str:
    return DraftFamily(family).value


class CatalogCache:
    """
    In-memory store for catalog units and default cost tables.
    """

    def __init__(self):
        self._units: Dict[CacheKey, Unit] = {}
        self._tables: Dict[str, List[CostTable]] = {}
        self._defaults: Dict[str, CostPreset] = {}
        self._loaded: Dict[str, bool] = {}
        self.generation = 0

    def cache_key(self, family: Union[DraftFamily, str], kind: Union[UnitKind, str], unit_id: str) -> CacheKey:
        """
        Generate standardized cache key.

        Args:
            family: Draft family
            kind: Unit kind ('primary' or 'attachment')
            unit_id: Catalog identifier

        Returns:
            (family, kind, unit_id) tuple
        """
        return _family_value(family), UnitKind(kind).value, str(unit_id)

    def is_loaded(self, family: Union[DraftFamily, str]) -> bool:
        """True once a family's catalog has been stored since the last refresh."""
        return self._loaded.get(_family_value(family), False)

    def store_units(self, family: Union[DraftFamily, str], units: Iterable[Unit]) -> int:
        """Store validated units for a family; returns how many were stored."""
        count = 0
        for unit in units:
            self._units[self.cache_key(family, unit.kind, unit.id)] = unit
            count += 1
        self._loaded[_family_value(family)] = True
        logger.debug(f"Cached {count} units for {_family_value(family)}")
        return count

    def store_tables(self, family: Union[DraftFamily, str], tables: Iterable[CostTable]) -> int:
        """Store a family's default cost rows, replacing any previous ones."""
        key = _family_value(family)
        self._tables[key] = list(tables)
        self._defaults.pop(key, None)
        logger.debug(f"Cached {len(self._tables[key])} default cost tables for {key}")
        return len(self._tables[key])

    def get_unit(self, family: Union[DraftFamily, str], unit_id: str,
                 kind: Union[UnitKind, str] = UnitKind.PRIMARY) -> Optional[Unit]:
        return self._units.get(self.cache_key(family, kind, unit_id))

    def units(self, family: Union[DraftFamily, str], kind: Optional[Union[UnitKind, str]] = None) -> List[Unit]:
        """All cached units of a family, optionally filtered by kind."""
        wanted_family = _family_value(family)
        wanted_kind = UnitKind(kind).value if kind is not None else None
        return [
            unit for (unit_family, unit_kind, _), unit in self._units.items()
            if unit_family == wanted_family and (wanted_kind is None or unit_kind == wanted_kind)
        ]

    def default_tables(self, family: Union[DraftFamily, str]) -> CostPreset:
        """A family's default cost rows as a cost source."""
        key = _family_value(family)
        if key not in self._defaults:
            self._defaults[key] = CostPreset(name=f"{key} defaults", tables=self._tables.get(key, []))
        return self._defaults[key]

    def refresh(self) -> None:
        """Drop every cached entry; the next catalog read reloads from the API."""
        unit_count = len(self._units)
        table_count = sum(len(tables) for tables in self._tables.values())
        self._units.clear()
        self._tables.clear()
        self._defaults.clear()
        self._loaded.clear()
        self.generation += 1
        logger.info(f"Catalog cache refreshed ({unit_count} units, {table_count} tables dropped)")

    def __len__(self):
        return len(self._units)
