"""
Catalog service

Loads the unit catalog (primary units, attachments) and the default cost
tables for a draft family, validates every record at the boundary and keeps
the result in an injected CatalogCache until an explicit refresh.
"""
import logging
from typing import List, Optional, Union

from api.client import APIClient
from exceptions import MissingReferenceError
from models.cost_table import CostTable
from models.turn import DraftFamily
from models.unit import Unit, UnitKind
from services.base_service import BaseService
from utils.cache import CatalogCache

logger = logging.getLogger(f'{__name__}.CatalogService')


class CatalogService(BaseService[Unit]):
    """
    Service for catalog reference data.

    API layout (per family):
    - {family}/primaries    primary unit records
    - {family}/attachments  attachment records
    - {family}/cost-tables  default cost rows
    """

    def __init__(self, cache: Optional[CatalogCache] = None, client: Optional[APIClient] = None):
        super().__init__(Unit, 'catalog', client=client)
        self.cache = cache if cache is not None else CatalogCache()
        logger.debug("CatalogService initialized")

    @staticmethod
    def _family(family: Union[DraftFamily, str]) -> str:
        return DraftFamily(family).value

    async def _fetch_units(self, family: str, kind: UnitKind) -> List[Unit]:
        endpoint = f"{family}/{'attachments' if kind == UnitKind.ATTACHMENT else 'primaries'}"
        data = await self.get_raw(endpoint=endpoint)
        if not data:
            logger.warning(f"Catalog endpoint {endpoint} returned no records")
            return []
        items = self._extract_items(data, endpoint)
        return self._validate_items(
            items,
            parser=lambda item: Unit.from_api_data(item, kind=kind),
            label=f"{family} {kind.value}",
        )

    async def _fetch_tables(self, family: str) -> List[CostTable]:
        endpoint = f"{family}/cost-tables"
        data = await self.get_raw(endpoint=endpoint)
        if not data:
            logger.info(f"No default cost tables for {family}; rule formulas apply")
            return []
        items = self._extract_items(data, endpoint)
        return self._validate_items(items, parser=CostTable.from_api_data, label=f"{family} cost table")

    async def load_catalog(self, family: Union[DraftFamily, str], force: bool = False) -> int:
        """
        Load a family's catalog into the cache.

        Args:
            family: Draft family
            force: Reload even when the family is already cached

        Returns:
            Number of units cached for the family

        Raises:
            APIException: If the catalog API cannot be reached
        """
        family = self._family(family)
        if self.cache.is_loaded(family) and not force:
            return len(self.cache.units(family))

        primaries = await self._fetch_units(family, UnitKind.PRIMARY)
        attachments = await self._fetch_units(family, UnitKind.ATTACHMENT)
        tables = await self._fetch_tables(family)

        count = self.cache.store_units(family, primaries + attachments)
        self.cache.store_tables(family, tables)
        logger.info(
            f"Loaded {family} catalog: {len(primaries)} primaries, "
            f"{len(attachments)} attachments, {len(tables)} cost tables"
        )
        return count

    async def get_units(self, family: Union[DraftFamily, str],
                        kind: Optional[UnitKind] = None) -> List[Unit]:
        """All cached units of a family, loading the catalog on first use."""
        await self.load_catalog(family)
        return self.cache.units(family, kind)

    async def get_unit(self, family: Union[DraftFamily, str], unit_id: str,
                       kind: UnitKind = UnitKind.PRIMARY) -> Optional[Unit]:
        await self.load_catalog(family)
        return self.cache.get_unit(family, unit_id, kind)

    async def require_unit(self, family: Union[DraftFamily, str], unit_id: str,
                           kind: UnitKind = UnitKind.PRIMARY) -> Unit:
        """
        Get a unit that must exist.

        Raises:
            MissingReferenceError: If the catalog has no such unit
        """
        unit = await self.get_unit(family, unit_id, kind)
        if unit is None:
            raise MissingReferenceError(f"Unknown {UnitKind(kind).value} {unit_id!r} in {self._family(family)} catalog")
        return unit

    def refresh(self) -> None:
        """Forget every cached record; the next read reloads from the API."""
        self.cache.refresh()


catalog_service = CatalogService(CatalogCache())
